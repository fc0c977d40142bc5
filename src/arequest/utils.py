r"""Contain utility functions for HTTP requests."""

from __future__ import annotations

__all__ = [
    "calculate_sleep_time",
    "clean_header_value",
    "stringify_value",
    "validate_retry_params",
]

import enum
import logging
import numbers
import random

from arequest.exceptions import UnsupportedParameterTypeError

logger: logging.Logger = logging.getLogger(__name__)


def validate_retry_params(
    max_retries: int,
    backoff_factor: float,
    jitter_factor: float = 0.0,
    timeout: float | None = None,
) -> None:
    """Validate retry parameters.

    Args:
        max_retries: Maximum number of retry attempts for failed requests.
            Must be >= 0.
        backoff_factor: Factor for exponential backoff between retries.
            Must be >= 0.
        jitter_factor: Factor for adding random jitter to backoff delays.
            Must be >= 0. Recommended value is 0.1 for 10% jitter.
        timeout: Maximum seconds to wait for the server response.
            Must be > 0 if provided.

    Raises:
        ValueError: If max_retries, backoff_factor, or jitter_factor are negative,
            or if timeout is non-positive.

    Example:
        ```pycon
        >>> from arequest.utils import validate_retry_params
        >>> validate_retry_params(max_retries=3, backoff_factor=0.5)
        >>> validate_retry_params(max_retries=3, backoff_factor=0.5, jitter_factor=0.1)
        >>> validate_retry_params(max_retries=3, backoff_factor=0.5, timeout=10.0)
        >>> validate_retry_params(max_retries=-1, backoff_factor=0.5)  # doctest: +SKIP

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if backoff_factor < 0:
        msg = f"backoff_factor must be >= 0, got {backoff_factor}"
        raise ValueError(msg)
    if jitter_factor < 0:
        msg = f"jitter_factor must be >= 0, got {jitter_factor}"
        raise ValueError(msg)
    if timeout is not None and timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def calculate_sleep_time(retry: int, backoff_factor: float, jitter_factor: float = 0.0) -> float:
    """Calculate sleep time for retry with exponential backoff and
    jitter.

    Args:
        retry: The number of retries already made (0-indexed).
        backoff_factor: Factor for exponential backoff between retries.
        jitter_factor: Factor for adding random jitter to backoff delays.

    Returns:
        The calculated sleep time in seconds.

    Example:
        ```pycon
        >>> from arequest.utils import calculate_sleep_time
        >>> [calculate_sleep_time(retry, 1.0) for retry in range(4)]
        [1.0, 2.0, 4.0, 8.0]

        ```
    """
    sleep_time = backoff_factor * (2**retry)

    # Add jitter if jitter_factor is configured
    if jitter_factor > 0:
        jitter = random.uniform(0, jitter_factor) * sleep_time  # noqa: S311
        total_sleep_time = sleep_time + jitter
        logger.debug(
            f"Waiting {total_sleep_time:.2f}s before retry (base={sleep_time:.2f}s, jitter={jitter:.2f}s)"
        )
    else:
        total_sleep_time = sleep_time
        logger.debug(f"Waiting {total_sleep_time:.2f}s before retry")

    return total_sleep_time


def stringify_value(key: str, value: object) -> str:
    r"""Return the canonical text of a parameter or header value.

    Args:
        key: The name of the parameter, used in error messages.
        value: The value to stringify. Strings are returned unchanged,
            booleans become ``"true"``/``"false"``, numbers use ``str``
            and exceptions their message.

    Returns:
        The text of the value.

    Raises:
        UnsupportedParameterTypeError: If the value has no canonical
            text, for example a mapping or a list.

    Example:
        ```pycon
        >>> from arequest.utils import stringify_value
        >>> stringify_value("page", 42)
        '42'
        >>> stringify_value("debug", True)
        'true'
        >>> stringify_value("error", ValueError("oops"))
        'oops'

        ```
    """
    if isinstance(value, str):
        return value
    if isinstance(value, enum.Enum):
        return stringify_value(key, value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, numbers.Number):
        return str(value)
    if isinstance(value, BaseException):
        return str(value)
    raise UnsupportedParameterTypeError(key, value)


def clean_header_value(value: str) -> str:
    r"""Fold line breaks of a header value into spaces and trim it.

    Args:
        value: The header value.

    Returns:
        The single-line header value.

    Example:
        ```pycon
        >>> from arequest.utils import clean_header_value
        >>> clean_header_value("string!\n")
        'string!'

        ```
    """
    return value.replace("\r", " ").replace("\n", " ").strip(" \t")
