r"""Contain the default configurations for HTTP requests built with
``arequest``."""

from __future__ import annotations

__all__ = [
    "DEFAULT_BACKOFF_FACTOR",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    "PREVIEW_LENGTH",
    "RETRY_STATUS_MIN",
    "ClientConfig",
]

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "arequest/1"

# Constants for retry configuration
DEFAULT_MAX_RETRIES = 0
DEFAULT_BACKOFF_FACTOR = 1.0
RETRY_STATUS_MIN = 500

# Maximum number of characters returned by a response preview
PREVIEW_LENGTH = 160


@dataclass
class ClientConfig:
    r"""Implement the transport settings shared by the attempts of a
    request.

    Args:
        timeout: Maximum seconds to wait for each attempt, or None to
            wait indefinitely.
        follow_redirects: Whether redirect responses are followed.
        proxy: An optional proxy URL passed to ``httpx.Client``.
        transport: An optional ``httpx`` transport, for example an
            ``httpx.MockTransport`` in tests.

    Example:
        ```pycon
        >>> from arequest.config import ClientConfig
        >>> config = ClientConfig(timeout=5.0)
        >>> config.timeout
        5.0
        >>> config.follow_redirects
        True

        ```
    """

    timeout: float | None = DEFAULT_TIMEOUT
    follow_redirects: bool = True
    proxy: str | None = None
    transport: httpx.BaseTransport | None = None
