r"""Contain the send loop of HTTP requests with automatic retry
logic."""

from __future__ import annotations

__all__ = ["RetryPolicy", "default_retry_policy", "send_once", "send_with_automatic_retry"]

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from arequest.config import RETRY_STATUS_MIN
from arequest.exceptions import StatusError, TransportError
from arequest.utils import calculate_sleep_time

if TYPE_CHECKING:
    from arequest.http import Request

# Called after each attempt with the attempt's transport error (or None);
# returning None stops the send loop, returning an exception retries.
RetryPolicy = Callable[["Request", "Exception | None"], "Exception | None"]

logger: logging.Logger = logging.getLogger(__name__)


def default_retry_policy(request: Request, error: Exception | None) -> Exception | None:
    r"""Decide if an attempt should be retried.

    Transport errors and server errors (status >= 500) are retried,
    anything else ends the send loop.

    Args:
        request: The request whose attempt just finished.
        error: The transport error of the attempt, if any.

    Returns:
        The error that justifies another attempt, or None to stop.
    """
    if error is not None:
        return error
    response = request.response
    if response is not None and response.status_code >= RETRY_STATUS_MIN:
        return StatusError(
            response.status_code,
            response.reason_phrase,
            response=response,
            method=request.method or "GET",
            url=str(request.url),
        )
    return None


def send_once(request: Request) -> TransportError | None:
    r"""Perform a single transport call and store its response.

    The response is received with ``stream=True``, so its body is left
    unread for the decoding methods of the request.

    Args:
        request: The request to send. ``request.response`` is set to
            the received response, or None on failure.

    Returns:
        The transport error of the attempt, or None if a response was
            received.
    """
    method = request.method or "GET"
    url = str(request.url) if request.url is not None else ""
    request.attempt += 1
    try:
        outgoing = request.client.build_request(
            method,
            url,
            headers=request.headers,
            content=request.body,
            timeout=request.config.timeout,
        )
        request.response = request.client.send(
            outgoing, stream=True, follow_redirects=request.config.follow_redirects
        )
    except httpx.TimeoutException as exc:
        logger.debug(f"{method} request to {url} timed out on attempt {request.attempt}")
        request.response = None
        return TransportError(
            f"{method} request to {url} timed out: {exc}", method=method, url=url, cause=exc
        )
    except (httpx.RequestError, httpx.InvalidURL) as exc:
        error_type = type(exc).__name__
        logger.debug(
            f"{method} request to {url} encountered {error_type} on attempt {request.attempt}: {exc}"
        )
        request.response = None
        return TransportError(
            f"{method} request to {url} failed: {exc}", method=method, url=url, cause=exc
        )
    logger.debug(
        f"{method} request to {url} returned status {request.response.status_code} "
        f"on attempt {request.attempt}"
    )
    return None


def send_with_automatic_retry(request: Request) -> httpx.Response | None:
    r"""Send a prepared request, retrying transient failures.

    Attempts are numbered by ``request.attempt``, which is not reset
    here: ``Request.send`` resets it, ``Request.resend`` continues the
    count. The loop stops once ``request.attempt`` reaches
    ``request.tries`` (at least one attempt is made), whatever the last
    outcome is, or as soon as the retry policy returns None.

    Backoff Strategy:
    - Exponential backoff: backoff_factor * (2 ** retry), where retry
      counts the retries of this call from 0 (1s, 2s, 4s, ... with the
      default factor of 1.0)
    - Jitter: Optional randomization added to the backoff
    - The wait is applied before every retry, whatever the policy
      decided

    Args:
        request: The request to send. Its ``retry_policy`` (or
            ``default_retry_policy``) is called after every attempt but
            the last, and may modify the request for the next attempt.

    Returns:
        The last response received, which may have any status. None if
            the retry policy accepted a failed attempt.

    Raises:
        HttpRequestError: The deferred construction error of the
            request, raised before any transport call.
        TransportError: If the last attempt failed in the transport.

    Example:
        ```pycon
        >>> from arequest import Request
        >>> request = Request("https://api.example.com/data").set_retry(3)
        >>> response = request.send()  # doctest: +SKIP

        ```
    """
    if request.error is not None:
        raise request.error

    tries = max(request.tries, 1)
    retry_policy = request.retry_policy or default_retry_policy
    retry = 0
    while True:
        error = send_once(request)
        if request.attempt >= tries:
            break
        error = retry_policy(request, error)
        if error is None:
            if retry > 0:
                logger.debug(f"Request to {request.url} succeeded on attempt {request.attempt}")
            break

        logger.debug(
            f"Request to {request.url} will be retried after attempt "
            f"{request.attempt}/{tries}: {error}"
        )
        if request.response is not None:
            request.response.close()
        time.sleep(calculate_sleep_time(retry, request.backoff_factor, request.jitter_factor))
        retry += 1

    if error is not None:
        raise error
    return request.response
