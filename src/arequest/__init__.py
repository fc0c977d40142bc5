r"""arequest - Incrementally built HTTP requests with automatic retry
logic and forgiving response decoding.

This package wraps the httpx library in a single ``Request`` object that
is prepared from URL fragments and setters, sent with retries and
exponential backoff, and decoded into bytes, text, JSON or XML.

Key Features:
    - URL building by merging URI reference fragments into a base URL
    - Query parameters replaced (``?key=value``) or appended (``&key=value``)
    - Automatic retry of transport errors and server errors (>= 500)
    - Exponential backoff with optional jitter and a pluggable retry policy
    - Setup errors deferred until the request is sent
    - Response body read once and cached for repeated decoding
    - JSON decoding that detects HTML/XML error pages, with optional
      pydantic validation
    - Streaming XML decoding with UTF-8, US-ASCII, ISO-8859-1 and
      Windows-1252 support

Example:
    ```pycon
    >>> from arequest import Request
    >>> api = Request("https://api.example.com/v1")
    >>> data = api.new_url("users?page=2").set_retry(3).json()  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_BACKOFF_FACTOR",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    "URL",
    "ClientConfig",
    "ErrorKind",
    "HttpRequestError",
    "QueryParameters",
    "Request",
    "StatusError",
    "__version__",
    "default_retry_policy",
    "merge_url",
    "send_with_automatic_retry",
]

from importlib.metadata import PackageNotFoundError, version

from arequest.config import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    ClientConfig,
)
from arequest.exceptions import ErrorKind, HttpRequestError, StatusError
from arequest.http import Request
from arequest.params import QueryParameters
from arequest.request import default_retry_policy, send_with_automatic_retry
from arequest.url import URL, merge_url

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
