r"""Contain the ``Request`` object that prepares, sends and decodes an
HTTP request.

A ``Request`` combines the transport configuration, the in-progress URL,
headers and body, and the last response received. It is built
incrementally from URL fragments and setters, sent with automatic
retries, and then decoded into bytes, text, JSON or XML:

    ```pycon
    >>> from arequest import Request
    >>> api = Request("https://api.example.com/v1?format=json")
    >>> users = api.new_url("users&page=2")
    >>> str(users.url)
    'https://api.example.com/v1/users?format=json&page=2'
    >>> data = users.json()  # doctest: +SKIP

    ```

Setters never raise for bad input such as a malformed URL fragment:
the first such error is kept in ``Request.error`` and raised by
``send``, so a chain of setters is never interrupted halfway.
"""

from __future__ import annotations

__all__ = ["Request"]

import base64
import copy
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx
from pydantic_core import PydanticSerializationError, to_json

from arequest.config import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_MAX_RETRIES,
    DEFAULT_USER_AGENT,
    ClientConfig,
)
from arequest.decoder import ResponseBody, decode_json, decode_text, make_preview, parse_xml
from arequest.exceptions import (
    EmptyBodyError,
    HttpRequestError,
    InvalidBodyError,
    InvalidParameterError,
    InvalidUTF8Error,
    MalformedReferenceError,
    MissingResponseError,
    StatusError,
    TransportError,
    UnsupportedParameterTypeError,
    join_errors,
)
from arequest.params import QueryParameters, encode_pair
from arequest.request import send_with_automatic_retry
from arequest.url import URL, merge_url, parse_reference
from arequest.utils import clean_header_value, stringify_value, validate_retry_params

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType
    from xml.etree.ElementTree import Element

    from arequest.request import RetryPolicy

logger: logging.Logger = logging.getLogger(__name__)


class Request:
    r"""Implement an HTTP request built incrementally and sent with
    automatic retry logic.

    Args:
        url: An optional initial URL. It can be a complete link or a
            base to be extended by ``add_url``.
        config: The transport configuration. A default
            ``ClientConfig`` is used if None.

    Attributes:
        url: The URL being built, or None before any ``add_url``.
        method: The HTTP method. Empty means ``GET``.
        headers: The request headers.
        body: The encoded request body, or None.
        tries: The maximum number of transport calls made by ``send``.
        retry_policy: An optional function deciding after each attempt
            whether to retry, see ``arequest.request.RetryPolicy``.
        attempt: The number of attempts made since the last ``send``.
        error: The first setup error, raised by ``send``.

    Example:
        ```pycon
        >>> from arequest import Request
        >>> request = Request("//localhost/basepath?init=first")
        >>> request.add_url("subpath/2").add_query("page", 2)  # doctest: +ELLIPSIS
        <arequest.http.Request object at ...>
        >>> str(request.url)
        '//localhost/basepath/subpath/2?init=first&page=2'

        ```
    """

    def __init__(self, url: str | None = None, *, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig()
        self.url: URL | None = None
        self.method = ""
        self.headers = httpx.Headers({"User-Agent": DEFAULT_USER_AGENT})
        self.body: bytes | None = None

        self.tries = DEFAULT_MAX_RETRIES + 1
        self.retry_policy: RetryPolicy | None = None
        self.backoff_factor = DEFAULT_BACKOFF_FACTOR
        self.jitter_factor = 0.0
        self.attempt = 0
        self.error: HttpRequestError | None = None

        self._client: httpx.Client | None = None
        self._owns_client = True
        self._response: httpx.Response | None = None
        self._received: ResponseBody | None = None
        if url is not None:
            self.add_url(url)

    def __enter__(self) -> Request:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def client(self) -> httpx.Client:
        r"""The ``httpx.Client`` used to send the request.

        It is created on first use from ``config``, or borrowed from the
        request this one was cloned from. A borrowed client is never
        closed by this request; once its owner closed it, a new client
        is created.
        """
        if self._client is None or (not self._owns_client and self._client.is_closed):
            self._owns_client = True
            self._client = httpx.Client(
                timeout=self.config.timeout,
                follow_redirects=self.config.follow_redirects,
                proxy=self.config.proxy,
                transport=self.config.transport,
            )
        return self._client

    @property
    def response(self) -> httpx.Response | None:
        r"""The last response received, or None."""
        return self._response

    @response.setter
    def response(self, response: httpx.Response | None) -> None:
        self._response = response
        self._received = None if response is None else ResponseBody(response)

    @property
    def success(self) -> bool:
        r"""Whether a response with a 2xx status was received."""
        return self._response is not None and 200 <= self._response.status_code < 300

    @property
    def status_code(self) -> int | None:
        return None if self._response is None else self._response.status_code

    @property
    def reason_phrase(self) -> str | None:
        return None if self._response is None else self._response.reason_phrase

    @property
    def response_headers(self) -> httpx.Headers | None:
        return None if self._response is None else self._response.headers

    @property
    def params(self) -> QueryParameters:
        r"""The decoded parameters of the current URL query."""
        return QueryParameters.parse(self.url.query if self.url is not None else "")

    def clone(self) -> Request:
        r"""Return an independent copy of this request.

        The configuration, URL and headers are copied, so changing the
        copy never affects this request. The response is not copied.
        The copy sends through the client of this request, which stays
        owned (and closed) by this request.

        Returns:
            The copied request.
        """
        other = copy.copy(self)
        other.config = replace(self.config)
        other.headers = self.headers.copy()
        other._client = self.client
        other._owns_client = False
        other.response = None
        return other

    def new_url(self, reference: str) -> Request:
        r"""Return a copy of this request with a URL fragment merged in.

        Args:
            reference: The URI reference passed to ``add_url``.

        Returns:
            The new request.
        """
        return self.clone().add_url(reference)

    def add_url(self, reference: str) -> Request:
        r"""Merge a URI reference into the current URL.

        See ``arequest.url.merge_url`` for the rules. A malformed
        reference leaves the URL unchanged and is reported by ``send``.

        Args:
            reference: The URI reference, for example ``"users/2"``,
                ``"?page=1"`` or ``"&page=1"``.

        Returns:
            This request.
        """
        try:
            self.url = merge_url(self.url, reference)
        except MalformedReferenceError as exc:
            self._defer(exc)
        return self

    def set_method(self, method: str) -> Request:
        self.method = method.upper()
        return self

    def set_header(self, key: str, value: object) -> Request:
        r"""Replace a request header.

        Args:
            key: The header name.
            value: The header value, stringified and reduced to a
                single line. None removes the header.

        Returns:
            This request.
        """
        if value is None:
            if key in self.headers:
                del self.headers[key]
            return self
        try:
            self.headers[key] = clean_header_value(stringify_value(key, value))
        except UnsupportedParameterTypeError as exc:
            self._defer(exc)
        return self

    def add_header(self, key: str, value: object) -> Request:
        r"""Append a request header value, keeping the existing ones."""
        try:
            text = clean_header_value(stringify_value(key, value))
        except UnsupportedParameterTypeError as exc:
            self._defer(exc)
            return self
        self.headers = httpx.Headers([*self.headers.multi_items(), (key, text)])
        return self

    def set_basic_auth(self, user: str, password: str) -> Request:
        token = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
        return self.set_header("Authorization", f"Basic {token}")

    def set_bearer_auth(self, token: str) -> Request:
        return self.set_header("Authorization", f"Bearer {token}")

    def set_query(self, params: QueryParameters | Mapping[str, object]) -> Request:
        r"""Replace the whole URL query.

        Args:
            params: The new parameters. A mapping value may be a list
                to repeat a key.

        Returns:
            This request.
        """
        try:
            if not isinstance(params, QueryParameters):
                params = QueryParameters(params)
            query = params.encode()
        except UnsupportedParameterTypeError as exc:
            self._defer(exc)
            return self
        self.url = (self.url or URL()).with_query(query)
        return self

    def add_query(self, key: str, value: object = None) -> Request:
        r"""Append one parameter to the URL query.

        Args:
            key: The parameter name.
            value: The parameter value. None adds the bare key.

        Returns:
            This request.
        """
        try:
            pair = encode_pair(key, value)
        except UnsupportedParameterTypeError as exc:
            self._defer(exc)
            return self
        url = self.url or URL()
        self.url = url.with_query(f"{url.query}&{pair}" if url.query else pair)
        return self

    def set_timeout(self, timeout: float | None) -> Request:
        r"""Set the maximum seconds to wait for each attempt.

        A timeout that is not positive is reported by ``send`` as an
        ``InvalidParameterError`` and leaves the timeout unchanged.
        """
        if timeout is not None:
            try:
                validate_retry_params(0, self.backoff_factor, timeout=timeout)
            except ValueError as exc:
                self._defer(InvalidParameterError(str(exc), cause=exc))
                return self
        self.config.timeout = timeout
        return self

    def set_proxy(self, proxy: str | None) -> Request:
        r"""Send the request through a proxy.

        Args:
            proxy: The proxy URL, or None to connect directly.

        Returns:
            This request.
        """
        if proxy is not None:
            try:
                parse_reference(proxy)
            except MalformedReferenceError as exc:
                self._defer(exc)
                return self
        self.config.proxy = proxy
        self._release_client()
        return self

    def set_retry(
        self,
        max_retries: int,
        backoff_factor: float | None = None,
        jitter_factor: float | None = None,
    ) -> Request:
        r"""Configure the retries of ``send``.

        Args:
            max_retries: The number of retries after the first attempt.
            backoff_factor: An optional new backoff factor in seconds.
            jitter_factor: An optional new jitter factor.

        Returns:
            This request. A negative argument is reported by ``send``
                as an ``InvalidParameterError`` and changes nothing.
        """
        backoff_factor = self.backoff_factor if backoff_factor is None else backoff_factor
        jitter_factor = self.jitter_factor if jitter_factor is None else jitter_factor
        try:
            validate_retry_params(max_retries, backoff_factor, jitter_factor)
        except ValueError as exc:
            self._defer(InvalidParameterError(str(exc), cause=exc))
            return self
        self.tries = max_retries + 1
        self.backoff_factor = backoff_factor
        self.jitter_factor = jitter_factor
        return self

    def set_retry_policy(self, retry_policy: RetryPolicy | None) -> Request:
        self.retry_policy = retry_policy
        return self

    def set_body(
        self,
        content: bytes | None = None,
        *,
        text: str | None = None,
        json: Any = None,
    ) -> Request:
        r"""Set the request body.

        Only one of the arguments may be given. A missing
        ``Content-Type`` header defaults to ``text/plain`` for ``text``
        and ``application/json`` for ``json``. With no argument the
        body is empty.

        Args:
            content: Raw body bytes.
            text: A body string, encoded as UTF-8.
            json: Any value serializable by pydantic (dicts, lists,
                dataclasses, models, ...).

        Returns:
            This request.

        Raises:
            TypeError: If more than one body is given.
        """
        bodies = {"content": content, "text": text, "json": json}
        given = [name for name, value in bodies.items() if value is not None]
        if len(given) > 1:
            msg = f"only one body can be given, got {', '.join(given)}"
            raise TypeError(msg)

        if text is not None:
            self.body = text.encode("utf-8")
            self._default_content_type("text/plain; charset=utf-8")
        elif json is not None:
            try:
                self.body = to_json(json)
            except (PydanticSerializationError, TypeError, ValueError) as exc:
                self._defer(InvalidBodyError(f"invalid json body: {exc}", cause=exc))
                return self
            self._default_content_type("application/json")
        else:
            self.body = b"" if content is None else bytes(content)
        return self

    def post(
        self,
        content: bytes | None = None,
        *,
        text: str | None = None,
        json: Any = None,
    ) -> Request:
        r"""Set the request body, see ``set_body``, and the method to
        ``POST`` unless a method was already chosen."""
        if not self.method:
            self.method = "POST"
        return self.set_body(content, text=text, json=json)

    def send(self) -> httpx.Response | None:
        r"""Send the request, retrying transient failures.

        The previous response is closed and the attempt counter reset.
        The response body is not read yet.

        Returns:
            The last response received, whatever its status.

        Raises:
            HttpRequestError: The deferred setup error, if any.
            TransportError: If the last attempt failed in the transport.
        """
        self._reset_response()
        self.attempt = 0
        return send_with_automatic_retry(self)

    def resend(self) -> httpx.Response | None:
        r"""Send the request again, continuing the attempt count of the
        previous ``send``.

        Since ``attempt`` keeps growing, a request whose tries are
        exhausted is sent exactly once more.
        """
        return send_with_automatic_retry(self)

    def retry(self) -> httpx.Response | None:
        r"""Send the request again from scratch, see ``send``."""
        return self.send()

    def receive(self) -> httpx.Response:
        r"""Return the response, sending the request first if needed.

        Raises:
            MissingResponseError: If no response could be obtained.
            StatusError: If the response status is not 2xx.
        """
        response = self._receive()
        error = self._status_error()
        if error is not None:
            raise error
        return response

    def read(self) -> bytes:
        r"""Return the response body.

        The body stream is read once and cached; later calls return the
        same bytes.

        Returns:
            The body bytes.

        Raises:
            MissingResponseError: If no response could be obtained.
            StatusError: If the status is not 2xx. The body is still
                read and available as the ``content`` of the error.
            TransportError: If reading the body failed.
        """
        content, error = self._read()
        if error is not None:
            raise error
        return content

    def text(self) -> str:
        r"""Return the response body as text.

        Returns:
            The body decoded as UTF-8.

        Raises:
            InvalidUTF8Error: If the body is not valid UTF-8. The text
                is still available as the ``text`` of the error.
            StatusError: If the status is not 2xx.
        """
        text, error = self._text()
        if error is not None:
            raise error
        return text

    def json(self, target: Any = None) -> Any:
        r"""Decode the response body as JSON.

        A body starting with ``<`` (an HTML or XML error page) raises
        ``JsonLooksLikeXmlError`` instead of a parser error; use
        ``preview`` to see what was received.

        Args:
            target: An optional type (for example a pydantic model) the
                data is validated against.

        Returns:
            The decoded data.

        Raises:
            EmptyBodyError: If the body is empty.
            JsonLooksLikeXmlError: If the body starts with ``<``.
            MalformedBodyError: If the body is not valid JSON.
            StructuredDecodeError: If the data does not match
                ``target``.
            StatusError: If the status is not 2xx.
            InvalidUTF8Error: If the body is not valid UTF-8.
            JoinedError: If several of the errors above apply.
        """
        text, error = self._text()
        if error is not None:
            text = text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
        try:
            value = decode_json(text, target)
        except HttpRequestError as exc:
            joined = join_errors(error, exc)
            if joined is exc:
                raise
            raise joined from exc
        if error is not None:
            raise error
        return value

    def xml(self) -> Element:
        r"""Decode the response body as XML.

        If the body was not read yet, it is parsed straight from the
        transport stream, which cannot be read again afterwards: call
        ``xml`` before any other body method, or after one of them
        (then the cached body is parsed), but not twice.

        Returns:
            The root element.

        Raises:
            StatusError: If the status is not 2xx.
            EmptyBodyError: If the body is empty.
            UnsupportedCharsetError: If the declared encoding is not
                supported.
            MalformedBodyError: If the body is not well-formed.
            StreamConsumedError: If the stream was already parsed.
        """
        response = self.receive()
        if self._received.content == b"" or response.headers.get("Content-Length") == "0":
            raise EmptyBodyError()
        return parse_xml(self._received.stream())

    def preview(self) -> str:
        r"""Return an abbreviated first line of the response body for
        diagnostics.

        Errors are ignored: an unreadable response gives an empty
        preview.

        Returns:
            The body text cut by ``arequest.decoder.make_preview``,
                ending with ``...`` if cut.
        """
        try:
            text, _ = self._text()
        except HttpRequestError as exc:
            logger.debug(f"No preview of {self.url}: {exc}")
            return ""
        return make_preview(text)

    def close(self) -> None:
        r"""Close the response and the client owned by this request."""
        self._reset_response()
        self._release_client()

    def _release_client(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
        self._client = None
        self._owns_client = True

    def _defer(self, error: HttpRequestError) -> None:
        if self.error is None:
            self.error = error
        else:
            logger.debug(f"Ignoring setup error after {self.error!r}: {error}")

    def _default_content_type(self, content_type: str) -> None:
        if "Content-Type" not in self.headers:
            self.headers["Content-Type"] = content_type

    def _reset_response(self) -> None:
        if self._response is not None:
            self._response.close()
        self.response = None

    def _receive(self) -> httpx.Response:
        if self._response is None:
            try:
                self.send()
            except HttpRequestError as exc:
                raise MissingResponseError(f"missing response: {exc}", cause=exc) from exc
            if self._response is None:
                raise MissingResponseError()
        return self._response

    def _status_error(self) -> StatusError | None:
        if self.success:
            return None
        response = self._response
        return StatusError(
            response.status_code,
            response.reason_phrase,
            response=response,
            method=self.method or "GET",
            url=str(self.url),
        )

    def _read(self) -> tuple[bytes, StatusError | None]:
        self._receive()
        error = self._status_error()
        try:
            content = self._received.read()
        except TransportError:
            if error is None:
                raise
            content = self._received.content or b""
        if error is not None:
            error.content = content
        return content, error

    def _text(self) -> tuple[str, HttpRequestError | None]:
        content, error = self._read()
        try:
            text = decode_text(content)
        except InvalidUTF8Error as exc:
            return exc.text, error or exc
        return text, error
