r"""Contain the exceptions raised while building, sending and decoding
HTTP requests."""

from __future__ import annotations

__all__ = [
    "EmptyBodyError",
    "ErrorKind",
    "HttpRequestError",
    "InvalidBodyError",
    "InvalidParameterError",
    "InvalidUTF8Error",
    "JoinedError",
    "JsonLooksLikeXmlError",
    "MalformedBodyError",
    "MalformedReferenceError",
    "MissingResponseError",
    "StatusError",
    "StreamConsumedError",
    "StructuredDecodeError",
    "TransportError",
    "UnsupportedCharsetError",
    "UnsupportedParameterTypeError",
    "join_errors",
]

import enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    import httpx


class ErrorKind(enum.Enum):
    r"""Enumerate the kinds of failure reported by ``arequest``."""

    MALFORMED_REFERENCE = "malformed_reference"
    UNSUPPORTED_PARAMETER_TYPE = "unsupported_parameter_type"
    INVALID_BODY = "invalid_body"
    INVALID_PARAMETER = "invalid_parameter"
    TRANSPORT = "transport"
    STATUS = "status"
    INVALID_UTF8 = "invalid_utf8"
    EMPTY_BODY = "empty_body"
    JSON_LOOKS_LIKE_XML = "json_looks_like_xml"
    STRUCTURED_DECODE = "structured_decode"
    MALFORMED_BODY = "malformed_body"
    UNSUPPORTED_CHARSET = "unsupported_charset"
    MISSING_RESPONSE = "missing_response"
    STREAM_CONSUMED = "stream_consumed"


class HttpRequestError(Exception):
    r"""Implement the base exception of all ``arequest`` failures.

    Errors are compared by kind rather than by identity, see
    ``is_kind``.

    Args:
        message: A human-readable error message.
        method: The HTTP method of the request, if known.
        url: The URL of the request, if known.
        cause: The lower-level exception that triggered this error.

    Example:
        ```pycon
        >>> from arequest.exceptions import ErrorKind, EmptyBodyError
        >>> error = EmptyBodyError()
        >>> error.is_kind(ErrorKind.EMPTY_BODY)
        True
        >>> str(error)
        'empty body'

        ```
    """

    kind: ClassVar[ErrorKind | None] = None

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def kinds(self) -> tuple[ErrorKind, ...]:
        r"""The error kinds carried by this exception."""
        return () if self.kind is None else (self.kind,)

    def is_kind(self, kind: ErrorKind) -> bool:
        r"""Indicate if this exception reports the given kind of
        failure.

        Args:
            kind: The error kind to look for.

        Returns:
            ``True`` if the kind is reported by this exception.
        """
        return kind in self.kinds


class MalformedReferenceError(HttpRequestError):
    r"""Raised when a URI reference cannot be parsed."""

    kind = ErrorKind.MALFORMED_REFERENCE

    def __init__(self, reference: str, reason: str, **kwargs) -> None:
        super().__init__(f"malformed reference {reference!r}: {reason}", **kwargs)
        self.reference = reference
        self.reason = reason


class UnsupportedParameterTypeError(HttpRequestError):
    r"""Raised when a parameter value cannot be turned into text."""

    kind = ErrorKind.UNSUPPORTED_PARAMETER_TYPE

    def __init__(self, key: str, value: object, **kwargs) -> None:
        super().__init__(
            f"unsupported type {type(value).__name__} for parameter {key!r}", **kwargs
        )
        self.key = key
        self.value = value


class InvalidBodyError(HttpRequestError):
    r"""Raised when a request body cannot be serialized."""

    kind = ErrorKind.INVALID_BODY


class InvalidParameterError(HttpRequestError):
    r"""Raised when a retry or timeout setting is out of range."""

    kind = ErrorKind.INVALID_PARAMETER


class TransportError(HttpRequestError):
    r"""Raised when the transport fails to deliver a response (DNS,
    connection, timeout)."""

    kind = ErrorKind.TRANSPORT


class StatusError(HttpRequestError):
    r"""Raised when a response has an unsuccessful (non-2xx) status.

    Args:
        status_code: The HTTP status code.
        reason_phrase: The HTTP reason phrase.
        response: The received response.
        content: The body bytes read so far, so an error page can
            still be inspected.
    """

    kind = ErrorKind.STATUS

    def __init__(
        self,
        status_code: int,
        reason_phrase: str = "",
        *,
        response: httpx.Response | None = None,
        content: bytes | None = None,
        **kwargs,
    ) -> None:
        status = f"{status_code} {reason_phrase}".rstrip()
        super().__init__(f"unsuccessful response code {status}", **kwargs)
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.response = response
        self.content = content


class InvalidUTF8Error(HttpRequestError):
    r"""Raised when a response body is not valid UTF-8.

    The error is advisory: ``text`` holds the body decoded with
    ``surrogateescape``, so it encodes back to the original bytes.
    """

    kind = ErrorKind.INVALID_UTF8

    def __init__(self, text: str = "", **kwargs) -> None:
        super().__init__("response body contains invalid UTF-8", **kwargs)
        self.text = text


class EmptyBodyError(HttpRequestError):
    r"""Raised when a JSON or XML document was expected but the body is
    empty."""

    kind = ErrorKind.EMPTY_BODY

    def __init__(self, message: str = "empty body", **kwargs) -> None:
        super().__init__(message, **kwargs)


class JsonLooksLikeXmlError(HttpRequestError):
    r"""Raised when a JSON body starts with ``<``, typically an HTML or
    XML error page."""

    kind = ErrorKind.JSON_LOOKS_LIKE_XML

    def __init__(self, message: str = "initial '<' indicates xml not json", **kwargs) -> None:
        super().__init__(message, **kwargs)


class StructuredDecodeError(HttpRequestError):
    r"""Raised when decoded data does not match the requested type.

    Args:
        message: A human-readable error message.
        field: The dotted location of the first mismatching field.
    """

    kind = ErrorKind.STRUCTURED_DECODE

    def __init__(self, message: str, *, field: str | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.field = field


class MalformedBodyError(HttpRequestError):
    r"""Raised when a JSON or XML body has a syntax error.

    Args:
        message: A human-readable error message.
        position: The offset of the syntax error, if known.
    """

    kind = ErrorKind.MALFORMED_BODY

    def __init__(self, message: str, *, position: object = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.position = position


class UnsupportedCharsetError(HttpRequestError):
    r"""Raised when an XML document declares an unsupported
    encoding."""

    kind = ErrorKind.UNSUPPORTED_CHARSET

    def __init__(self, charset: str, **kwargs) -> None:
        super().__init__(f"unsupported xml encoding {charset!r}", **kwargs)
        self.charset = charset


class MissingResponseError(HttpRequestError):
    r"""Raised when a body is decoded but no response could be
    obtained."""

    kind = ErrorKind.MISSING_RESPONSE

    def __init__(self, message: str = "missing response", **kwargs) -> None:
        super().__init__(message, **kwargs)


class StreamConsumedError(HttpRequestError):
    r"""Raised when the single-use response stream was already decoded
    without being cached."""

    kind = ErrorKind.STREAM_CONSUMED

    def __init__(
        self, message: str = "response stream was already consumed", **kwargs
    ) -> None:
        super().__init__(message, **kwargs)


class JoinedError(HttpRequestError):
    r"""Group several errors that apply to the same result.

    Args:
        errors: The grouped errors, in order of occurrence.

    Example:
        ```pycon
        >>> from arequest.exceptions import (
        ...     ErrorKind,
        ...     EmptyBodyError,
        ...     InvalidUTF8Error,
        ...     JoinedError,
        ... )
        >>> error = JoinedError([InvalidUTF8Error(), EmptyBodyError()])
        >>> error.is_kind(ErrorKind.INVALID_UTF8), error.is_kind(ErrorKind.EMPTY_BODY)
        (True, True)

        ```
    """

    def __init__(self, errors: list[HttpRequestError], **kwargs) -> None:
        super().__init__("\n".join(str(error) for error in errors), **kwargs)
        self.errors = tuple(errors)

    @property
    def kinds(self) -> tuple[ErrorKind, ...]:
        return tuple(kind for error in self.errors for kind in error.kinds)

    def get(self, kind: ErrorKind) -> HttpRequestError | None:
        r"""Return the first grouped error of the given kind.

        Args:
            kind: The error kind to look for.

        Returns:
            The matching error, or None if the kind is absent.
        """
        for error in self.errors:
            if error.is_kind(kind):
                return error
        return None


def join_errors(*errors: HttpRequestError | None) -> HttpRequestError | None:
    r"""Combine errors, ignoring missing ones.

    Args:
        *errors: The errors to combine. None values are skipped.

    Returns:
        None if no error is given, the error itself if only one is
            given, otherwise a ``JoinedError`` grouping all of them.

    Example:
        ```pycon
        >>> from arequest.exceptions import EmptyBodyError, join_errors
        >>> join_errors(None, None) is None
        True
        >>> error = EmptyBodyError()
        >>> join_errors(None, error) is error
        True

        ```
    """
    present = [error for error in errors if error is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return JoinedError(present)
