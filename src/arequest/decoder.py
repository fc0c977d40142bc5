r"""Contain the decoding of response bodies into bytes, text, JSON and
XML.

The body of a streamed ``httpx.Response`` can be read only once.
``ResponseBody`` reads it on first use and caches the bytes, so every
later text or JSON view derives from the same buffer. XML is the
exception: it is parsed straight from the live stream when nothing is
cached yet, after which the stream is gone for good.
"""

from __future__ import annotations

__all__ = [
    "ResponseBody",
    "decode_json",
    "decode_text",
    "make_preview",
    "parse_xml",
]

import codecs
import json
import logging
import re
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import Element, ParseError, XMLParser

import httpx
from pydantic import TypeAdapter, ValidationError

from arequest.config import PREVIEW_LENGTH
from arequest.exceptions import (
    EmptyBodyError,
    InvalidUTF8Error,
    JsonLooksLikeXmlError,
    MalformedBodyError,
    StreamConsumedError,
    StructuredDecodeError,
    TransportError,
    UnsupportedCharsetError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger: logging.Logger = logging.getLogger(__name__)

_XML_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z0-9._:-]+)["']""")
# Bytes buffered while looking for the end of an XML declaration
_XML_DECLARATION_LIMIT = 1024

# Declared encodings fed to the parser as they are
_XML_NATIVE_CHARSETS = ("utf-8", "us-ascii")
# Declared encodings decoded through a single-byte code page first
_XML_CODE_PAGES = {"iso-8859-1": "cp1252", "windows-1252": "cp1252"}


class ResponseBody:
    r"""Implement a cache around the single-use body stream of a
    response.

    Args:
        response: A response received with ``stream=True``.

    Example:
        ```pycon
        >>> import httpx
        >>> from arequest.decoder import ResponseBody
        >>> body = ResponseBody(httpx.Response(200, content=b"hello"))
        >>> body.read()
        b'hello'
        >>> body.read() is body.read()
        True

        ```
    """

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self._content: bytes | None = None
        self._stream_consumed = False

    @property
    def content(self) -> bytes | None:
        r"""The cached body, or None if it has not been read yet."""
        return self._content

    @property
    def is_stream_consumed(self) -> bool:
        return self._stream_consumed

    def read(self) -> bytes:
        r"""Read the whole body once and cache it.

        Returns:
            The body bytes. Later calls return the cached bytes without
                touching the transport.

        Raises:
            StreamConsumedError: If the stream was consumed without
                caching, for example by a streaming XML decode.
            TransportError: If the transport fails while reading. The
                bytes received so far are cached.
        """
        if self._content is not None:
            return self._content
        if self._stream_consumed:
            raise StreamConsumedError()

        chunks: list[bytes] = []
        self._stream_consumed = True
        try:
            for chunk in self.response.iter_bytes():
                chunks.append(chunk)
        except (httpx.HTTPError, httpx.StreamError) as exc:
            self._content = b"".join(chunks)
            raise TransportError(f"failed to read response body: {exc}", cause=exc) from exc
        finally:
            self.response.close()
        self._content = b"".join(chunks)
        logger.debug(f"Read {len(self._content)} bytes of response body")
        return self._content

    def stream(self) -> Iterable[bytes]:
        r"""Iterate over the body without caching it.

        The cached bytes are used if the body was already read.

        Raises:
            StreamConsumedError: If the stream was already consumed
                without caching.
        """
        if self._content is not None:
            return [self._content]
        if self._stream_consumed:
            raise StreamConsumedError()
        self._stream_consumed = True
        return self._iter_stream()

    def _iter_stream(self) -> Iterable[bytes]:
        try:
            yield from self.response.iter_bytes()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise TransportError(f"failed to read response body: {exc}", cause=exc) from exc
        finally:
            self.response.close()

    def close(self) -> None:
        self.response.close()


def decode_text(content: bytes) -> str:
    r"""Decode a body as UTF-8.

    Args:
        content: The body bytes.

    Returns:
        The decoded text.

    Raises:
        InvalidUTF8Error: If the bytes are not valid UTF-8. The error
            holds the text decoded with ``surrogateescape``.

    Example:
        ```pycon
        >>> from arequest.decoder import decode_text
        >>> decode_text("Eĥoŝanĝo".encode())
        'Eĥoŝanĝo'

        ```
    """
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidUTF8Error(content.decode("utf-8", "surrogateescape"), cause=exc) from exc


def decode_json(text: str, target: Any = None) -> Any:
    r"""Decode a JSON document.

    Args:
        text: The JSON text.
        target: An optional type (for example a pydantic model) the
            data is validated against.

    Returns:
        The decoded data, converted to ``target`` if given.

    Raises:
        EmptyBodyError: If the text is empty.
        JsonLooksLikeXmlError: If the text starts with ``<``.
        MalformedBodyError: If the text is not valid JSON.
        StructuredDecodeError: If the data does not match ``target``.

    Example:
        ```pycon
        >>> from arequest.decoder import decode_json
        >>> decode_json('{"data": "\\u2714", "rows": []}')
        {'data': '✔', 'rows': []}

        ```
    """
    if not text:
        raise EmptyBodyError()
    if text[0] == "<":
        raise JsonLooksLikeXmlError()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedBodyError(str(exc), position=exc.pos, cause=exc) from exc
    if target is None:
        return data

    try:
        return TypeAdapter(target).validate_python(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise StructuredDecodeError(
            f"cannot decode field {field!r}: {first['msg']}", field=field or None, cause=exc
        ) from exc


def parse_xml(chunks: Iterable[bytes]) -> Element:
    r"""Parse an XML document incrementally.

    The declared encoding is honored for a small set of charsets:
    UTF-8, US-ASCII (a subset of UTF-8), ISO-8859-1 and Windows-1252
    (both decoded with the Windows-1252 code page).

    Args:
        chunks: The document bytes, possibly split in several chunks.

    Returns:
        The root element.

    Raises:
        EmptyBodyError: If there is no data at all.
        UnsupportedCharsetError: If another encoding is declared.
        MalformedBodyError: If the document is not well-formed.

    Example:
        ```pycon
        >>> from arequest.decoder import parse_xml
        >>> root = parse_xml([b'<slideshow title="Sample', b' Slide Show"/>'])
        >>> root.get("title")
        'Sample Slide Show'

        ```
    """
    parser: XMLParser | None = None
    decoder: codecs.IncrementalDecoder | None = None
    head = b""
    try:
        for chunk in chunks:
            if parser is None:
                head += chunk
                if b">" not in head and len(head) < _XML_DECLARATION_LIMIT:
                    continue
                parser, decoder = _make_xml_parser(head)
                chunk = head
            _feed(parser, decoder, chunk)
        if parser is None:
            if not head:
                raise EmptyBodyError()
            parser, decoder = _make_xml_parser(head)
            _feed(parser, decoder, head)
        if decoder is not None:
            parser.feed(decoder.decode(b"", final=True))
        return parser.close()
    except ParseError as exc:
        raise MalformedBodyError(f"invalid xml: {exc}", position=exc.position, cause=exc) from exc


def _make_xml_parser(head: bytes) -> tuple[XMLParser, codecs.IncrementalDecoder | None]:
    match = _XML_ENCODING.match(head)
    charset = match.group(1).decode("ascii") if match else None
    name = (charset or "utf-8").lower()
    if name in _XML_NATIVE_CHARSETS:
        return XMLParser(), None
    if name in _XML_CODE_PAGES:
        # text fed as str is parsed as UTF-8 whatever the declaration says
        logger.debug(f"Decoding xml declared as {charset} with {_XML_CODE_PAGES[name]}")
        decoder = codecs.getincrementaldecoder(_XML_CODE_PAGES[name])(errors="replace")
        return XMLParser(), decoder
    raise UnsupportedCharsetError(charset or name)


def _feed(parser: XMLParser, decoder: codecs.IncrementalDecoder | None, chunk: bytes) -> None:
    if decoder is None:
        parser.feed(chunk)
    else:
        parser.feed(decoder.decode(chunk))


def make_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    r"""Abbreviate the first line of a body for diagnostics.

    Args:
        text: The body text.
        length: The maximum length of the preview.

    Returns:
        The text cut to ``length`` characters. A line break before
            that point moves the cut to three characters past it, so a
            line break in the last three positions gives up to
            ``length + 2`` characters. A cut text ends with ``...``.

    Example:
        ```pycon
        >>> from arequest.decoder import make_preview
        >>> make_preview("<?xml version='1.0'?>\n<slideshow/>\n")
        "<?xml version='1.0'?>..."
        >>> make_preview("short")
        'short'

        ```
    """
    cut = length
    eol = text.find("\n")
    if 0 < eol < cut:
        cut = eol + 3
    if cut < len(text):
        return text[: cut - 3] + "..."
    return text
