r"""Contain the URL value and the functions to build it incrementally
from URI reference fragments."""

from __future__ import annotations

__all__ = ["URL", "merge_url", "parse_reference"]

import logging
import re
from dataclasses import dataclass, replace
from urllib.parse import urlsplit

from arequest.exceptions import MalformedReferenceError

logger: logging.Logger = logging.getLogger(__name__)

_CONTROL_CHARACTER = re.compile(r"[\x00-\x1f\x7f]")
_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class URL:
    r"""Implement an immutable URL split into its RFC 3986 components.

    The components are kept as written (no percent-decoding), so a
    parsed reference serializes back to the same string.

    Args:
        scheme: The scheme without the trailing colon.
        userinfo: The user information before ``@``, or None if the
            URL has none.
        host: The host, including an optional ``:port``.
        path: The path.
        query: The raw query without the leading ``?``.
        fragment: The fragment without the leading ``#``.
        force_query: Whether a ``?`` is written even if the query is
            empty.

    Example:
        ```pycon
        >>> from arequest.url import URL
        >>> url = URL.parse("https://user@example.com:8080/data?page=2#top")
        >>> url.host, url.path, url.query
        ('example.com:8080', '/data', 'page=2')
        >>> str(url)
        'https://user@example.com:8080/data?page=2#top'

        ```
    """

    scheme: str = ""
    userinfo: str | None = None
    host: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""
    force_query: bool = False

    @classmethod
    def parse(cls, reference: str) -> URL:
        r"""Parse a URI reference, see ``parse_reference``."""
        return parse_reference(reference)

    @property
    def username(self) -> str | None:
        if self.userinfo is None:
            return None
        return self.userinfo.partition(":")[0]

    @property
    def password(self) -> str | None:
        if self.userinfo is None or ":" not in self.userinfo:
            return None
        return self.userinfo.partition(":")[2]

    def with_query(self, query: str) -> URL:
        r"""Return a copy of this URL with its raw query replaced.

        Args:
            query: The new raw query, without the leading ``?``.

        Returns:
            The updated URL.
        """
        return replace(self, query=query)

    def __str__(self) -> str:
        result = ""
        if self.scheme:
            result += f"{self.scheme}:"
        has_authority = bool(self.host) or self.userinfo is not None
        if (self.scheme or has_authority) and (has_authority or self.path.startswith("/")):
            result += "//"
            if self.userinfo is not None:
                result += f"{self.userinfo}@"
            result += self.host
        path = self.path
        if path and not path.startswith("/") and self.host:
            result += "/"
        if not result and ":" in path.partition("/")[0]:
            # keep a colon in the first segment from reading as a scheme
            result += "./"
        result += path
        if self.query or self.force_query:
            result += f"?{self.query}"
        if self.fragment:
            result += f"#{self.fragment}"
        return result


def parse_reference(reference: str) -> URL:
    r"""Parse a possibly partial URI reference.

    Args:
        reference: The URI reference, for example ``"/path?key=value"``
            or ``"https://example.com"``.

    Returns:
        The parsed URL. ``force_query`` is set when the reference
            contains a bare ``?`` without a query.

    Raises:
        MalformedReferenceError: If the reference cannot be parsed.

    Example:
        ```pycon
        >>> from arequest.url import parse_reference
        >>> url = parse_reference("//localhost/basepath?")
        >>> url.host, url.path, url.query, url.force_query
        ('localhost', '/basepath', '', True)

        ```
    """
    if _CONTROL_CHARACTER.search(reference):
        raise MalformedReferenceError(reference, "invalid control character")
    if reference.startswith(":"):
        raise MalformedReferenceError(reference, "missing protocol scheme")
    # the raw query is kept as written
    head, hash_, fragment = reference.partition("#")
    if _INVALID_ESCAPE.search(head.partition("?")[0] + hash_ + fragment):
        raise MalformedReferenceError(reference, "invalid URL escape")
    try:
        parts = urlsplit(reference)
        parts.port  # noqa: B018
    except ValueError as exc:
        raise MalformedReferenceError(reference, str(exc), cause=exc) from exc

    userinfo: str | None = None
    host = parts.netloc
    if "@" in host:
        userinfo, _, host = host.rpartition("@")
    return URL(
        scheme=parts.scheme,
        userinfo=userinfo,
        host=host,
        path=parts.path,
        query=parts.query,
        fragment=parts.fragment,
        force_query=not parts.query and "?" in reference.partition("#")[0],
    )


def merge_url(base: URL | None, reference: str) -> URL:
    r"""Combine a base URL with a URI reference.

    Each component given by the reference overrides the base:

    - scheme, user information and host are replaced when present.
    - the query is replaced when the reference has one, or ends with a
      bare ``?`` which clears it.
    - an unescaped ``&`` in the reference path appends everything after
      it to the existing query instead, so ``"&extra=1"`` adds a
      parameter where ``"?extra=1"`` replaces them all. An escaped
      ``%26`` is part of the path.
    - an absolute path replaces the base path, a relative path is
      appended after a single ``/``.
    - the fragment is always taken from the reference.

    Args:
        base: The URL to extend, or None to use the reference as is.
        reference: The URI reference to merge.

    Returns:
        A new URL. The base URL is never modified.

    Raises:
        MalformedReferenceError: If the reference cannot be parsed.

    Example:
        ```pycon
        >>> from arequest.url import URL, merge_url
        >>> base = URL.parse("//localhost/basepath?init=first")
        >>> str(merge_url(base, "subpath/2?init=second#only+here"))
        '//localhost/basepath/subpath/2?init=second#only+here'
        >>> str(merge_url(base, "&more=1"))
        '//localhost/basepath?init=first&more=1'

        ```
    """
    ref = parse_reference(reference)
    if base is None:
        return ref

    query = base.query
    if ref.query or ref.force_query:
        query = ref.query

    path = ref.path
    cut = path.find("&")
    if cut >= 0:
        extra = path[cut + 1 :]
        path = path[:cut]
        query = f"{query}&{extra}" if query else extra

    if not path:
        path = base.path
    elif not path.startswith("/"):
        path = f"{base.path.rstrip('/')}/{path}"

    merged = URL(
        scheme=ref.scheme or base.scheme,
        userinfo=base.userinfo if ref.userinfo is None else ref.userinfo,
        host=ref.host or base.host,
        path=path,
        query=query,
        fragment=ref.fragment,
    )
    logger.debug(f"Merged {reference!r} into {base}: {merged}")
    return merged
