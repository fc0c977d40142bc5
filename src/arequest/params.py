r"""Contain the ordered multi-map used to build URL query strings."""

from __future__ import annotations

__all__ = ["QueryParameters", "encode_pair"]

from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, quote_plus

from arequest.utils import stringify_value

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


def encode_pair(key: str, value: object = None) -> str:
    r"""Percent-encode one query parameter.

    Args:
        key: The parameter name.
        value: The parameter value. None encodes the bare key without
            ``=``.

    Returns:
        The encoded ``key=value`` pair.

    Raises:
        UnsupportedParameterTypeError: If the value cannot be
            stringified.

    Example:
        ```pycon
        >>> from arequest.params import encode_pair
        >>> encode_pair("reset", "&again")
        'reset=%26again'
        >>> encode_pair("empty")
        'empty'

        ```
    """
    if value is None:
        return quote_plus(key, safe="")
    return f"{quote_plus(key, safe='')}={quote_plus(stringify_value(key, value), safe='')}"


class QueryParameters:
    r"""Implement an ordered multi-map of query parameters.

    Keys keep the order of their first appearance and the values of a
    key keep their append order. A None value is a bare key.

    Args:
        params: Optional initial parameters. A sequence value adds one
            pair per item.

    Example:
        ```pycon
        >>> from arequest.params import QueryParameters
        >>> params = QueryParameters({"reset": ["replaced", "&double"]})
        >>> params.add("number", 42)
        >>> params.add("flag", None)
        >>> params.encode()
        'reset=replaced&reset=%26double&number=42&flag'

        ```
    """

    def __init__(self, params: Mapping[str, object] | None = None) -> None:
        self._values: dict[str, list[str | None]] = {}
        for key, value in (params or {}).items():
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(key, item)
            else:
                self.add(key, value)

    @classmethod
    def parse(cls, query: str) -> QueryParameters:
        r"""Read the parameters of a raw query string.

        Args:
            query: The raw query, without the leading ``?``.

        Returns:
            The decoded parameters. Keys without ``=`` get an empty
                value.
        """
        params = cls()
        for key, value in parse_qsl(query, keep_blank_values=True):
            params.add(key, value)
        return params

    def set(self, key: str, value: object) -> None:
        r"""Replace all the values of a key.

        Raises:
            UnsupportedParameterTypeError: If the value cannot be
                stringified. The previous values are kept.
        """
        text = None if value is None else stringify_value(key, value)
        self._values[key] = [text]

    def add(self, key: str, value: object) -> None:
        r"""Append a value to a key.

        Raises:
            UnsupportedParameterTypeError: If the value cannot be
                stringified.
        """
        text = None if value is None else stringify_value(key, value)
        self._values.setdefault(key, []).append(text)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def get(self, key: str, default: str | None = None) -> str | None:
        r"""Return the first value of a key, or ``default`` if the key
        is missing."""
        values = self._values.get(key)
        if not values:
            return default
        return values[0]

    def get_list(self, key: str) -> list[str | None]:
        return list(self._values.get(key, []))

    def items(self) -> Iterator[tuple[str, str | None]]:
        r"""Iterate over all the ``(key, value)`` pairs in encoding
        order."""
        for key, values in self._values.items():
            for value in values:
                yield key, value

    def copy(self) -> QueryParameters:
        params = QueryParameters()
        params._values = {key: list(values) for key, values in self._values.items()}
        return params

    def encode(self) -> str:
        r"""Return the percent-encoded query string.

        Returns:
            The ``k1=v1&k1=v2&k2=v3`` query, without the leading ``?``.
        """
        return "&".join(encode_pair(key, value) for key, value in self.items())

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryParameters):
            return NotImplemented
        return list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({self.encode()!r})"
