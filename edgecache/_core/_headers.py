from __future__ import annotations

from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

CONTROL_HEADER = "x-HTML-Edge-Cache"
"""Header carrying the capability advertisement (to the origin) and the directive (from the origin)."""

STATUS_HEADER = "x-HTML-Edge-Cache-Status"
VERSION_HEADER = "x-HTML-Edge-Cache-Version"
SOURCE_HEADER = "x-Cache-Source"

PRESERVED_HEADER_PREFIX = "x-HTML-Edge-Cache-Header-"
PRESERVED_HEADERS = ("Cache-Control", "Expires", "Pragma")
"""Headers that are renamed while a response sits in the store."""

HeadersInput = Union[Mapping[str, Union[str, List[str]]], Iterable[Tuple[str, str]]]


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header map.

    Item assignment replaces every existing value of a field, `add` appends one.
    Reading a field joins its values with ", ".
    """

    def __init__(self, headers: Optional[HeadersInput] = None) -> None:
        self._headers: dict[str, list[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Mapping):
            for key, value in headers.items():
                self._headers[key.lower()] = [value] if isinstance(value, str) else list(value)
        else:
            for key, value in headers:
                self.add(key, value)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def copy(self) -> "Headers":
        return Headers({key: values[:] for key, values in self._headers.items()})

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


def cache_control_directives(value: Optional[str]) -> List[str]:
    """
    Split a Cache-Control value into lower-cased directive names.

    Values and quoted field lists are dropped, only the names are kept.

    >>> cache_control_directives('max-age=0, No-Cache')
    ['max-age', 'no-cache']
    """
    if not value:
        return []
    names = []
    for part in value.split(","):
        name = part.split("=", 1)[0].strip().lower()
        if name:
            names.append(name)
    return names


def has_no_cache(headers: Headers) -> bool:
    return "no-cache" in cache_control_directives(headers.get("cache-control"))


def cookie_header(headers: Headers) -> str:
    """Every Cookie line of a request, joined the way a single line would read."""
    return "; ".join(headers.get_list("cookie") or [])


def accepts_html(headers: Headers) -> bool:
    return "text/html" in headers.get("accept", "").lower()
