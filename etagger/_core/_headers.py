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

HeadersInput = Union[Mapping[str, Union[str, List[str]]], Iterable[Tuple[str, str]]]


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued HTTP header collection.

    Item assignment replaces every value stored under a name, ``add`` appends
    one more value. Reading an item joins repeated values with ``", "``.

    Example:
        ```python
        >>> headers = Headers({"Cache-Control": "no-cache"})
        >>> headers.add("Set-Cookie", "a=1")
        >>> headers.add("set-cookie", "b=2")
        >>> headers["SET-COOKIE"]
        'a=1, b=2'
        >>> headers.multi_items()
        [('cache-control', 'no-cache'), ('set-cookie', 'a=1'), ('set-cookie', 'b=2')]
        ```
    """

    def __init__(self, headers: Optional[HeadersInput] = None) -> None:
        self._headers: dict[str, List[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Mapping):
            for key, value in headers.items():
                self._headers[key.lower()] = [value] if isinstance(value, str) else value[:]
        else:
            for key, value in headers:
                self.add(key, value)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

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
        return f"{type(self).__name__}({self.multi_items()!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers
