from __future__ import annotations

import typing as tp
from datetime import timedelta

from typing_extensions import Self

from etagger._utils import to_seconds

__all__ = ("CacheControl", "parse_cache_control")

Duration = tp.Union[timedelta, int, float]

_TCHARS = frozenset("!#$%&'*+-.^_`|~0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
_OWS = " \t"

_MAX_SECONDS = 2147483647


class CacheControl:
    """
    Builder for ``Cache-Control`` response header values.

    Only response directives are supported. They always serialize in the
    same order, whatever order they were added in:

    - max-age [RFC9111, Section 5.2.2.1]
    - no-cache [RFC9111, Section 5.2.2.4]
    - no-store [RFC9111, Section 5.2.2.5]
    - must-revalidate [RFC9111, Section 5.2.2.2]
    - no-transform [RFC9111, Section 5.2.2.6]
    - public [RFC9111, Section 5.2.2.9]
    - private [RFC9111, Section 5.2.2.7]
    - proxy-revalidate [RFC9111, Section 5.2.2.8]
    - s-maxage [RFC9111, Section 5.2.2.10]

    Start from one of the factories (``empty``, ``max_age``, ``no_cache``,
    ``no_store``) and chain the remaining directives, or pass every
    directive to the constructor as a keyword argument. Chained calls mutate
    the instance and return it. Conflicting combinations such as ``public``
    together with ``private`` are not rejected.

    Example:
        ```python
        >>> CacheControl.max_age(timedelta(hours=1)).no_transform().cache_public().header_value()
        'max-age=3600, no-transform, public'
        >>> CacheControl.no_store().header_value()
        'no-store'
        >>> CacheControl.empty().header_value() is None
        True
        ```

    Cache-Control headers are most useful next to a validator such as the
    ``ETag`` header set by the shallow ETag middleware.
    """

    def __init__(
        self,
        *,
        max_age: tp.Optional[Duration] = None,
        no_cache: bool = False,
        no_store: bool = False,
        must_revalidate: bool = False,
        no_transform: bool = False,
        public: bool = False,
        private: bool = False,
        proxy_revalidate: bool = False,
        s_maxage: tp.Optional[Duration] = None,
    ) -> None:
        self._max_age = -1 if max_age is None else to_seconds(max_age)
        self._no_cache = no_cache
        self._no_store = no_store
        self._must_revalidate = must_revalidate
        self._no_transform = no_transform
        self._public = public
        self._private = private
        self._proxy_revalidate = proxy_revalidate
        self._s_maxage = -1 if s_maxage is None else to_seconds(s_maxage)

    @classmethod
    def empty(cls) -> Self:
        """
        Return an instance without any directive.

        Useful for combining the optional directives without "max-age",
        "no-cache" or "no-store".
        """
        return cls()

    @classmethod
    def max_age(cls, duration: Duration) -> Self:
        """
        Return an instance with a "max-age=" directive.

        Suited for resources that are known not to change within the given
        time. Combine with ``must_revalidate`` to stop caches from reusing
        the response once it became stale.

        Args:
            duration: A ``timedelta`` or a number of seconds. Fractions of a
                second are dropped. Negative durations are not supported.
        """
        return cls(max_age=duration)

    @classmethod
    def no_cache(cls) -> Self:
        """
        Return an instance with a "no-cache" directive.

        Caches may store the response but have to revalidate it with the
        origin before reuse, typically with a conditional request answered
        by ``304 Not Modified``. Use ``no_store`` to disable caching.
        """
        return cls(no_cache=True)

    @classmethod
    def no_store(cls) -> Self:
        """Return an instance with a "no-store" directive."""
        return cls(no_store=True)

    def must_revalidate(self) -> Self:
        """Add a "must-revalidate" directive."""
        self._must_revalidate = True
        return self

    def no_transform(self) -> Self:
        """
        Add a "no-transform" directive.

        Intermediaries should not transform the content, e.g. compress or
        optimize it.
        """
        self._no_transform = True
        return self

    def cache_public(self) -> Self:
        """Add a "public" directive."""
        self._public = True
        return self

    def cache_private(self) -> Self:
        """Add a "private" directive."""
        self._private = True
        return self

    def proxy_revalidate(self) -> Self:
        """Add a "proxy-revalidate" directive."""
        self._proxy_revalidate = True
        return self

    def s_max_age(self, duration: Duration) -> Self:
        """
        Add an "s-maxage=" directive.

        In shared caches it overrides the maximum age given by other
        directives. ``duration`` is converted like in ``max_age``.
        """
        self._s_maxage = to_seconds(duration)
        return self

    @property
    def max_age_seconds(self) -> tp.Optional[int]:
        return None if self._max_age == -1 else self._max_age

    @property
    def s_maxage_seconds(self) -> tp.Optional[int]:
        return None if self._s_maxage == -1 else self._s_maxage

    def header_value(self) -> tp.Optional[str]:
        """
        Return the ``Cache-Control`` header value.

        Returns:
            The directives joined with ``", "``, or ``None`` when no directive
            was added, meaning the header should be omitted.
        """
        value = ", ".join(self)
        return value or None

    def __iter__(self) -> tp.Iterator[str]:
        if self._max_age != -1:
            yield f"max-age={self._max_age}"
        if self._no_cache:
            yield "no-cache"
        if self._no_store:
            yield "no-store"
        if self._must_revalidate:
            yield "must-revalidate"
        if self._no_transform:
            yield "no-transform"
        if self._public:
            yield "public"
        if self._private:
            yield "private"
        if self._proxy_revalidate:
            yield "proxy-revalidate"
        if self._s_maxage != -1:
            yield f"s-maxage={self._s_maxage}"

    def __contains__(self, directive: object) -> bool:
        if not isinstance(directive, str):
            return False
        return directive.lower() in (token.split("=", 1)[0] for token in self)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CacheControl) and list(self) == list(other)

    def __str__(self) -> str:
        return self.header_value() or ""

    def __repr__(self) -> str:
        fields = ", ".join(self)
        if not fields:
            return f"<{type(self).__name__}>"
        return f"<{type(self).__name__} {fields}>"


def parse_cache_control(value: tp.Optional[str]) -> CacheControl:
    """
    Parse a received ``Cache-Control`` header value.

    Only the directives ``CacheControl`` knows about are kept, everything
    else is skipped. Malformed input never raises: invalid numbers and
    unterminated quoted strings are ignored.

    Examples:
        >>> "no-store" in parse_cache_control("private, no-store")
        True
        >>> "no-store" in parse_cache_control('no-cache="no-store"')
        False
        >>> parse_cache_control("public, max-age=60").max_age_seconds
        60
    """
    cc = CacheControl()
    if not value:
        return cc
    for name, argument in _iter_directives(value):
        _apply_directive(cc, name, argument)
    return cc


def _iter_directives(value: str) -> tp.Iterator[tuple[str, tp.Optional[str]]]:
    i = 0
    length = len(value)

    while i < length:
        if value[i] in _OWS or value[i] == ",":
            i += 1
            continue

        j = i
        while j < length and value[j] in _TCHARS:
            j += 1
        if j == i:
            i += 1
            continue
        name = value[i:j].lower()

        while j < length and value[j] in _OWS:
            j += 1
        if j >= length or value[j] != "=":
            yield name, None
            i = j
            continue

        j += 1
        while j < length and value[j] in _OWS:
            j += 1
        if j < length and value[j] == '"':
            eaten, argument = _unquote(value[j:])
            if eaten == -1:
                return
            i = j + eaten
        else:
            k = j
            while k < length and value[k] not in _OWS and value[k] != ",":
                k += 1
            argument = value[j:k]
            i = k
        yield name, argument


def _unquote(raw: str) -> tuple[int, str]:
    # raw starts with the opening quote; (-1, "") when the string never closes
    buf: list[str] = []
    i = 1
    while i < len(raw):
        char = raw[i]
        if char == '"':
            return i + 1, "".join(buf)
        if char == "\\":
            if i + 1 >= len(raw):
                break
            buf.append(raw[i + 1])
            i += 2
            continue
        buf.append(char)
        i += 1
    return -1, ""


def _parse_seconds(argument: str) -> int:
    try:
        seconds = int(argument)
    except ValueError:
        return -1
    return min(seconds, _MAX_SECONDS) if seconds >= 0 else -1


def _apply_directive(cc: CacheControl, name: str, argument: tp.Optional[str]) -> None:
    if argument is not None:
        if name == "max-age":
            cc._max_age = _parse_seconds(argument)
        elif name == "s-maxage":
            cc._s_maxage = _parse_seconds(argument)
        elif name == "no-cache":
            cc._no_cache = True
        elif name == "no-store":
            cc._no_store = True
        elif name == "private":
            cc._private = True
        return

    if name == "no-cache":
        cc._no_cache = True
    elif name == "no-store":
        cc._no_store = True
    elif name == "must-revalidate":
        cc._must_revalidate = True
    elif name == "no-transform":
        cc._no_transform = True
    elif name == "public":
        cc._public = True
    elif name == "private":
        cc._private = True
    elif name == "proxy-revalidate":
        cc._proxy_revalidate = True
