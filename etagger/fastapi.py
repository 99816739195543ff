from __future__ import annotations

import typing as t

from etagger._core._cache_control import CacheControl, Duration

try:
    import fastapi
except ImportError as e:
    raise ImportError(
        "fastapi is required to use etagger.fastapi module. "
        "Please install etagger with the 'fastapi' extra, "
        "e.g., 'pip install etagger[fastapi]'."
    ) from e


def cache(
    cache_control: CacheControl | None = None,
    *,
    max_age: Duration | None = None,
    s_maxage: Duration | None = None,
    public: bool = False,
    private: bool = False,
    no_cache: bool = False,
    no_store: bool = False,
    no_transform: bool = False,
    must_revalidate: bool = False,
    proxy_revalidate: bool = False,
) -> t.Any:
    """
    Add a ``Cache-Control`` header to FastAPI responses.

    Either pass a ready ``CacheControl`` value, or the directives as keyword
    arguments, not both.
    Directives always appear in the same order in the header, see
    ``CacheControl``.

    Args:
        cache_control: A prepared directive set.
        max_age: Maximum time a response can be cached, as a ``timedelta``
            or in seconds. [RFC 9111, Section 5.2.2.1]
        s_maxage: Like ``max_age``, for shared caches only.
            [RFC 9111, Section 5.2.2.10]
        public: Any cache may store the response. [RFC 9111, Section 5.2.2.9]
        private: Only private caches may store the response.
            [RFC 9111, Section 5.2.2.7]
        no_cache: Caches must revalidate before reusing the response.
            [RFC 9111, Section 5.2.2.4]
        no_store: The response must not be stored by any cache. This also
            keeps the shallow ETag middleware from adding an ETag.
            [RFC 9111, Section 5.2.2.5]
        no_transform: Intermediaries must not transform the content.
            [RFC 9111, Section 5.2.2.6]
        must_revalidate: Stale responses must be revalidated.
            [RFC 9111, Section 5.2.2.2]
        proxy_revalidate: Like ``must_revalidate``, for shared caches only.
            [RFC 9111, Section 5.2.2.8]

    Returns:
        A dependency that sets the header on the response. Nothing is set
        when no directive was given.

    Examples:
        >>> from fastapi import FastAPI
        >>> from etagger.fastapi import cache
        >>>
        >>> app = FastAPI()
        >>>
        >>> @app.get("/static/logo.png", dependencies=[cache(max_age=31536000, public=True)])
        >>> async def get_logo():
        ...     return {"image": "logo.png"}
        >>>
        >>> @app.get("/api/secrets", dependencies=[cache(CacheControl.no_store())])
        >>> async def get_secrets():
        ...     return {"secret": "value"}
    """
    directives = dict(
        max_age=max_age,
        s_maxage=s_maxage,
        public=public,
        private=private,
        no_cache=no_cache,
        no_store=no_store,
        no_transform=no_transform,
        must_revalidate=must_revalidate,
        proxy_revalidate=proxy_revalidate,
    )
    if cache_control is None:
        cache_control = CacheControl(**directives)
    elif any(value is not None and value is not False for value in directives.values()):
        raise TypeError("Pass either a CacheControl value or directive keyword arguments, not both.")

    header_value = cache_control.header_value()

    def add_cache_headers(response: fastapi.Response) -> None:
        """Add Cache-Control headers to the response."""
        if header_value is not None:
            response.headers["Cache-Control"] = header_value

    return fastapi.Depends(add_cache_headers)
