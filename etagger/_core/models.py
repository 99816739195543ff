from __future__ import annotations

import typing as tp
from dataclasses import dataclass, field

from etagger._core._headers import Headers

EXCHANGE_KEY = "etagger.exchange"
"""Scope/environ key under which the ASGI and WSGI middlewares publish the ``ExchangeContext``."""


@dataclass
class ExchangeContext:
    """
    Request-scoped state of one request/response exchange.

    It lives as long as the request and is shared by every dispatch of that
    request, including continuations after an asynchronous suspension.
    """

    content_caching_disabled: bool = False
    """When True, handler writes bypass the response buffer and no ETag is computed."""

    async_started: bool = False
    """When True, the handler suspended the exchange and evaluation is deferred to a later dispatch."""

    async_dispatch: bool = False
    """When True, the current dispatch continues an exchange that was suspended before."""

    def disable_content_caching(self) -> None:
        self.content_caching_disabled = True

    def start_async(self) -> None:
        self.async_started = True

    def begin_async_dispatch(self) -> None:
        self.async_started = False
        self.async_dispatch = True


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    context: ExchangeContext = field(default_factory=ExchangeContext)


@tp.runtime_checkable
class SupportsHeaderLookup(tp.Protocol):
    """Capability of response sinks that can report headers that were already set."""

    def get_header(self, name: str) -> tp.Optional[str]: ...


def get_exchange_context(request: tp.Any) -> ExchangeContext:
    """
    Return the ``ExchangeContext`` of a request.

    Args:
        request: An etagger ``Request``, an ASGI scope, a WSGI environ, or any
            object exposing the scope as a ``scope`` attribute (e.g. a
            Starlette request). Scopes and environs without a context get a
            fresh one attached.
    """
    if isinstance(request, Request):
        return request.context

    scope = getattr(request, "scope", request)
    if not isinstance(scope, tp.MutableMapping):
        raise TypeError(f"Cannot find an exchange context on {type(request).__name__!r}")

    context = scope.get(EXCHANGE_KEY)
    if not isinstance(context, ExchangeContext):
        context = ExchangeContext()
        scope[EXCHANGE_KEY] = context
    return context


def disable_content_caching(request: tp.Any) -> None:
    """
    Disable the response buffer of the shallow ETag middleware for a request.

    Call it before the response starts streaming, e.g. before writing
    server-sent events, or before handing the response to code that writes
    it outside of the current dispatch. Writes then go straight to the
    client and no ETag is generated for the request.

    Example:
        ```python
        from etagger import disable_content_caching

        async def events(scope, receive, send):
            disable_content_caching(scope)
            ...
        ```
    """
    get_exchange_context(request).disable_content_caching()
