from etagger._async._buffer import AsyncContentCachingResponse as AsyncContentCachingResponse
from etagger._async._filter import AsyncShallowEtagFilter as AsyncShallowEtagFilter
from etagger._async._mock import MockAsyncResponseSink as MockAsyncResponseSink
from etagger._async._sinks import AsyncHandler as AsyncHandler, AsyncResponseSink as AsyncResponseSink
from etagger._core._cache_control import CacheControl as CacheControl, parse_cache_control as parse_cache_control
from etagger._core._headers import Headers as Headers
from etagger._core.models import (
    ExchangeContext as ExchangeContext,
    Request as Request,
    SupportsHeaderLookup as SupportsHeaderLookup,
    disable_content_caching as disable_content_caching,
    get_exchange_context as get_exchange_context,
)
from etagger._exceptions import EtaggerError as EtaggerError, ResponseBufferNotFoundError as ResponseBufferNotFoundError
from etagger._sync._buffer import ContentCachingResponse as ContentCachingResponse
from etagger._sync._filter import ShallowEtagFilter as ShallowEtagFilter
from etagger._sync._mock import MockResponseSink as MockResponseSink
from etagger._sync._sinks import Handler as Handler, ResponseSink as ResponseSink

__all__ = (
    # Middleware
    "AsyncShallowEtagFilter",
    "ShallowEtagFilter",
    "disable_content_caching",
    ## Response buffers
    "AsyncContentCachingResponse",
    "ContentCachingResponse",
    ## Sinks
    "AsyncResponseSink",
    "ResponseSink",
    "AsyncHandler",
    "Handler",
    "SupportsHeaderLookup",
    "MockAsyncResponseSink",
    "MockResponseSink",
    # Models
    "Request",
    "ExchangeContext",
    "get_exchange_context",
    "Headers",
    # Cache-Control
    "CacheControl",
    "parse_cache_control",
    # Exceptions
    "EtaggerError",
    "ResponseBufferNotFoundError",
)
