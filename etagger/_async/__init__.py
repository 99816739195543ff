from etagger._async._buffer import (
    AsyncContentCachingResponse as AsyncContentCachingResponse,
    find_async_content_caching_response as find_async_content_caching_response,
)
from etagger._async._filter import AsyncShallowEtagFilter as AsyncShallowEtagFilter
from etagger._async._mock import MockAsyncResponseSink as MockAsyncResponseSink
from etagger._async._sinks import (
    AsyncHandler as AsyncHandler,
    AsyncResponseSink as AsyncResponseSink,
)

__all__ = (
    "AsyncContentCachingResponse",
    "find_async_content_caching_response",
    "AsyncShallowEtagFilter",
    "MockAsyncResponseSink",
    "AsyncHandler",
    "AsyncResponseSink",
)
