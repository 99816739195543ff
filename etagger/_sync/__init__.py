from etagger._sync._buffer import (
    ContentCachingResponse as ContentCachingResponse,
    find_content_caching_response as find_content_caching_response,
)
from etagger._sync._filter import ShallowEtagFilter as ShallowEtagFilter
from etagger._sync._mock import MockResponseSink as MockResponseSink
from etagger._sync._sinks import (
    Handler as Handler,
    ResponseSink as ResponseSink,
)

__all__ = (
    "ContentCachingResponse",
    "find_content_caching_response",
    "ShallowEtagFilter",
    "MockResponseSink",
    "Handler",
    "ResponseSink",
)
