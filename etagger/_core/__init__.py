from etagger._core._cache_control import (
    CacheControl as CacheControl,
    parse_cache_control as parse_cache_control,
)
from etagger._core._headers import Headers as Headers
from etagger._core.models import (
    EXCHANGE_KEY as EXCHANGE_KEY,
    ExchangeContext as ExchangeContext,
    Request as Request,
    SupportsHeaderLookup as SupportsHeaderLookup,
    disable_content_caching as disable_content_caching,
    get_exchange_context as get_exchange_context,
)

__all__ = (
    "CacheControl",
    "parse_cache_control",
    "Headers",
    "EXCHANGE_KEY",
    "ExchangeContext",
    "Request",
    "SupportsHeaderLookup",
    "disable_content_caching",
    "get_exchange_context",
)
