from __future__ import annotations

import logging
import typing as t

from etagger._async._buffer import AsyncContentCachingResponse, find_async_content_caching_response
from etagger._async._sinks import AsyncHandler, AsyncResponseSink
from etagger._core._cache_control import parse_cache_control
from etagger._core.models import Request
from etagger._exceptions import ResponseBufferNotFoundError
from etagger._utils import generate_etag

__all__ = ("AsyncShallowEtagFilter",)

logger = logging.getLogger(__name__)

HEADER_ETAG = "ETag"
HEADER_IF_NONE_MATCH = "If-None-Match"
HEADER_CACHE_CONTROL = "Cache-Control"
DIRECTIVE_NO_STORE = "no-store"

NOT_MODIFIED = 304


class AsyncShallowEtagFilter:
    """
    Generates an ``ETag`` from the response content and answers matching
    conditional requests with ``304 Not Modified``.

    The response body is buffered while the handler runs. Afterwards the
    MD5 digest of the body becomes the ``ETag`` header, and when it equals
    the request's ``If-None-Match`` header the body is dropped and the
    status set to 304. The handler still renders the full response, so this
    saves bandwidth, not server work.

    ``is_eligible_for_etag`` and ``generate_etag_header_value`` can be
    overridden to change which responses get an ETag and how it is built.

    Example:
        ```python
        from etagger import AsyncShallowEtagFilter, Request

        etag_filter = AsyncShallowEtagFilter()

        async def handler(request, response):
            response.set_header("Content-Type", "text/plain")
            await response.write_text("Hello, World!")

        await etag_filter.dispatch(Request("GET", "https://example.com/"), sink, handler)
        ```
    """

    async def dispatch(self, request: Request, response: AsyncResponseSink, handler: AsyncHandler) -> None:
        """
        Run ``handler`` for one exchange and post-process its response.

        Evaluation is deferred when the handler started asynchronous
        processing, and skipped entirely when content caching was disabled
        for the request.
        """
        response_to_use = response
        if not request.context.async_dispatch and not isinstance(response, AsyncContentCachingResponse):
            logger.debug("Buffering response: method=%s url=%s", request.method, request.url)
            response_to_use = AsyncContentCachingResponse(response, request)
        else:
            logger.debug("Response is already buffered: method=%s url=%s", request.method, request.url)

        await handler(request, response_to_use)

        if request.context.async_started:
            logger.debug("Asynchronous processing started, deferring ETag evaluation: url=%s", request.url)
            return

        if request.context.content_caching_disabled:
            logger.debug("Content caching disabled, skipping ETag evaluation: url=%s", request.url)
            return

        await self._update_response(request, response_to_use)

    async def _update_response(self, request: Request, response: AsyncResponseSink) -> None:
        response_wrapper = find_async_content_caching_response(response)
        if response_wrapper is None:
            raise ResponseBufferNotFoundError("AsyncContentCachingResponse not found")

        raw_response = response_wrapper.response
        status_code = response_wrapper.status_code

        if raw_response.is_committed:
            logger.debug("Response already committed, copying body without ETag: url=%s", request.url)
            await response_wrapper.copy_body_to_response()
            return

        if not self.is_eligible_for_etag(request, response_wrapper, status_code):
            logger.debug("Response with status code %d not eligible for ETag: url=%s", status_code, request.url)
            await response_wrapper.copy_body_to_response()
            return

        response_etag = self.generate_etag_header_value(response_wrapper.content_as_stream())
        raw_response.set_header(HEADER_ETAG, response_etag)
        request_etag = request.headers.get(HEADER_IF_NONE_MATCH)

        if response_etag == request_etag:
            logger.debug("ETag %s equal to If-None-Match, sending 304", response_etag)
            raw_response.set_status(NOT_MODIFIED)
            response_wrapper.reset_buffer()
        else:
            logger.debug(
                "ETag %s not equal to If-None-Match %s, sending normal response",
                response_etag,
                request_etag,
            )
            await response_wrapper.copy_body_to_response()

    def is_eligible_for_etag(
        self,
        request: Request,
        response: AsyncContentCachingResponse,
        status_code: int,
    ) -> bool:
        """
        Tell whether the response gets an ETag.

        By default all of these must hold:

        - the status code is in the 2xx range
        - the request method is GET
        - the response ``Cache-Control`` header is absent or has no
          ``no-store`` directive

        Sinks that cannot report headers back are treated as having no
        ``Cache-Control`` header.
        """
        if not (200 <= status_code < 300 and request.method == "GET"):
            return False

        cache_control: t.Optional[str] = None
        if response.header_lookup is not None:
            cache_control = response.header_lookup.get_header(HEADER_CACHE_CONTROL)
        return cache_control is None or DIRECTIVE_NO_STORE not in parse_cache_control(cache_control)

    def generate_etag_header_value(self, stream: t.BinaryIO) -> str:
        """Build the ETag header value from the response body; an MD5 digest by default."""
        return generate_etag(stream)
