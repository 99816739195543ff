from __future__ import annotations

import io
import logging
import typing as t

from etagger._async._sinks import AsyncResponseSink
from etagger._core.models import Request, SupportsHeaderLookup

__all__ = ("AsyncContentCachingResponse", "find_async_content_caching_response")

logger = logging.getLogger(__name__)

HEADER_CONTENT_LENGTH = "Content-Length"


class AsyncContentCachingResponse(AsyncResponseSink):
    """
    Response sink decorator that keeps the body in memory.

    Body writes are collected in an internal buffer and the status code is
    only recorded, so both can still be inspected and replaced before
    anything reaches the wrapped sink. Headers are passed through right
    away, except ``Content-Length`` which is held back until the body is
    copied. ``copy_body_to_response`` commits the captured state to the
    wrapped sink, exactly once; later writes go straight through.

    When created for a ``request`` whose exchange has content caching
    disabled, writes bypass the buffer as well.

    Args:
        response: The sink to decorate.
        request: The request this response belongs to, if writes should
            honour ``disable_content_caching``.
    """

    def __init__(self, response: AsyncResponseSink, request: Request | None = None) -> None:
        self._response = response
        self._request = request
        self._content = bytearray()
        self._status_code: int | None = None
        self._body_copied = False
        self._content_length: str | None = None
        self.header_lookup: SupportsHeaderLookup | None = (
            response if isinstance(response, SupportsHeaderLookup) else None
        )

    @property
    def response(self) -> AsyncResponseSink:
        return self._response

    def unwrap(self) -> AsyncResponseSink:
        return self._response

    @property
    def charset(self) -> str:  # type: ignore[override]
        return self._response.charset

    @property
    def status_code(self) -> int:
        if self._status_code is None:
            return self._response.status_code
        return self._status_code

    def set_status(self, status_code: int) -> None:
        self._status_code = status_code
        if self._forwarding:
            self._response.set_status(status_code)

    def set_header(self, name: str, value: str) -> None:
        if self._holds_content_length(name, value):
            return
        self._response.set_header(name, value)

    def add_header(self, name: str, value: str) -> None:
        if self._holds_content_length(name, value):
            return
        self._response.add_header(name, value)

    @property
    def is_committed(self) -> bool:
        return self._response.is_committed

    @property
    def body_copied(self) -> bool:
        return self._body_copied

    @property
    def content(self) -> bytes:
        return bytes(self._content)

    @property
    def content_size(self) -> int:
        return len(self._content)

    def content_as_stream(self) -> t.BinaryIO:
        """Return a stream over a copy of the buffered bytes; the buffer itself is left untouched."""
        return io.BytesIO(bytes(self._content))

    def reset_buffer(self) -> None:
        self._content.clear()

    async def write(self, data: bytes) -> None:
        if self._forwarding:
            await self.copy_body_to_response(complete=False)
            await self._response.write(data)
            return
        self._content.extend(data)

    async def flush(self) -> None:
        await self.copy_body_to_response(complete=False)
        await self._response.flush()

    async def copy_body_to_response(self, complete: bool = True) -> None:
        """
        Copy the recorded status and the buffered body to the wrapped sink.

        Only the first call has an effect. The status is skipped when the
        wrapped sink is already committed.

        Args:
            complete: Whether the buffered bytes are the whole body. When True
                and the buffer is not empty, ``Content-Length`` is set to the
                buffered size. Otherwise a ``Content-Length`` held back from
                the handler is forwarded as is.
        """
        if self._body_copied:
            return

        if not self._response.is_committed:
            if self._status_code is not None:
                self._response.set_status(self._status_code)
            if complete and self._content:
                self._response.set_header(HEADER_CONTENT_LENGTH, str(len(self._content)))
            elif self._content_length is not None:
                self._response.set_header(HEADER_CONTENT_LENGTH, self._content_length)

        if self._content:
            logger.debug(
                "Copying buffered body to response: size=%d bytes complete=%s",
                len(self._content),
                complete,
            )
            await self._response.write(bytes(self._content))
            self._content.clear()

        self._body_copied = True

    @property
    def _forwarding(self) -> bool:
        if self._body_copied:
            return True
        return self._request is not None and self._request.context.content_caching_disabled

    def _holds_content_length(self, name: str, value: str) -> bool:
        if self._forwarding or name.lower() != "content-length":
            return False
        self._content_length = value
        return True


def find_async_content_caching_response(
    response: AsyncResponseSink,
) -> AsyncContentCachingResponse | None:
    """Walk the chain of decorated sinks and return the first content caching one."""
    current: AsyncResponseSink | None = response
    while current is not None:
        if isinstance(current, AsyncContentCachingResponse):
            return current
        current = current.unwrap()
    return None
