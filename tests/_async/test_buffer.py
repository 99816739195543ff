import typing as tp

import pytest

from etagger import AsyncContentCachingResponse, AsyncResponseSink, MockAsyncResponseSink, Request, disable_content_caching
from etagger._async._buffer import find_async_content_caching_response


class ForwardingSink(AsyncResponseSink):
    """Decorator that forwards everything and cannot report headers back."""

    def __init__(self, response: AsyncResponseSink) -> None:
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def set_status(self, status_code: int) -> None:
        self._response.set_status(status_code)

    def set_header(self, name: str, value: str) -> None:
        self._response.set_header(name, value)

    def add_header(self, name: str, value: str) -> None:
        self._response.add_header(name, value)

    @property
    def is_committed(self) -> bool:
        return self._response.is_committed

    async def write(self, data: bytes) -> None:
        await self._response.write(data)

    async def flush(self) -> None:
        await self._response.flush()

    def unwrap(self) -> tp.Optional[AsyncResponseSink]:
        return self._response


@pytest.mark.anyio
async def test_writes_are_buffered():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    await response.write(b"Hello, ")
    await response.write_text("World!")

    assert response.content == b"Hello, World!"
    assert response.content_size == 13
    assert sink.writes == []
    assert not sink.is_committed
    assert not response.is_committed


def test_status_is_recorded_not_forwarded():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    response.set_status(201)

    assert response.status_code == 201
    assert sink.status_code == 200


def test_status_defaults_to_wrapped_sink():
    response = AsyncContentCachingResponse(MockAsyncResponseSink(status_code=202))

    assert response.status_code == 202


def test_headers_pass_through():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    response.set_header("Content-Type", "text/plain")
    response.add_header("Set-Cookie", "a=1")
    response.add_header("Set-Cookie", "b=2")

    assert sink.headers["content-type"] == "text/plain"
    assert sink.headers.get_list("set-cookie") == ["a=1", "b=2"]


def test_content_as_stream_does_not_consume_buffer():
    response = AsyncContentCachingResponse(MockAsyncResponseSink())
    response._content.extend(b"abc")

    assert response.content_as_stream().read() == b"abc"
    assert response.content_as_stream().read() == b"abc"
    assert response.content == b"abc"


@pytest.mark.anyio
async def test_copy_body_to_response():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    response.set_status(201)
    await response.write(b"Hello")

    await response.copy_body_to_response()

    assert sink.status_code == 201
    assert sink.body == b"Hello"
    assert sink.headers["Content-Length"] == "5"
    assert response.body_copied
    assert response.content == b""


@pytest.mark.anyio
async def test_copy_body_to_response_is_idempotent():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    await response.write(b"Hello")

    await response.copy_body_to_response()
    await response.copy_body_to_response()

    assert sink.writes == [b"Hello"]
    assert sink.body == b"Hello"


@pytest.mark.anyio
async def test_writes_after_copy_go_to_wrapped_sink():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    await response.write(b"Hello")
    await response.copy_body_to_response()

    await response.write(b", World!")

    assert sink.writes == [b"Hello", b", World!"]
    assert response.content == b""


@pytest.mark.anyio
async def test_copy_empty_body_only_forwards_status():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    response.set_status(204)

    await response.copy_body_to_response()

    assert sink.status_code == 204
    assert sink.writes == []
    assert "Content-Length" not in sink.headers
    assert not sink.is_committed


@pytest.mark.anyio
async def test_wrapped_sink_already_committed():
    sink = MockAsyncResponseSink()
    await sink.flush()
    response = AsyncContentCachingResponse(sink)

    response.set_status(201)
    await response.write(b"late")
    await response.copy_body_to_response()

    assert sink.status_code == 200
    assert sink.body == b"late"
    assert "Content-Length" not in sink.headers


@pytest.mark.anyio
async def test_flush_commits_without_content_length():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    await response.write(b"data")

    await response.flush()

    assert sink.is_committed
    assert sink.body == b"data"
    assert "Content-Length" not in sink.headers


@pytest.mark.anyio
async def test_reset_buffer():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)
    await response.write(b"discarded")

    response.reset_buffer()
    await response.copy_body_to_response()

    assert response.content_size == 0
    assert sink.writes == []


@pytest.mark.anyio
async def test_disabled_content_caching_bypasses_buffer():
    request = Request("GET", "https://example.com/")
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink, request)

    disable_content_caching(request)
    response.set_status(202)
    await response.write(b"streamed")

    assert sink.status_code == 202
    assert sink.writes == [b"streamed"]
    assert response.content == b""


@pytest.mark.anyio
async def test_disabling_content_caching_forwards_captured_content_first():
    request = Request("GET", "https://example.com/")
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink, request)
    response.set_status(202)
    await response.write(b"before ")

    disable_content_caching(request)
    await response.write_text("after")

    assert sink.status_code == 202
    assert sink.writes == [b"before ", b"after"]
    assert "Content-Length" not in sink.headers


@pytest.mark.anyio
async def test_content_length_is_held_back_while_buffering():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    response.set_header("Content-Length", "999")
    await response.write(b"Hello")

    assert "Content-Length" not in sink.headers

    await response.copy_body_to_response()

    assert sink.headers["Content-Length"] == "5"


@pytest.mark.anyio
async def test_declared_content_length_is_forwarded_on_flush():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    response.add_header("content-length", "5")
    await response.write(b"He")
    await response.flush()

    assert sink.headers["Content-Length"] == "5"


@pytest.mark.anyio
async def test_declared_content_length_is_kept_for_empty_body():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    response.set_header("Content-Length", "13")
    await response.copy_body_to_response()

    assert sink.headers["Content-Length"] == "13"


def test_header_lookup_capability():
    assert AsyncContentCachingResponse(MockAsyncResponseSink()).header_lookup is not None
    assert AsyncContentCachingResponse(ForwardingSink(MockAsyncResponseSink())).header_lookup is None


def test_find_content_caching_response():
    sink = MockAsyncResponseSink()
    response = AsyncContentCachingResponse(sink)

    assert find_async_content_caching_response(response) is response
    assert find_async_content_caching_response(ForwardingSink(response)) is response
    assert find_async_content_caching_response(sink) is None
