import sys

import httpx
import pytest

from etagger import disable_content_caching
from etagger.wsgi import WSGIEtagMiddleware

HELLO_ETAG = '"065a8e27d8879283831b664bd8b7f0ad4"'


def hello_app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain"), ("Content-Length", "13")])
    return [b"Hello, ", b"World!"]


def make_client(app) -> httpx.Client:
    return httpx.Client(transport=httpx.WSGITransport(app=app), base_url="http://testserver")


class ClosingBody:
    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        return iter(self.chunks)

    def close(self):
        self.closed = True


def test_etag_and_not_modified():
    with make_client(WSGIEtagMiddleware(hello_app)) as client:
        first = client.get("/")
        second = client.get("/", headers={"If-None-Match": first.headers["etag"]})

    assert first.status_code == 200
    assert first.headers["etag"] == HELLO_ETAG
    assert first.headers["content-length"] == "13"
    assert first.content == b"Hello, World!"

    assert second.status_code == 304
    assert second.headers["etag"] == HELLO_ETAG
    assert "content-length" not in second.headers
    assert second.content == b""


def test_post_is_not_tagged():
    with make_client(WSGIEtagMiddleware(hello_app)) as client:
        response = client.post("/", content=b"payload")

    assert "etag" not in response.headers
    assert response.content == b"Hello, World!"


def test_no_store_responses_are_not_tagged():
    def app(environ, start_response):
        start_response("200 OK", [("Cache-Control", "no-store")])
        return [b"secret"]

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/")

    assert "etag" not in response.headers
    assert response.content == b"secret"


def test_error_status_is_not_tagged():
    def app(environ, start_response):
        start_response("500 Internal Server Error", [])
        return [b"oops"]

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/")

    assert response.status_code == 500
    assert "etag" not in response.headers
    assert response.content == b"oops"


def test_streaming_with_content_caching_disabled():
    def app(environ, start_response):
        disable_content_caching(environ)
        start_response("200 OK", [("Content-Type", "text/plain")])
        return iter([b"Chunk 0\n", b"Chunk 1\n"])

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/events")

    assert response.status_code == 200
    assert "etag" not in response.headers
    assert "content-length" not in response.headers
    assert response.content == b"Chunk 0\nChunk 1\n"


def test_endless_stream_is_not_read_ahead():
    pulled = []
    closed = []

    def events():
        try:
            i = 0
            while True:
                pulled.append(i)
                yield f"data: {i}\n\n".encode()
                i += 1
        finally:
            closed.append(True)

    def app(environ, start_response):
        disable_content_caching(environ)
        start_response("200 OK", [("Content-Type", "text/event-stream")])
        return events()

    started = []

    def start_response(status, headers, exc_info=None):
        started.append((status, headers))
        return lambda data: None

    result = WSGIEtagMiddleware(app)({"REQUEST_METHOD": "GET", "PATH_INFO": "/events"}, start_response)
    chunks = iter(result)

    assert next(chunks) == b"data: 0\n\n"
    assert next(chunks) == b"data: 1\n\n"
    assert pulled == [0, 1]
    assert started == [("200 OK", [("content-type", "text/event-stream")])]

    result.close()

    assert closed == [True]


def test_start_response_with_exc_info_replaces_headers():
    def app(environ, start_response):
        start_response("200 OK", [("Content-Type", "text/html"), ("X-Page", "home")])
        try:
            raise ValueError("render failed")
        except ValueError:
            start_response("500 Internal Server Error", [("Content-Type", "text/plain")], sys.exc_info())
        return [b"error"]

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/")

    assert response.status_code == 500
    assert response.headers.get_list("content-type") == ["text/plain"]
    assert "x-page" not in response.headers
    assert response.content == b"error"


def test_start_response_with_exc_info_after_commit_reraises():
    def app(environ, start_response):
        disable_content_caching(environ)
        write = start_response("200 OK", [])
        write(b"partial")
        try:
            raise ValueError("render failed")
        except ValueError:
            start_response("500 Internal Server Error", [], sys.exc_info())
        return []

    with make_client(WSGIEtagMiddleware(app)) as client:
        with pytest.raises(ValueError, match="render failed"):
            client.get("/")


def test_application_iterable_is_closed():
    body = ClosingBody([b"Hello, World!"])

    def app(environ, start_response):
        start_response("200 OK", [])
        return body

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/")

    assert body.closed
    assert response.headers["etag"] == HELLO_ETAG


def test_legacy_write_callable_is_buffered():
    def app(environ, start_response):
        write = start_response("200 OK", [])
        write(b"Hello, ")
        return [b"World!"]

    with make_client(WSGIEtagMiddleware(app)) as client:
        response = client.get("/")

    assert response.headers["etag"] == HELLO_ETAG
    assert response.content == b"Hello, World!"


def test_nested_middlewares_tag_once():
    with make_client(WSGIEtagMiddleware(WSGIEtagMiddleware(hello_app))) as client:
        response = client.get("/")

    assert response.headers.get_list("etag") == [HELLO_ETAG]
    assert response.content == b"Hello, World!"


def test_application_errors_propagate():
    def app(environ, start_response):
        raise RuntimeError("boom")

    with make_client(WSGIEtagMiddleware(app)) as client:
        with pytest.raises(RuntimeError, match="boom"):
            client.get("/")


def test_request_from_environ():
    middleware = WSGIEtagMiddleware(hello_app)

    request = middleware._wsgi_to_internal_request(
        {
            "REQUEST_METHOD": "GET",
            "wsgi.url_scheme": "http",
            "SERVER_NAME": "example.com",
            "SERVER_PORT": "8080",
            "SCRIPT_NAME": "/app",
            "PATH_INFO": "/items",
            "QUERY_STRING": "page=2",
            "CONTENT_TYPE": "text/plain",
            "HTTP_IF_NONE_MATCH": '"0abc"',
        }
    )

    assert request.url == "http://example.com:8080/app/items?page=2"
    assert request.headers["If-None-Match"] == '"0abc"'
    assert request.headers["Content-Type"] == "text/plain"
