from __future__ import annotations

import logging
import typing as t
from types import TracebackType

from etagger._core._headers import Headers
from etagger._core.models import EXCHANGE_KEY, Request
from etagger._sync._filter import ShallowEtagFilter
from etagger._sync._sinks import ResponseSink
from etagger._utils import status_line

logger = logging.getLogger(__name__)

_ExcInfo = t.Tuple[t.Type[BaseException], BaseException, t.Optional[TracebackType]]
_Environ = t.Dict[str, t.Any]
_Write = t.Callable[[bytes], None]
_StartResponse = t.Callable[..., _Write]
_WSGIApp = t.Callable[[_Environ, _StartResponse], t.Iterable[bytes]]
_Streaming = t.Tuple[t.Iterable[bytes], t.Iterator[bytes], ResponseSink]


class WSGIResponseSink(ResponseSink):
    """
    Response sink on top of a WSGI ``start_response`` callable.

    ``start_response`` is called on the first body write or ``flush``.
    Body bytes are collected in ``body``, which the middleware returns to
    the server as the response iterable, or hands out chunk by chunk when
    the response streams.
    """

    def __init__(self, start_response: _StartResponse) -> None:
        self._start_response = start_response
        self._status_code = 200
        self.headers = Headers()
        self.body: list[bytes] = []
        self._started = False

    @property
    def status_code(self) -> int:
        return self._status_code

    def set_status(self, status_code: int) -> None:
        if self._started:
            logger.debug("Ignoring status change on committed response: status=%d", status_code)
            return
        self._status_code = status_code

    def set_header(self, name: str, value: str) -> None:
        if self._started:
            logger.debug("Ignoring header change on committed response: name=%s", name)
            return
        self.headers[name] = value

    def add_header(self, name: str, value: str) -> None:
        if self._started:
            logger.debug("Ignoring header change on committed response: name=%s", name)
            return
        self.headers.add(name, value)

    def reset_headers(self) -> None:
        if self._started:
            logger.debug("Ignoring header reset on committed response")
            return
        self.headers = Headers()

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name)

    @property
    def is_committed(self) -> bool:
        return self._started

    def flush(self) -> None:
        if self._started:
            return
        self._started = True
        self._start_response(status_line(self._status_code), self.headers.multi_items())
        logger.debug("Response started: status=%d headers_count=%d", self._status_code, len(self.headers))

    def write(self, data: bytes) -> None:
        self.flush()
        if data:
            self.body.append(data)

    def take_body(self) -> list[bytes]:
        body, self.body = self.body, []
        return body


class WSGIEtagMiddleware:
    """
    WSGI middleware that adds content based ETags to responses.

    The WSGI counterpart of ``etagger.asgi.ASGIEtagMiddleware``: the body
    of the wrapped application is buffered and hashed, and a matching
    ``If-None-Match`` request header turns the response into an empty
    ``304 Not Modified``.

    Applications that call ``etagger.disable_content_caching(environ)`` are
    streamed: the returned iterable pulls one chunk from the application
    per chunk it yields.

    Args:
        app: The WSGI application to wrap.
        etag_filter: The filter that evaluates the buffered responses.
            Defaults to ``ShallowEtagFilter()``.

    Example:
        ```python
        from etagger.wsgi import WSGIEtagMiddleware

        application = WSGIEtagMiddleware(application)
        ```
    """

    def __init__(self, app: _WSGIApp, etag_filter: ShallowEtagFilter | None = None) -> None:
        self.app = app
        self._filter = etag_filter if etag_filter is not None else ShallowEtagFilter()

        logger.info("Initialized WSGIEtagMiddleware with filter=%s", type(self._filter).__name__)

    def __call__(self, environ: _Environ, start_response: _StartResponse) -> t.Iterable[bytes]:
        if EXCHANGE_KEY in environ:
            logger.debug("Exchange already handled by an outer middleware, passing through")
            return self.app(environ, start_response)

        request = self._wsgi_to_internal_request(environ)
        environ[EXCHANGE_KEY] = request.context
        sink = WSGIResponseSink(start_response)

        logger.debug("Incoming HTTP request: method=%s url=%s", request.method, request.url)

        streaming: _Streaming | None = None

        def call_app(request: Request, response: ResponseSink) -> None:
            nonlocal streaming

            def inner_start_response(
                status: str,
                headers: list[tuple[str, str]],
                exc_info: _ExcInfo | None = None,
            ) -> _Write:
                if exc_info is not None:
                    if response.is_committed:
                        raise exc_info[1].with_traceback(exc_info[2])
                    sink.reset_headers()
                response.set_status(int(status.split(" ", 1)[0]))
                for key, value in headers:
                    response.add_header(key, value)
                logger.debug("Application response started: status=%s", status)
                return response.write

            result = self.app(environ, inner_start_response)
            chunks = iter(result)
            try:
                for chunk in chunks:
                    if chunk:
                        response.write(chunk)
                    if request.context.content_caching_disabled:
                        # the rest of the iterable is pulled by the server
                        streaming = (result, chunks, response)
                        return
            except BaseException:
                _close(result)
                raise
            _close(result)

            if request.context.content_caching_disabled:
                response.flush()

        try:
            self._filter.dispatch(request, sink, call_app)
            if streaming is None:
                sink.flush()
        except Exception as e:
            logger.error(
                "Error processing request: method=%s url=%s error=%s",
                request.method,
                request.url,
                str(e),
                exc_info=True,
            )
            raise

        if streaming is not None:
            logger.debug("Streaming response: method=%s url=%s", request.method, request.url)
            return self._stream(sink, *streaming)

        logger.debug(
            "Request processed: method=%s url=%s status=%d",
            request.method,
            request.url,
            sink.status_code,
        )
        return sink.body

    def _stream(
        self,
        sink: WSGIResponseSink,
        result: t.Iterable[bytes],
        chunks: t.Iterator[bytes],
        response: ResponseSink,
    ) -> t.Iterator[bytes]:
        try:
            yield from sink.take_body()
            for chunk in chunks:
                if chunk:
                    response.write(chunk)
                    yield from sink.take_body()
            response.flush()
            yield from sink.take_body()
        finally:
            _close(result)

    def _wsgi_to_internal_request(self, environ: _Environ) -> Request:
        scheme = environ.get("wsgi.url_scheme", "http")
        host = environ.get("HTTP_HOST")
        if not host:
            host = f"{environ.get('SERVER_NAME', 'localhost')}:{environ.get('SERVER_PORT', '80')}"
        path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "/")
        query_string = environ.get("QUERY_STRING", "")
        if query_string:
            path = f"{path}?{query_string}"

        headers = Headers()
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                headers.add(key[5:].replace("_", "-"), value)
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                headers.add(key.replace("_", "-"), value)

        return Request(
            method=environ.get("REQUEST_METHOD", "GET"),
            url=f"{scheme}://{host}{path}",
            headers=headers,
        )


def _close(result: t.Iterable[bytes]) -> None:
    close = getattr(result, "close", None)
    if close is not None:
        close()
