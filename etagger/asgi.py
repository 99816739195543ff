from __future__ import annotations

import logging
import typing as t

from etagger._async._filter import AsyncShallowEtagFilter
from etagger._async._sinks import AsyncResponseSink
from etagger._core._headers import Headers
from etagger._core.models import EXCHANGE_KEY, Request
from etagger._utils import HEADERS_ENCODING

# Configure logger for this module
logger = logging.getLogger(__name__)


class _ASGIScope(t.TypedDict, total=False):
    """ASGI HTTP scope type."""

    type: str
    asgi: dict[str, str]
    http_version: str
    method: str
    scheme: str
    path: str
    query_string: bytes
    root_path: str
    headers: list[tuple[bytes, bytes]]
    server: tuple[str, int | None] | None
    client: tuple[str, int] | None
    state: dict[str, t.Any]
    extensions: dict[str, t.Any]


_Scope = _ASGIScope
_Receive = t.Callable[[], t.Awaitable[dict[str, t.Any]]]
_Send = t.Callable[[dict[str, t.Any]], t.Awaitable[None]]
_ASGIApp = t.Callable[[_Scope, _Receive, _Send], t.Awaitable[None]]


class ASGIResponseSink(AsyncResponseSink):
    """
    Response sink on top of an ASGI ``send`` callable.

    Status and headers are held back until the first body write or
    ``flush``, which sends the ``http.response.start`` message. ``close``
    ends the response body.
    """

    def __init__(self, send: _Send) -> None:
        self._send = send
        self._status_code = 200
        self.headers = Headers()
        self._started = False
        self._finished = False

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

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name)

    @property
    def is_committed(self) -> bool:
        return self._started

    async def flush(self) -> None:
        if self._started:
            return
        self._started = True
        await self._send(
            {
                "type": "http.response.start",
                "status": self._status_code,
                "headers": [
                    (key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING))
                    for key, value in self.headers.multi_items()
                ],
            }
        )
        logger.debug("Response headers sent: status=%d headers_count=%d", self._status_code, len(self.headers))

    async def write(self, data: bytes) -> None:
        await self.flush()
        if not data:
            return
        await self._send({"type": "http.response.body", "body": data, "more_body": True})
        logger.debug("Sent response chunk: size=%d bytes", len(data))

    async def close(self) -> None:
        await self.flush()
        if self._finished:
            return
        self._finished = True
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})


class ASGIEtagMiddleware:
    """
    ASGI middleware that adds content based ETags to responses.

    The response body of the wrapped application is buffered, hashed and
    either sent as is with an ``ETag`` header, or replaced by an empty
    ``304 Not Modified`` response when the request's ``If-None-Match``
    header carries the same ETag. Only successful responses to GET requests
    without a ``no-store`` directive are considered.

    Streaming endpoints should call ``etagger.disable_content_caching(scope)``
    before sending the body, so it reaches the client without buffering.

    This implementation is safe for concurrent requests: nothing about a
    request is stored on the middleware instance.

    Args:
        app: The ASGI application to wrap.
        etag_filter: The filter that evaluates the buffered responses.
            Defaults to ``AsyncShallowEtagFilter()``.

    Example:
        ```python
        from etagger.asgi import ASGIEtagMiddleware

        app = ASGIEtagMiddleware(app=my_asgi_app)
        ```
    """

    def __init__(self, app: _ASGIApp, etag_filter: AsyncShallowEtagFilter | None = None) -> None:
        self.app = app
        self._filter = etag_filter if etag_filter is not None else AsyncShallowEtagFilter()

        logger.info("Initialized ASGIEtagMiddleware with filter=%s", type(self._filter).__name__)

    async def __call__(self, scope: _Scope, receive: _Receive, send: _Send) -> None:
        """
        Handle an ASGI request.

        Args:
            scope: The ASGI scope dictionary.
            receive: The ASGI receive callable.
            send: The ASGI send callable.
        """
        # Only handle HTTP requests
        if scope["type"] != "http":
            logger.debug("Skipping non-HTTP request: type=%s", scope["type"])
            await self.app(scope, receive, send)
            return

        if EXCHANGE_KEY in scope:
            logger.debug("Exchange already handled by an outer middleware, passing through")
            await self.app(scope, receive, send)
            return

        request = self._asgi_to_internal_request(scope)
        t.cast(dict[str, t.Any], scope)[EXCHANGE_KEY] = request.context
        sink = ASGIResponseSink(send)

        logger.debug("Incoming HTTP request: method=%s url=%s", request.method, request.url)

        # The closure keeps every per-request object out of the middleware instance
        async def call_app(request: Request, response: AsyncResponseSink) -> None:
            async def inner_send(message: dict[str, t.Any]) -> None:
                if message["type"] == "http.response.start":
                    response.set_status(message["status"])
                    for key, value in message.get("headers", []):
                        response.add_header(key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING))
                    logger.debug("Application response started: status=%d", message["status"])
                elif message["type"] == "http.response.body":
                    body = message.get("body", b"")
                    if body:
                        await response.write(body)
                else:
                    await send(message)

            await self.app(scope, receive, inner_send)

            if request.context.content_caching_disabled:
                await response.flush()

        try:
            await self._filter.dispatch(request, sink, call_app)
            await sink.close()
        except Exception as e:
            logger.error(
                "Error processing request: method=%s url=%s error=%s",
                request.method,
                request.url,
                str(e),
                exc_info=True,
            )
            raise

        logger.debug(
            "Request processed: method=%s url=%s status=%d",
            request.method,
            request.url,
            sink.status_code,
        )

    def _asgi_to_internal_request(self, scope: _Scope) -> Request:
        """
        Convert an ASGI HTTP scope to an internal Request object.

        Args:
            scope: The ASGI scope dictionary.

        Returns:
            The internal Request object.
        """
        scheme = scope.get("scheme", "http")
        server = scope.get("server")

        if server is None:
            server = ("localhost", 80)

        host = server[0]
        port = server[1] if server[1] is not None else (443 if scheme == "https" else 80)

        # Add port to host if non-standard
        if (scheme == "http" and port != 80) or (scheme == "https" and port != 443):
            host = f"{host}:{port}"

        path = scope.get("path", "/")
        query_string = scope.get("query_string", b"")
        if query_string:
            path = f"{path}?{query_string.decode(HEADERS_ENCODING)}"

        headers = Headers(
            [
                (key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING))
                for key, value in scope.get("headers", [])
            ]
        )

        return Request(
            method=scope.get("method", "GET"),
            url=f"{scheme}://{host}{path}",
            headers=headers,
        )
