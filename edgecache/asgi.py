from __future__ import annotations

import logging
import typing as t
from typing import AsyncIterator

from edgecache._async_cache import AsyncEdgeCacheProxy
from edgecache._background import BackgroundTasks, ErrorHandler
from edgecache._core._headers import Headers
from edgecache._core._spec import EdgeCacheOptions
from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._core.models import Request, Response
from edgecache._exceptions import EdgeCacheError
from edgecache._utils import HEADERS_ENCODING, filter_mapping, make_async_iterator

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

_HOP_BY_HOP = ("Transfer-Encoding",)


class ASGIEdgeCacheMiddleware:
    """
    ASGI middleware that puts an edge cache in front of an application.

    The wrapped application plays the origin: it receives every request the
    cache cannot answer, with an ``x-HTML-Edge-Cache`` header advertising what
    the cache understands, and may answer with directives in the same header.

    Writes to the store, purges and refreshes run after the response has been
    sent to the client, inside the same ASGI call.

    Without a storage the middleware stays out of the way entirely: caching
    without a shared generation would serve entries nobody can purge.

    Args:
        app: The ASGI application to wrap.
        storage: The key/value backend for the generation and the stored responses.
        options: Behaviour switches, see `EdgeCacheOptions`.
        response_ttl: Seconds a stored response stays in the backend, defaults to None.
        on_background_error: Awaitable callback receiving exceptions raised by background work.

    Example:
        ```python
        from edgecache import AsyncRedisStorage, EdgeCacheOptions
        from edgecache.asgi import ASGIEdgeCacheMiddleware

        app = ASGIEdgeCacheMiddleware(
            app=my_asgi_app,
            storage=AsyncRedisStorage(),
            options=EdgeCacheOptions(html_only=True),
        )
        ```
    """

    def __init__(
        self,
        app: _ASGIApp,
        storage: AsyncBaseStorage | None = None,
        options: EdgeCacheOptions | None = None,
        response_ttl: float | None = None,
        on_background_error: ErrorHandler | None = None,
    ) -> None:
        self.app = app
        self.storage = storage
        self._options = options if options is not None else EdgeCacheOptions()
        self._response_ttl = response_ttl
        self._on_background_error = on_background_error

        if storage is None:
            logger.warning("ASGIEdgeCacheMiddleware has no storage configured, requests will pass through")
        else:
            logger.info(
                "Initialized ASGIEdgeCacheMiddleware with storage=%s, options=%s",
                type(storage).__name__,
                self._options,
            )

    async def __call__(self, scope: _Scope, receive: _Receive, send: _Send) -> None:
        """
        Handle an ASGI request.

        Args:
            scope: The ASGI scope dictionary.
            receive: The ASGI receive callable.
            send: The ASGI send callable.
        """
        # Only handle HTTP requests
        if scope["type"] != "http" or self.storage is None:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "/")

        async def send_request_to_app(request: Request) -> Response:
            """
            Send a request to the wrapped ASGI application and collect its response.
            This closure captures 'scope' from the outer function scope.
            """
            logger.debug("Sending request to wrapped application: url=%s", request.url)

            body_iterator = request._aiter_stream()
            body_exhausted = False

            async def inner_receive() -> dict[str, t.Any]:
                nonlocal body_exhausted
                if body_exhausted:
                    return {"type": "http.disconnect"}

                try:
                    chunk = await body_iterator.__anext__()
                    return {"type": "http.request", "body": chunk, "more_body": True}
                except StopAsyncIteration:
                    body_exhausted = True
                    return {"type": "http.request", "body": b"", "more_body": False}

            status_code = 200
            response_headers: list[tuple[bytes, bytes]] = []
            response_body_chunks: list[bytes] = []

            async def inner_send(message: dict[str, t.Any]) -> None:
                nonlocal status_code, response_headers
                if message["type"] == "http.response.start":
                    status_code = message["status"]
                    response_headers = message.get("headers", [])
                elif message["type"] == "http.response.body":
                    body_chunk = message.get("body", b"")
                    if body_chunk:
                        response_body_chunks.append(body_chunk)

            app_scope = t.cast(_Scope, dict(scope))
            app_scope["method"] = request.method
            app_scope["headers"] = [
                (key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING))
                for key, value in request.headers.multi_items()
            ]
            await self.app(app_scope, inner_receive, inner_send)

            headers = Headers(
                [
                    (key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING))
                    for key, value in response_headers
                ]
            )
            return Response(
                status_code=status_code,
                headers=Headers(filter_mapping(headers._headers, _HOP_BY_HOP)),
                stream=make_async_iterator(response_body_chunks),
            )

        # A new proxy per request keeps the closure above isolated between concurrent requests
        cache_proxy = AsyncEdgeCacheProxy(
            request_sender=send_request_to_app,
            storage=self.storage,
            options=self._options,
            response_ttl=self._response_ttl,
        )
        background = BackgroundTasks(on_error=self._on_background_error)
        request = self._asgi_to_internal_request(scope, receive)

        try:
            response = await cache_proxy.handle_request(request, background)
        except EdgeCacheError as e:
            # Nothing has been read from `receive` before the generation lookup, so the
            # application can still take the request as it came in.
            logger.error(
                "Edge cache failed, passing request through: method=%s path=%s error=%s",
                method,
                path,
                str(e),
                exc_info=True,
            )
            await self.app(scope, receive, send)
            return

        await self._send_internal_response(response, send)

        if background:
            logger.debug("Running %d background tasks", len(background))
            await background()

    def _asgi_to_internal_request(self, scope: _Scope, receive: _Receive) -> Request:
        """
        Convert an ASGI HTTP scope to an internal Request object.
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
            path = f"{path}?{query_string.decode('latin1')}"

        headers = Headers(
            [(key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING)) for key, value in scope.get("headers", [])]
        )
        # The Host header names the site the client asked for, the server tuple only the socket.
        if "host" in headers:
            host = headers["host"]

        async def request_stream() -> AsyncIterator[bytes]:
            while True:
                message = await receive()
                if message["type"] == "http.request":
                    body = message.get("body", b"")
                    if body:
                        yield body
                    if not message.get("more_body", False):
                        break
                elif message["type"] == "http.disconnect":
                    logger.debug("Client disconnected during request body streaming")
                    break

        return Request(
            method=scope.get("method", "GET"),
            url=f"{scheme}://{host}{path}",
            headers=headers,
            stream=request_stream(),
        )

    async def _send_internal_response(self, response: Response, send: _Send) -> None:
        headers: list[tuple[bytes, bytes]] = [
            (key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING))
            for key, value in response.headers.multi_items()
        ]

        await send(
            {
                "type": "http.response.start",
                "status": response.status_code,
                "headers": headers,
            }
        )

        bytes_sent = 0
        async for chunk in response._aiter_stream():
            await send({"type": "http.response.body", "body": chunk, "more_body": True})
            bytes_sent += len(chunk)

        await send({"type": "http.response.body", "body": b"", "more_body": False})
        logger.debug("Response fully sent: status=%d total_bytes=%d", response.status_code, bytes_sent)

    async def aclose(self) -> None:
        """Close the storage backend and release resources."""
        if self.storage is not None:
            await self.storage.close()
