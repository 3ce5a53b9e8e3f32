from __future__ import annotations

import logging
from typing import Optional

from edgecache._core._headers import Headers
from edgecache._core.models import Request, Response
from edgecache._exceptions import OriginError
from edgecache._utils import make_async_iterator

try:
    import httpx
except ImportError:  # pragma: no cover
    httpx = None  # type: ignore

logger = logging.getLogger("edgecache.integrations.httpx")

__all__ = ("AsyncHTTPXOrigin",)

# Not forwarded: httpx computes them for the outgoing message itself.
_REQUEST_HEADERS_TO_DROP = ("host", "content-length", "transfer-encoding", "connection")
_RESPONSE_HEADERS_TO_DROP = ("transfer-encoding", "connection", "keep-alive")


class AsyncHTTPXOrigin:
    """
    Sends requests to a remote origin server with httpx.

    Use it as the request sender of `AsyncEdgeCacheProxy` when the origin is
    not an in-process application.

    The response body is read raw, so a compressed answer is stored and
    served compressed, with its ``Content-Encoding`` intact.

    Args:
        client: The client to send with. One is created (and owned) when omitted.
        base_url: When given, every request is re-targeted to this scheme, host and port,
            keeping its path and query.

    Example:
        ```python
        origin = AsyncHTTPXOrigin(base_url="https://origin.internal")
        proxy = AsyncEdgeCacheProxy(request_sender=origin, storage=AsyncRedisStorage())
        ```
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None) -> None:
        if httpx is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `edgecache` installed with the `httpx` extension as shown.\n"
                "```pip install edgecache[httpx]```"
            )
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._base_url = httpx.URL(base_url) if base_url is not None else None

    def _target(self, url: str) -> httpx.URL:
        target = httpx.URL(url)
        if self._base_url is None:
            return target
        return target.copy_with(
            scheme=self._base_url.scheme,
            host=self._base_url.host,
            port=self._base_url.port,
        )

    async def __call__(self, request: Request) -> Response:
        headers = [
            (key, value) for key, value in request.headers.multi_items() if key not in _REQUEST_HEADERS_TO_DROP
        ]
        content = await request.aread()
        httpx_request = self._client.build_request(
            method=request.method,
            url=self._target(request.url),
            headers=headers,
            content=content or None,
        )

        try:
            httpx_response = await self._client.send(httpx_request, stream=True)
            try:
                body = b"".join([chunk async for chunk in httpx_response.aiter_raw()])
            finally:
                await httpx_response.aclose()
        except httpx.HTTPError as exc:
            raise OriginError(f"Origin request failed: {exc}") from exc

        logger.debug(
            "Origin answered: method=%s url=%s status=%d",
            request.method,
            httpx_request.url,
            httpx_response.status_code,
        )
        return Response(
            status_code=httpx_response.status_code,
            headers=Headers(
                [
                    (key, value)
                    for key, value in httpx_response.headers.multi_items()
                    if key.lower() not in _RESPONSE_HEADERS_TO_DROP
                ]
            ),
            stream=make_async_iterator([body]),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
