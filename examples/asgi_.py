# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "edgecache",
#     "httpx",
# ]
#
# [tool.uv.sources]
# edgecache = { path = "../", editable = true }
# ///


import asyncio
import time

import httpx

from edgecache import AsyncInMemoryStorage
from edgecache.asgi import ASGIEdgeCacheMiddleware

processed_requests = 0


async def origin(scope, receive, send):
    """A tiny origin: pages are cacheable, POST /publish purges everything."""
    global processed_requests
    processed_requests += 1

    directive = b"purgeall" if scope["method"] == "POST" else b"cache"
    body = f"<p>rendered at {time.time():.2f}, request #{processed_requests}</p>".encode()
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"text/html"), (b"x-html-edge-cache", directive)],
        }
    )
    await send({"type": "http.response.body", "body": body, "more_body": False})


async def main():
    app = ASGIEdgeCacheMiddleware(origin, storage=AsyncInMemoryStorage())
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        for _ in range(3):
            response = await client.get("/")
            print(response.headers["x-html-edge-cache-status"], response.text)

        await client.post("/publish")
        response = await client.get("/")
        print(response.headers["x-html-edge-cache-status"], response.text)


if __name__ == "__main__":
    asyncio.run(main())
