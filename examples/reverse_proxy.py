#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "edgecache[httpx,sqlite]",
# ]
#
# [tool.uv.sources]
# edgecache = { path = "../", editable = true }
# ///

import asyncio

from edgecache import AsyncEdgeCacheProxy, AsyncSqliteStorage, Headers, Request
from edgecache.httpx import AsyncHTTPXOrigin


async def main():
    origin = AsyncHTTPXOrigin(base_url="https://example.com")
    proxy = AsyncEdgeCacheProxy(request_sender=origin, storage=AsyncSqliteStorage())

    for _ in range(2):
        request = Request(method="GET", url="https://example.com/", headers=Headers({"accept": "text/html"}))
        response = await proxy.handle_request(request)
        print(response.status_code, response.metadata)

    await origin.aclose()
    await proxy.storage.close()


if __name__ == "__main__":
    asyncio.run(main())
