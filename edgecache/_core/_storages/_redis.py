from __future__ import annotations

import logging
import typing as tp
from typing import Optional

from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._utils import float_seconds_to_int_milliseconds

try:
    import redis.asyncio as redis
except ImportError:  # pragma: no cover
    redis = None  # type: ignore

logger = logging.getLogger("edgecache.storages")


class AsyncRedisStorage(AsyncBaseStorage):
    """
    A redis storage, shared by every worker that talks to the same server.

    :param client: A client for redis, defaults to None
    :type client: tp.Optional["redis.Redis"], optional
    :param default_ttl: Seconds after which a value set without an explicit ttl expires, defaults to None
    :type default_ttl: tp.Optional[float], optional
    """

    def __init__(
        self,
        client: tp.Optional[redis.Redis] = None,  # type: ignore
        default_ttl: Optional[float] = None,
    ) -> None:
        if redis is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `edgecache` installed with the `redis` extension as shown.\n"
                "```pip install edgecache[redis]```"
            )
        self._client = client if client is not None else redis.Redis()
        self._default_ttl = default_ttl

    def _px(self, ttl: Optional[float], persist: bool = False) -> Optional[int]:
        if persist:
            return None
        ttl = ttl if ttl is not None else self._default_ttl
        return float_seconds_to_int_milliseconds(ttl) if ttl is not None else None

    async def get(self, key: str) -> Optional[bytes]:
        return tp.cast(Optional[bytes], await self._client.get(key))

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None, *, persist: bool = False) -> None:
        await self._client.set(key, value, px=self._px(ttl, persist))

    async def add(self, key: str, value: bytes, *, persist: bool = False) -> bool:
        return bool(await self._client.set(key, value, px=self._px(None, persist), nx=True))

    async def close(self) -> None:  # pragma: no cover
        await self._client.aclose()
