from __future__ import annotations

import logging
from typing import Dict, Optional

import anyio

from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._lfu_cache import LFUCache

logger = logging.getLogger("edgecache.storages")


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A process-local storage.

    Only suitable for a single worker, because every process gets its own
    generation counter.

    Values written with `persist=True` sit outside the LFU and do not count
    against `capacity`.

    :param capacity: The maximum number of values kept, least frequently used ones are evicted first
    :type capacity: int, optional
    :param default_ttl: Seconds after which a value set without an explicit ttl expires, defaults to None
    :type default_ttl: tp.Optional[float], optional
    """

    def __init__(self, capacity: int = 1024, default_ttl: Optional[float] = None) -> None:
        self._cache: LFUCache[str, bytes] = LFUCache(capacity=capacity)
        # Persisted values live outside the LFU so eviction never reaches them.
        self._persistent: Dict[str, bytes] = {}
        self._default_ttl = default_ttl
        self._lock = anyio.Lock()

    async def get(self, key: str) -> Optional[bytes]:
        async with self._lock:
            if key in self._persistent:
                return self._persistent[key]
            try:
                return self._cache.get(key)
            except KeyError:
                return None

    def _put(self, key: str, value: bytes, ttl: Optional[float], persist: bool) -> None:
        if persist:
            self._cache.remove_key(key)
            self._persistent[key] = value
        else:
            self._persistent.pop(key, None)
            self._cache.put(key, value, ttl=ttl if ttl is not None else self._default_ttl)

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None, *, persist: bool = False) -> None:
        async with self._lock:
            self._put(key, value, ttl, persist)

    async def add(self, key: str, value: bytes, *, persist: bool = False) -> bool:
        async with self._lock:
            if key in self._persistent:
                return False
            try:
                self._cache.get(key)
            except KeyError:
                self._put(key, value, None, persist)
                return True
            return False
