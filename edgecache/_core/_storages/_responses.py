from __future__ import annotations

import logging
from typing import Optional

from edgecache._core._keygen import hash_cache_key
from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._core._storages._packing import pack, unpack
from edgecache._core.models import StoredResponse

logger = logging.getLogger("edgecache.storages")


class AsyncResponseStore:
    """
    Keeps stored responses in a key/value backend.

    Cache keys are hashed, so any URL makes a valid backend key.

    :param storage: The key/value backend
    :type storage: AsyncBaseStorage
    :param ttl: Seconds a stored response stays in the backend, defaults to None (the backend decides)
    :type ttl: tp.Optional[float], optional
    :param namespace: Prefix of every backend key written by this store
    :type namespace: str
    """

    def __init__(
        self,
        storage: AsyncBaseStorage,
        ttl: Optional[float] = None,
        namespace: str = "edgecache:response:",
    ) -> None:
        self.storage = storage
        self.ttl = ttl
        self.namespace = namespace

    def _backend_key(self, cache_key: str) -> str:
        return self.namespace + hash_cache_key(cache_key)

    async def retrieve(self, cache_key: str) -> Optional[StoredResponse]:
        return unpack(await self.storage.get(self._backend_key(cache_key)))

    async def store(self, cache_key: str, stored_response: StoredResponse) -> None:
        logger.debug("Storing response: cache_key=%s size=%d bytes", cache_key, len(stored_response.body))
        await self.storage.set(self._backend_key(cache_key), pack(stored_response), ttl=self.ttl)
