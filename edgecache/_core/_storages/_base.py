from __future__ import annotations

import abc
from typing import Optional


class AsyncBaseStorage(abc.ABC):
    """
    The key/value contract every backend fulfils.

    Values are opaque bytes. Backends are free to evict entries at any time,
    except values written with `persist=True`: those never expire and are
    never evicted. Callers also rely on `add` never overwriting an existing value.
    """

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        pass

    @abc.abstractmethod
    async def set(self, key: str, value: bytes, ttl: Optional[float] = None, *, persist: bool = False) -> None:
        """
        Stores the value, replacing any previous one.

        `ttl` is in seconds, None falls back to the backend default. With
        `persist` the value ignores both and stays until it is replaced.
        """

    @abc.abstractmethod
    async def add(self, key: str, value: bytes, *, persist: bool = False) -> bool:
        """Stores the value only if the key is absent. Returns whether it was stored."""

    async def close(self) -> None:  # noqa: B027
        pass
