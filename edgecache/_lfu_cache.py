from __future__ import annotations

import time
from collections import OrderedDict, defaultdict
from typing import Callable, DefaultDict, Dict, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

__all__ = ["LFUCache"]


class LFUCache(Generic[K, V]):
    """
    Least-frequently-used mapping with optional per-key expiry.

    Ties between keys with the same frequency are broken by insertion order,
    so the oldest of the least used keys is evicted first.
    """

    def __init__(self, capacity: int, clock: Callable[[], float] = time.monotonic):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")

        self.capacity = capacity
        self._clock = clock
        # key -> (value, frequency, expires_at)
        self._items: Dict[K, Tuple[V, int, Optional[float]]] = {}
        self._buckets: DefaultDict[int, OrderedDict[K, None]] = defaultdict(OrderedDict)
        self._min_freq = 0

    def _touch(self, key: K, freq: int) -> int:
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
            if freq == self._min_freq:
                self._min_freq += 1
        self._buckets[freq + 1][key] = None
        return freq + 1

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def get(self, key: K) -> V:
        if key not in self._items:
            raise KeyError(f"Key {key} not found")
        value, freq, expires_at = self._items[key]
        if self._expired(expires_at):
            self.remove_key(key)
            raise KeyError(f"Key {key} expired")
        self._items[key] = (value, self._touch(key, freq), expires_at)
        return value

    def put(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None

        if key in self._items:
            _, freq, _ = self._items[key]
            self._items[key] = (value, self._touch(key, freq), expires_at)
            return

        if len(self._items) >= self.capacity:
            evicted, _ = self._buckets[self._min_freq].popitem(last=False)
            if not self._buckets[self._min_freq]:
                del self._buckets[self._min_freq]
            del self._items[evicted]

        self._items[key] = (value, 1, expires_at)
        self._buckets[1][key] = None
        self._min_freq = 1

    def remove_key(self, key: K) -> None:
        if key not in self._items:
            return
        _, freq, _ = self._items.pop(key)
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
            if freq == self._min_freq and self._buckets:
                self._min_freq = min(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        yield from list(self._items)
