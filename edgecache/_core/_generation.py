from __future__ import annotations

import logging

from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._exceptions import GenerationUnavailable

logger = logging.getLogger("edgecache.core.generation")

GENERATION_KEY = "html_cache_version"


class AsyncVersionStore:
    """
    The cache generation, kept in a backend that every worker shares.

    Reads fail loudly: a caller that cannot learn the generation must not
    build keys at all, or it would read and write a namespace nobody else uses.

    Bumping is read-then-write. Two purges racing each other may advance the
    counter by one instead of two, which still leaves every older entry
    unreachable.

    The counter is written with `persist=True`: a counter that expired would
    restart at 0 and bring back every entry stored before the purges.
    """

    def __init__(self, storage: AsyncBaseStorage, key: str = GENERATION_KEY) -> None:
        self.storage = storage
        self.key = key

    async def _read(self) -> int | None:
        try:
            raw = await self.storage.get(self.key)
        except Exception as exc:
            raise GenerationUnavailable(f"Could not read the cache generation: {exc}") from exc
        if raw is None:
            return None
        try:
            generation = int(raw)
        except ValueError as exc:
            raise GenerationUnavailable(f"Stored cache generation is not an integer: {raw!r}") from exc
        if generation < 0:
            raise GenerationUnavailable(f"Stored cache generation is negative: {generation}")
        return generation

    async def current_generation(self) -> int:
        generation = await self._read()
        if generation is not None:
            return generation

        try:
            created = await self.storage.add(self.key, b"0", persist=True)
        except Exception as exc:
            raise GenerationUnavailable(f"Could not initialize the cache generation: {exc}") from exc
        if created:
            logger.info("Initialized cache generation: key=%s", self.key)
            return 0

        # Somebody else initialized it first, their value wins.
        generation = await self._read()
        return generation if generation is not None else 0

    async def bump(self) -> int:
        generation = await self.current_generation() + 1
        await self.storage.set(self.key, str(generation).encode("ascii"), persist=True)
        logger.info("Advanced cache generation: key=%s generation=%d", self.key, generation)
        return generation
