from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Union

from typing_extensions import assert_never

from edgecache._background import BackgroundTasks
from edgecache._core._directive import CAPABILITIES
from edgecache._core._generation import AsyncVersionStore
from edgecache._core._headers import (
    CONTROL_HEADER,
    SOURCE_HEADER,
    STATUS_HEADER,
    VERSION_HEADER,
)
from edgecache._core._keygen import build_cache_key
from edgecache._core._spec import (
    CACHED,
    PURGED,
    AnyState,
    CacheLookup,
    CacheMiss,
    CouldNotBeStored,
    EdgeCacheOptions,
    FromCache,
    IdleClient,
    PassThrough,
    PurgeGeneration,
    StoreAndUse,
    prepare_for_storage,
    restore_from_storage,
)
from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._core._storages._responses import AsyncResponseStore
from edgecache._core.models import Request, Response, ResponseMetadata, StoredResponse
from edgecache._utils import make_async_iterator

logger = logging.getLogger("edgecache.proxy")

RequestSender = Callable[[Request], Awaitable[Response]]


class AsyncEdgeCacheProxy:
    """
    Runs the edge cache state machine for one origin.

    This class is independent of any specific HTTP library and works only with internal models.
    It delegates requests to the origin through a user-provided callable and keeps responses
    and the cache generation in a key/value storage.

    Args:
        request_sender: Callable that sends a request to the origin and returns its response.
        storage: Key/value backend for both the generation and the stored responses.
        options: Behaviour switches, see `EdgeCacheOptions`.
        response_ttl: Seconds a stored response stays in the backend, defaults to None.
    """

    def __init__(
        self,
        request_sender: RequestSender,
        storage: AsyncBaseStorage,
        options: EdgeCacheOptions | None = None,
        response_ttl: float | None = None,
    ) -> None:
        self.send_request = request_sender
        self.storage = storage
        self.options = options if options is not None else EdgeCacheOptions()
        self.versions = AsyncVersionStore(storage)
        self.responses = AsyncResponseStore(storage, ttl=response_ttl)

    async def handle_request(self, request: Request, background: Optional[BackgroundTasks] = None) -> Response:
        """
        Answer a request from the store or the origin.

        Writes, purges and refreshes are queued on `background`. Without one they
        run before this method returns.
        """
        tasks = background if background is not None else BackgroundTasks()
        state: AnyState = IdleClient(options=self.options)
        response: Optional[Response] = None

        while response is None:
            logger.debug(f"Handling state: {state.__class__.__name__}")
            if isinstance(state, IdleClient):
                state = state.next(request)
            elif isinstance(state, PassThrough):
                response = await self.send_request(state.request)
            elif isinstance(state, CacheLookup):
                state = await self._handle_lookup(state)
            elif isinstance(state, CacheMiss):
                state = await self._handle_cache_miss(state)
            elif isinstance(state, PurgeGeneration):
                tasks.add_task(self._purge)
                state = state.next()
            elif isinstance(state, StoreAndUse):
                response = await self._handle_store_and_use(state, tasks)
            elif isinstance(state, CouldNotBeStored):
                response = self._finalize(request, state.response, state.status, state.generation, from_cache=False)
            elif isinstance(state, FromCache):
                if state.refresh:
                    tasks.add_task(self._refresh, request, state.generation)
                response = self._finalize(
                    request,
                    restore_from_storage(state.stored),
                    state.status,
                    state.generation,
                    from_cache=True,
                )
            else:
                assert_never(state)

        if background is None:
            await tasks()
        return response

    def _origin_request(self, request: Request, refresh: bool = False) -> Request:
        headers = request.headers.copy()
        headers[CONTROL_HEADER] = CAPABILITIES
        if refresh:
            return Request(
                method=request.method,
                url=request.url,
                headers=headers,
                stream=make_async_iterator([]),
                metadata={"edgecache_refresh": True},
            )
        return Request(
            method=request.method,
            url=request.url,
            headers=headers,
            stream=request.stream,
            metadata=request.metadata,
        )

    async def _handle_lookup(self, state: CacheLookup) -> Union[FromCache, CacheMiss]:
        # A failure here propagates on purpose: nothing may be cached under a guessed generation.
        generation = await self.versions.current_generation()
        cache_key = build_cache_key(state.request.url, generation)

        try:
            stored = await self.responses.retrieve(cache_key)
        except Exception as exc:
            logger.warning("Cache read failed: cache_key=%s error=%s", cache_key, str(exc))
            return state.next(generation, None, read_error=exc)

        return state.next(generation, stored)

    async def _handle_cache_miss(self, state: CacheMiss) -> AnyState:
        response = await self.send_request(self._origin_request(state.request))
        return state.next(response)

    async def _handle_store_and_use(self, state: StoreAndUse, tasks: BackgroundTasks) -> Response:
        body = await state.response.aread()
        stored = prepare_for_storage(state.response, body, self.options.stored_max_age)
        tasks.add_task(self._store, state.request, stored, state.generation, state.after_purge)
        return self._finalize(state.request, state.response, state.status, state.generation, from_cache=False)

    def _finalize(
        self,
        request: Request,
        response: Response,
        status: str,
        generation: Optional[int],
        from_cache: bool,
    ) -> Response:
        response.metadata.update(  # type: ignore[attr-defined]
            ResponseMetadata(
                edgecache_from_cache=from_cache,
                edgecache_status=status,
                edgecache_generation=generation,
                edgecache_stored=status.endswith(CACHED),
                edgecache_purged=PURGED in status,
            )
        )
        if request.method.upper() == "GET" and response.status_code == 200:
            response.headers[STATUS_HEADER] = status
            if generation is not None:
                response.headers[VERSION_HEADER] = str(generation)
            response.headers[SOURCE_HEADER] = "cache" if from_cache else "origin"
        logger.info(
            "Request handled: method=%s url=%s status=%s generation=%s",
            request.method,
            request.url,
            status,
            generation,
        )
        return response

    async def _purge(self) -> None:
        await self.versions.bump()

    async def _store(
        self,
        request: Request,
        stored: StoredResponse,
        generation: Optional[int],
        after_purge: bool,
    ) -> None:
        if after_purge or generation is None:
            generation = await self.versions.current_generation()
        await self.responses.store(build_cache_key(request.url, generation), stored)

    async def _refresh(self, request: Request, generation: int) -> None:
        """Fetch the entry again and apply the same rules as a miss, without a client waiting."""
        logger.debug("Refreshing stored response: url=%s generation=%d", request.url, generation)
        state: AnyState = CacheMiss(
            options=self.options,
            request=request,
            generation=generation,
            status="",
            storable=True,
        )
        response = await self.send_request(self._origin_request(request, refresh=True))
        state = state.next(response)

        if isinstance(state, PurgeGeneration):
            await self._purge()
            state = state.next()

        if isinstance(state, StoreAndUse):
            body = await state.response.aread()
            stored = prepare_for_storage(state.response, body, self.options.stored_max_age)
            await self._store(request, stored, state.generation, state.after_purge)
        else:
            logger.debug("Refreshed response was not stored: url=%s", request.url)
