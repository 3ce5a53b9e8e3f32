from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    List,
    Optional,
    Union,
)

from edgecache._core._bypass import should_bypass
from edgecache._core._directive import (
    ABSENT,
    DEFAULT_BYPASS_COOKIES,
    DirectiveOrAbsent,
    decode,
    effective_bypass_cookies,
)
from edgecache._core._headers import (
    CONTROL_HEADER,
    PRESERVED_HEADER_PREFIX,
    PRESERVED_HEADERS,
    STATUS_HEADER,
    accepts_html,
    cookie_header,
    has_no_cache,
)
from edgecache._core.models import StoredResponse

if TYPE_CHECKING:
    from edgecache import Request, Response


logger = logging.getLogger("edgecache.core.spec")

STORED_MAX_AGE = 315360000
"""Ten years. Stored copies look immutable to anything sitting between the store and us."""

# Status trail vocabulary
MISS = "Miss"
HIT = "Hit"
BYPASS_COOKIE = "Bypass Cookie"
BYPASS_FOR_RELOAD = "Bypass for Reload"
CACHE_READ_EXCEPTION = "Cache Read Exception"
PURGED = ", Purged"
CACHED = ", Cached"
REFRESHED = ", Refreshed"


@dataclass
class EdgeCacheOptions:
    """
    Configuration options for the edge cache.

    Attributes:
    ----------
    bypass_cookies : list[str]
        Cookie prefixes that mark a request as personalized when the origin
        sent no directive of its own. A request carrying one of them is never
        written to the store and never triggers a refresh.

        Default: ``["wp-", "wordpress", "comment_", "woocommerce_"]``

    html_only : bool
        When True, only requests whose ``Accept`` header mentions ``text/html``
        are handled; everything else passes straight through.

        Default: False

    serve_cached_on_bypass : bool
        What a cache hit does for a request with a bypass cookie.

        - True: the stored body is served, only the refresh is skipped.
        - False: the request goes to the origin and its answer is not stored.

        Default: True

    refresh_undirected : bool
        When True, a hit on an entry that was stored without any directive
        schedules a background refresh from the origin (stale-while-revalidate).

        Default: True

    stored_max_age : int
        The ``max-age`` written into the ``Cache-Control`` of stored copies.

        Default: 315360000 (ten years)

    Examples:
    --------
    >>> options = EdgeCacheOptions(bypass_cookies=["session"], html_only=True)
    """

    bypass_cookies: List[str] = field(default_factory=lambda: list(DEFAULT_BYPASS_COOKIES))
    html_only: bool = False
    serve_cached_on_bypass: bool = True
    refresh_undirected: bool = True
    stored_max_age: int = STORED_MAX_AGE


@dataclass
class State(ABC):
    options: EdgeCacheOptions

    @abstractmethod
    def next(self, *args: Any, **kwargs: Any) -> Union["State", None]:
        raise NotImplementedError("Subclasses must implement this method")


def response_directive(response: Union[Response, StoredResponse]) -> DirectiveOrAbsent:
    return decode(response.headers.get(CONTROL_HEADER))


def prepare_for_storage(response: Response, body: bytes, max_age: int = STORED_MAX_AGE) -> StoredResponse:
    """
    Build the copy of a response that goes to the store.

    Cookies never reach the store. The caching headers of the origin are kept
    under other names so that `restore_from_storage` can put them back, and
    the copy itself claims to be fresh for `max_age` seconds.
    """
    headers = response.headers.copy()
    for name in PRESERVED_HEADERS:
        value = headers.get(name)
        if value:
            del headers[name]
            headers[PRESERVED_HEADER_PREFIX + name] = value
    headers.pop("set-cookie", None)
    headers.pop(STATUS_HEADER, None)
    headers["Cache-Control"] = f"public, max-age={max_age}"
    return StoredResponse(status_code=response.status_code, headers=headers, body=body)


def restore_from_storage(stored: StoredResponse) -> Response:
    """Reverse `prepare_for_storage`: the client sees the origin's own caching headers again."""
    response = stored.to_response()
    headers = response.headers
    headers.pop("cache-control", None)
    headers.pop(STATUS_HEADER, None)
    for name in PRESERVED_HEADERS:
        value = headers.get(PRESERVED_HEADER_PREFIX + name)
        if value:
            del headers[PRESERVED_HEADER_PREFIX + name]
            headers[name] = value
    return response


@dataclass
class IdleClient(State):
    """
    The entry point: decide whether the cache engages at all.

    State Transitions:
    -----------------
    - PassThrough: another edge cache sits in front of us, or the request is out of scope
    - CacheLookup: a plain GET, the store must be consulted
    - CacheMiss: anything else goes to the origin and is never stored
    """

    def next(self, request: Request) -> Union["PassThrough", "CacheLookup", "CacheMiss"]:
        if CONTROL_HEADER in request.headers:
            logger.debug("Upstream edge cache detected, passing through: url=%s", request.url)
            return PassThrough(options=self.options, request=request)

        if self.options.html_only and not accepts_html(request.headers):
            return PassThrough(options=self.options, request=request)

        if has_no_cache(request.headers):
            return CacheMiss(options=self.options, request=request, status=BYPASS_FOR_RELOAD)

        if request.method.upper() != "GET":
            return CacheMiss(options=self.options, request=request, status=MISS)

        return CacheLookup(options=self.options, request=request)


@dataclass
class PassThrough(State):
    """The request is forwarded untouched and the response is returned untouched."""

    request: Request

    def next(self) -> None:
        return None


@dataclass
class CacheLookup(State):
    """
    The store has been asked for the request.

    The generation read here is reused for the rest of the request, so a
    purge made by a concurrent request cannot split one request over two
    namespaces.
    """

    request: Request

    def next(
        self,
        generation: int,
        stored: Optional[StoredResponse],
        read_error: Optional[BaseException] = None,
    ) -> Union["FromCache", "CacheMiss"]:
        if read_error is not None:
            return CacheMiss(
                options=self.options,
                request=self.request,
                generation=generation,
                status=f"{CACHE_READ_EXCEPTION}: {read_error}",
                storable=True,
            )

        if stored is None:
            return CacheMiss(
                options=self.options,
                request=self.request,
                generation=generation,
                status=MISS,
                storable=True,
            )

        directive = response_directive(stored)
        bypass_cookies = effective_bypass_cookies(directive, self.options.bypass_cookies)

        if should_bypass(cookie_header(self.request.headers), bypass_cookies):
            if self.options.serve_cached_on_bypass:
                return FromCache(
                    options=self.options,
                    stored=stored,
                    generation=generation,
                    status=BYPASS_COOKIE,
                )
            return CacheMiss(
                options=self.options,
                request=self.request,
                generation=generation,
                status=BYPASS_COOKIE,
                storable=True,
                bypass=True,
            )

        refresh = directive is ABSENT and stored.status_code == 200 and self.options.refresh_undirected
        return FromCache(
            options=self.options,
            stored=stored,
            generation=generation,
            status=HIT + REFRESHED if refresh else HIT,
            refresh=refresh,
        )


@dataclass
class CacheMiss(State):
    """
    The origin has to answer the request.

    State Transitions:
    -----------------
    - PurgeGeneration: the origin asked for a purge, wraps one of the two below
    - StoreAndUse: the answer is written to the store and served
    - CouldNotBeStored: the answer is only served

    Attributes:
    ----------
    generation : Optional[int]
        The generation of the lookup, None when the request never was eligible for one.
    status : str
        The status trail so far.
    storable : bool
        Whether the request itself allows storing the answer (a GET that went through a lookup).
    bypass : bool
        Whether bypass was already decided before reaching the origin.
    """

    request: Request
    generation: Optional[int] = None
    status: str = MISS
    storable: bool = False
    bypass: bool = False

    def next(self, response: Response) -> Union["PurgeGeneration", "StoreAndUse", "CouldNotBeStored"]:
        directive = response_directive(response)
        status = self.status

        purge = directive is not ABSENT and directive.purge
        if purge:
            status += PURGED

        bypass = self.bypass or should_bypass(
            cookie_header(self.request.headers),
            effective_bypass_cookies(directive, self.options.bypass_cookies),
        )

        next_state: Union[StoreAndUse, CouldNotBeStored]
        if (
            self.storable
            and (directive is ABSENT or directive.cache)
            and self.request.method.upper() == "GET"
            and response.status_code == 200
            and not bypass
        ):
            next_state = StoreAndUse(
                options=self.options,
                request=self.request,
                response=response,
                generation=self.generation,
                status=status + CACHED,
                after_purge=purge,
            )
        else:
            next_state = CouldNotBeStored(
                options=self.options,
                response=response,
                generation=self.generation,
                status=status,
            )

        if purge:
            return PurgeGeneration(options=self.options, generation=self.generation, next_state=next_state)
        return next_state


@dataclass
class PurgeGeneration(State):
    """
    The origin asked to drop every stored response.

    Nothing is deleted: the generation moves forward and the old keys are
    simply never built again.
    """

    generation: Optional[int]
    next_state: Union["StoreAndUse", "CouldNotBeStored"]

    def next(self) -> Union["StoreAndUse", "CouldNotBeStored"]:
        return self.next_state


@dataclass
class StoreAndUse(State):
    """
    The response is written to the store and served.

    When the same response also purged, the write must land in the namespace
    the purge opened, so `after_purge` tells the writer to read the
    generation again once the bump is done.
    """

    request: Request
    response: Response
    generation: Optional[int]
    status: str
    after_purge: bool = False

    def next(self) -> None:
        return None


@dataclass
class CouldNotBeStored(State):
    response: Response
    generation: Optional[int]
    status: str

    def next(self) -> None:
        return None


@dataclass
class FromCache(State):
    """
    A stored response answers the request.

    `refresh` asks for a background refresh of the entry from the origin.
    """

    stored: StoredResponse
    generation: int
    status: str
    refresh: bool = False

    def next(self) -> None:
        return None


AnyState = Union[
    IdleClient,
    PassThrough,
    CacheLookup,
    CacheMiss,
    PurgeGeneration,
    StoreAndUse,
    CouldNotBeStored,
    FromCache,
]
