from edgecache._core._headers import Headers as Headers
from edgecache._core.models import (
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
    StoredResponse as StoredResponse,
)
from edgecache._core._directive import (
    ABSENT as ABSENT,
    CAPABILITIES as CAPABILITIES,
    DEFAULT_BYPASS_COOKIES as DEFAULT_BYPASS_COOKIES,
    Absent as Absent,
    ControlDirective as ControlDirective,
    decode as decode_directive,
    encode as encode_directive,
)
from edgecache._core._bypass import should_bypass as should_bypass
from edgecache._core._keygen import build_cache_key as build_cache_key
from edgecache._core._spec import (
    AnyState as AnyState,
    CacheLookup as CacheLookup,
    CacheMiss as CacheMiss,
    CouldNotBeStored as CouldNotBeStored,
    EdgeCacheOptions as EdgeCacheOptions,
    FromCache as FromCache,
    IdleClient as IdleClient,
    PassThrough as PassThrough,
    PurgeGeneration as PurgeGeneration,
    State as State,
    StoreAndUse as StoreAndUse,
)
from edgecache._core._storages import (
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncRedisStorage as AsyncRedisStorage,
    AsyncResponseStore as AsyncResponseStore,
    AsyncSqliteStorage as AsyncSqliteStorage,
)
from edgecache._core._generation import AsyncVersionStore as AsyncVersionStore
from edgecache._background import BackgroundTasks as BackgroundTasks
from edgecache._async_cache import AsyncEdgeCacheProxy as AsyncEdgeCacheProxy
from edgecache._exceptions import (
    EdgeCacheError as EdgeCacheError,
    GenerationUnavailable as GenerationUnavailable,
    OriginError as OriginError,
    StorageError as StorageError,
)

__version__ = "0.1.0"

__all__ = (
    ## States
    "AnyState",
    "State",
    "IdleClient",
    "PassThrough",
    "CacheLookup",
    "CacheMiss",
    "PurgeGeneration",
    "StoreAndUse",
    "CouldNotBeStored",
    "FromCache",
    "EdgeCacheOptions",
    ## Models
    "Request",
    "Response",
    "StoredResponse",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers and directives
    "Headers",
    "ABSENT",
    "Absent",
    "CAPABILITIES",
    "DEFAULT_BYPASS_COOKIES",
    "ControlDirective",
    "decode_directive",
    "encode_directive",
    "should_bypass",
    "build_cache_key",
    ## Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSqliteStorage",
    "AsyncRedisStorage",
    "AsyncResponseStore",
    "AsyncVersionStore",
    # Proxy
    "AsyncEdgeCacheProxy",
    "BackgroundTasks",
    # Errors
    "EdgeCacheError",
    "StorageError",
    "GenerationUnavailable",
    "OriginError",
)
