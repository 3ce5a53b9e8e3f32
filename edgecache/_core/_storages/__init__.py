from edgecache._core._storages._base import AsyncBaseStorage as AsyncBaseStorage
from edgecache._core._storages._memory import AsyncInMemoryStorage as AsyncInMemoryStorage
from edgecache._core._storages._redis import AsyncRedisStorage as AsyncRedisStorage
from edgecache._core._storages._responses import AsyncResponseStore as AsyncResponseStore
from edgecache._core._storages._sqlite import AsyncSqliteStorage as AsyncSqliteStorage
