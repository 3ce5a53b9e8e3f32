from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional, Union

import anyio

from edgecache._core._storages._base import AsyncBaseStorage
from edgecache._utils import ensure_cache_dict

try:
    import anysqlite
except ImportError:  # pragma: no cover
    anysqlite = None  # type: ignore

logger = logging.getLogger("edgecache.storages")


class AsyncSqliteStorage(AsyncBaseStorage):
    """
    A sqlite storage, shared by the workers of one host.

    :param connection: An already opened connection, defaults to None
    :type connection: tp.Optional[anysqlite.Connection], optional
    :param database_path: Where to create the database when no connection is given
    :type database_path: Union[str, Path]
    :param default_ttl: Seconds after which a value set without an explicit ttl expires, defaults to None
    :type default_ttl: tp.Optional[float], optional
    """

    def __init__(
        self,
        *,
        connection: Optional[anysqlite.Connection] = None,
        database_path: Union[str, Path] = "edgecache.db",
        default_ttl: Optional[float] = None,
    ) -> None:
        if anysqlite is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `edgecache` installed with the `sqlite` extension as shown.\n"
                "```pip install edgecache[sqlite]```"
            )
        self.connection = connection
        self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
        self.default_ttl = default_ttl
        self._initialized = False
        self._setup_lock = anyio.Lock()

    async def _ensure_connection(self) -> anysqlite.Connection:
        """Ensure connection is established and database is initialized."""
        async with self._setup_lock:
            if self.connection is None:
                parent = self.database_path.parent if self.database_path.parent != Path(".") else None
                full_path = ensure_cache_dict(parent) / self.database_path.name
                self.connection = await anysqlite.connect(str(full_path))
            if not self._initialized:
                cursor = await self.connection.cursor()
                await cursor.execute("""
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL,
                        expires_at REAL
                    )
                """)
                await self.connection.commit()
                self._initialized = True
            return self.connection

    def _expires_at(self, ttl: Optional[float], persist: bool = False) -> Optional[float]:
        if persist:
            return None
        ttl = ttl if ttl is not None else self.default_ttl
        return time.time() + ttl if ttl is not None else None

    async def get(self, key: str) -> Optional[bytes]:
        connection = await self._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute(
            "SELECT value, expires_at FROM kv WHERE key = ?",
            (key,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None

        value, expires_at = row
        if expires_at is not None and expires_at <= time.time():
            await cursor.execute("DELETE FROM kv WHERE key = ?", (key,))
            await connection.commit()
            return None
        return bytes(value)

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None, *, persist: bool = False) -> None:
        connection = await self._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute(
            "INSERT OR REPLACE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
            (key, value, self._expires_at(ttl, persist)),
        )
        await connection.commit()

    async def add(self, key: str, value: bytes, *, persist: bool = False) -> bool:
        connection = await self._ensure_connection()
        cursor = await connection.cursor()
        # An expired row must not block the insert.
        await cursor.execute(
            "DELETE FROM kv WHERE key = ? AND expires_at IS NOT NULL AND expires_at <= ?",
            (key, time.time()),
        )
        await cursor.execute("SELECT 1 FROM kv WHERE key = ?", (key,))
        exists = await cursor.fetchone() is not None
        await cursor.execute(
            "INSERT OR IGNORE INTO kv (key, value, expires_at) VALUES (?, ?, ?)",
            (key, value, self._expires_at(None, persist)),
        )
        await connection.commit()
        return not exists

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            self._initialized = False
