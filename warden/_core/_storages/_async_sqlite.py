from __future__ import annotations

import time
from pathlib import Path
from typing import (
    List,
    Optional,
    Set,
    Union,
)

import anysqlite

from warden._core._storages._async_base import AsyncBaseCache, AsyncBaseStorage
from warden._core._storages._packing import pack, unpack
from warden._core.models import (
    Entry,
    EntryMeta,
    Request,
    Response,
)
from warden._synchronization import AsyncLock
from warden._utils import ensure_cache_dict


class AsyncSqliteCache(AsyncBaseCache):
    def __init__(self, storage: "AsyncSqliteStorage", name: str) -> None:
        self.storage = storage
        self.name = name

    async def match(self, key: str) -> Optional[Entry]:
        async with self.storage._lock:
            connection = await self.storage._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT data FROM entries WHERE generation = ? AND cache_key = ?",
                (self.name, key),
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return unpack(row[0])

    async def put(self, key: str, request: Request, response: Response) -> Entry:
        snapshot = await response.snapshot()
        body = await snapshot.aread()

        entry = Entry(
            generation=self.name,
            cache_key=key,
            request=Request(
                method=request.method,
                url=request.url,
                headers=request.headers.copy(),
                metadata=dict(request.metadata),
            ),
            response=snapshot,
            meta=EntryMeta(created_at=time.time()),
        )

        async with self.storage._lock:
            connection = await self.storage._ensure_connection()
            cursor = await connection.cursor()
            # Last write wins
            await cursor.execute(
                "INSERT OR REPLACE INTO entries (generation, cache_key, data, created_at) VALUES (?, ?, ?, ?)",
                (self.name, key, pack(entry, body=body), entry.meta.created_at),
            )
            await connection.commit()

        return entry

    async def delete(self, key: str) -> bool:
        async with self.storage._lock:
            connection = await self.storage._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT 1 FROM entries WHERE generation = ? AND cache_key = ? LIMIT 1",
                (self.name, key),
            )
            if await cursor.fetchone() is None:
                return False
            await cursor.execute(
                "DELETE FROM entries WHERE generation = ? AND cache_key = ?",
                (self.name, key),
            )
            await connection.commit()
        return True

    async def keys(self) -> List[str]:
        async with self.storage._lock:
            connection = await self.storage._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT cache_key FROM entries WHERE generation = ? ORDER BY created_at, cache_key",
                (self.name,),
            )
            rows = await cursor.fetchall()
        return [row[0] for row in rows]


class AsyncSqliteStorage(AsyncBaseStorage):
    def __init__(
        self,
        *,
        connection: Optional[anysqlite.Connection] = None,
        database_path: Union[str, Path] = "warden_cache.db",
    ) -> None:
        self.connection = connection
        self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
        self._initialized = False
        self._lock = AsyncLock()

    async def _ensure_connection(self) -> anysqlite.Connection:
        """Ensure connection is established and database is initialized."""
        if self.connection is None:
            # Create cache directory and resolve full path on first connection
            parent = self.database_path.parent if self.database_path.parent != Path(".") else None
            full_path = ensure_cache_dict(parent) / self.database_path.name
            self.connection = await anysqlite.connect(str(full_path))
        if not self._initialized:
            await self._initialize_database()
            self._initialized = True
        return self.connection

    async def _initialize_database(self) -> None:
        """Initialize the database schema."""
        assert self.connection is not None
        cursor = await self.connection.cursor()

        # Generations are tracked separately so an empty one is still listed
        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS generations (
                name TEXT PRIMARY KEY,
                created_at REAL NOT NULL
            )
        """)

        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                generation TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                data BLOB NOT NULL,
                created_at REAL NOT NULL,
                PRIMARY KEY (generation, cache_key)
            )
        """)

        await self.connection.commit()

    async def open(self, name: str) -> AsyncSqliteCache:
        async with self._lock:
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "INSERT OR IGNORE INTO generations (name, created_at) VALUES (?, ?)",
                (name, time.time()),
            )
            await connection.commit()
        return AsyncSqliteCache(self, name)

    async def generation_names(self) -> Set[str]:
        async with self._lock:
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute("SELECT name FROM generations")
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def delete_generation(self, name: str) -> bool:
        async with self._lock:
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute("SELECT 1 FROM generations WHERE name = ? LIMIT 1", (name,))
            existed = await cursor.fetchone() is not None
            await cursor.execute("DELETE FROM entries WHERE generation = ?", (name,))
            await cursor.execute("DELETE FROM generations WHERE name = ?", (name,))
            await connection.commit()
        return existed

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            self._initialized = False
