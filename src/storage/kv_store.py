"""SQLite-backed key-value store holding every entity and index."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import aiosqlite

from src.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore(ABC):
    """Flat mapping from string key to a JSON-serializable value.

    There are no transactions and no compare-and-swap: callers doing
    read-modify-write must tolerate lost updates. Every failure surfaces
    as StorageUnavailable.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored at key, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store value at key, replacing any previous value."""

    @abstractmethod
    async def get_by_prefix(self, prefix: str) -> list[Any]:
        """Return all values whose key starts with prefix, ordered by key."""

    @abstractmethod
    async def mget(self, keys: list[str]) -> list[Any | None]:
        """Return values for keys, same length and order, None where absent."""

    async def connect(self):
        pass

    async def close(self):
        pass

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class SQLiteKVStore(KeyValueStore):
    """Async SQLite implementation of the key-value store."""

    def __init__(self, db_path: str = "marketplace.db", timeout: float = 5.0):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.timeout = timeout
        self._connection: aiosqlite.Connection | None = None

    async def connect(self):
        """Open database connection and create the table if needed."""
        try:
            self._connection = await aiosqlite.connect(self.db_path)
            await self._connection.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            await self._connection.commit()
        except aiosqlite.Error as e:
            logger.error(f"Could not open key-value store at {self.db_path}: {e}")
            raise StorageUnavailable(str(e)) from e

    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _run(self, operation: str, func: Callable[[aiosqlite.Connection], Awaitable[T]]) -> T:
        """Run func against the connection, mapping failures to StorageUnavailable."""
        if self._connection is None:
            raise StorageUnavailable(f"{operation}: store is not connected")
        try:
            return await asyncio.wait_for(func(self._connection), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Key-value {operation} timed out after {self.timeout}s")
            raise StorageUnavailable(f"{operation} timed out") from e
        except (aiosqlite.Error, ValueError) as e:
            logger.error(f"Key-value {operation} failed: {e}")
            raise StorageUnavailable(f"{operation} failed") from e

    async def get(self, key: str) -> Any | None:
        async def _get(conn: aiosqlite.Connection):
            cursor = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

        return await self._run("get", _get)

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)

        async def _set(conn: aiosqlite.Connection):
            await conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, payload),
            )
            await conn.commit()

        await self._run("set", _set)

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        async def _scan(conn: aiosqlite.Connection):
            # substr avoids LIKE wildcard escaping for keys containing '%' or '_'
            cursor = await conn.execute(
                "SELECT value FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            )
            rows = await cursor.fetchall()
            return [json.loads(row[0]) for row in rows]

        return await self._run("get_by_prefix", _scan)

    async def mget(self, keys: list[str]) -> list[Any | None]:
        if not keys:
            return []

        async def _mget(conn: aiosqlite.Connection):
            unique = list(dict.fromkeys(keys))
            placeholders = ",".join("?" * len(unique))
            cursor = await conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})",
                tuple(unique),
            )
            rows = await cursor.fetchall()
            found = {row[0]: json.loads(row[1]) for row in rows}
            return [found.get(key) for key in keys]

        return await self._run("mget", _mget)
