"""
SQLite storage backend.

Uses aiosqlite for async SQLite access.
WAL mode enabled for concurrent read support.
All names of one factory share a single connection and table.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import aiosqlite

from persist.core.errors import StorageError
from persist.store.base import Storage, StorageFactory

logger = logging.getLogger(__name__)


class SQLiteStorageFactory(StorageFactory):
    """
    SQLite-based storage, one row per name.

    Usage:
        factory = SQLiteStorageFactory("~/.persist/data.db")
        storage = factory.create("user")
        await storage.set({"name": "Alex"})
        value = await storage.get()  # {"name": "Alex"}
        await factory.close()
    """

    def __init__(
        self,
        db_path: str | Path,
        serializer: Callable[[Any], str | bytes] = json.dumps,
        deserializer: Callable[[Any], Any] = json.loads,
    ) -> None:
        self._db_path = Path(db_path).expanduser()
        self._serializer = serializer
        self._deserializer = deserializer
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the database and create the table."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self._db_path))

            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")

            await self._db.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    name TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at REAL NOT NULL DEFAULT (unixepoch('now'))
                )
                """
            )

            await self._db.commit()
            logger.debug(f"SQLite storage initialized at {self._db_path}")

        except Exception as e:
            raise StorageError(f"Failed to initialize SQLite at {self._db_path}: {e}") from e

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database is initialized."""
        if self._db is None:
            await self.initialize()
        return self._db  # type: ignore[return-value]

    def create(self, name: str) -> SQLiteStorage:
        return SQLiteStorage(name, self)

    async def list_names(self) -> list[str]:
        if self._db is None and not self._db_path.exists():
            return []
        db = await self._ensure_db()
        try:
            async with db.execute("SELECT name FROM records ORDER BY name") as cursor:
                rows = await cursor.fetchall()
            return [row[0] for row in rows]
        except Exception as e:
            raise StorageError(f"Failed to list names: {e}") from e

    async def read(self, name: str) -> Any | None:
        db = await self._ensure_db()
        try:
            async with db.execute(
                "SELECT value FROM records WHERE name = ?", (name,)
            ) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StorageError(f"Failed to get '{name}': {e}", name=name) from e
        if row is None:
            return None
        return self._deserializer(row[0])

    async def write(self, name: str, value: Any) -> None:
        data = self._serializer(value)
        db = await self._ensure_db()
        try:
            await db.execute(
                """
                INSERT INTO records (name, value, updated_at) VALUES (?, ?, unixepoch('now'))
                ON CONFLICT(name) DO UPDATE SET value = ?, updated_at = unixepoch('now')
                """,
                (name, data, data),
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to set '{name}': {e}", name=name) from e

    async def remove(self, name: str) -> None:
        db = await self._ensure_db()
        try:
            await db.execute("DELETE FROM records WHERE name = ?", (name,))
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to delete '{name}': {e}", name=name) from e

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None


class SQLiteStorage(Storage):
    """One row of a SQLiteStorageFactory table."""

    def __init__(self, name: str, factory: SQLiteStorageFactory) -> None:
        self._name = name
        self._factory = factory

    async def get(self) -> Any | None:
        return await self._factory.read(self._name)

    async def set(self, value: Any | None) -> None:
        if value is None:
            await self._factory.remove(self._name)
        else:
            await self._factory.write(self._name, value)
