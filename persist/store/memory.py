"""
In-memory storage backend — for testing.

Simple dict-based storage, separate per factory. Data lost when process exits.
"""

from __future__ import annotations

from typing import Any

from persist.store.base import Storage, StorageFactory


class MemoryStorageFactory(StorageFactory):
    """
    In-memory storage for testing.

    Usage:
        factory = MemoryStorageFactory()
        storage = factory.create("key")
        await storage.set({"text": "value"})
        assert await storage.get() == {"text": "value"}
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def create(self, name: str) -> MemoryStorage:
        return MemoryStorage(name, self._data)

    async def list_names(self) -> list[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        """Drop everything stored through this factory."""
        self._data.clear()


class MemoryStorage(Storage):
    def __init__(self, name: str, data: dict[str, Any]) -> None:
        self._name = name
        self._data = data

    async def get(self) -> Any | None:
        return self._data.get(self._name)

    async def set(self, value: Any | None) -> None:
        if value is None:
            self._data.pop(self._name, None)
        else:
            self._data[self._name] = value
