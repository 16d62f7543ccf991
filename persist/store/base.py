"""
Storage interfaces.

A factory addresses one storage medium (a directory, a database, a dict)
and hands out one Storage per name. A Storage reads and writes a single
slot. Absence is always None, never an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Storage(ABC):
    """
    A single named slot in a storage medium.

    Implementations:
        FileStorage — one file per name
        SQLiteStorage — one row per name
        MemoryStorage — one dict entry per name, for testing
    """

    @abstractmethod
    async def get(self) -> Any | None:
        """Read the stored value. Returns None if nothing is stored."""
        ...

    @abstractmethod
    async def set(self, value: Any | None) -> None:
        """Write a value. Writing None deletes the stored value."""
        ...


class StorageFactory(ABC):
    """Creates Storage slots and enumerates the names that hold a value."""

    @abstractmethod
    def create(self, name: str) -> Storage:
        """Create the Storage for a name. Does not touch the medium."""
        ...

    @abstractmethod
    async def list_names(self) -> list[str]:
        """List all names currently holding a value. Empty if none."""
        ...
