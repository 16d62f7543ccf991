"""
Records — a persistence handle plus the last known value.

A record is ephemeral while its value is not confirmed to match storage:
freshly constructed, deleted, or reloaded when nothing was stored.
Concrete record kinds subclass AbstractRecord and build domain methods on
top of save/set/delete/reload/update.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from persist.core.errors import RecordUpdateError
from persist.handle import Persist

T = TypeVar("T")


class AbstractRecord(Generic[T]):
    """
    Base record.

    Subclass to add behavior:

        class Counter(AbstractRecord[dict]):
            async def increment(self) -> None:
                await self.update({"count": self.value["count"] + 1})

    State only changes after the storage call returns, so a failed write
    leaves value and ephemeral exactly as they were.
    """

    def __init__(self, persist: Persist, value: T, ephemeral: bool) -> None:
        self._persist = persist
        self._value = value
        self._ephemeral = ephemeral

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, value={self._value!r}, "
            f"ephemeral={self._ephemeral})"
        )

    @property
    def name(self) -> str:
        return self._persist.name

    @property
    def value(self) -> T:
        return self._value

    @property
    def ephemeral(self) -> bool:
        return self._ephemeral

    async def save(self) -> None:
        """Write the current value to storage."""
        await self._persist.set(self._value)
        self._ephemeral = False

    async def set(self, new_value: T) -> None:
        """Write a new value, then adopt it."""
        await self._persist.set(new_value)
        self._value = new_value
        self._ephemeral = False

    async def delete(self) -> None:
        """Remove the stored value. The last known value stays readable."""
        await self._persist.set(None)
        self._ephemeral = True

    async def reload(self) -> None:
        """Re-read storage, picking up changes made elsewhere."""
        new_value = await self._persist.get()
        if new_value is None:
            self._ephemeral = True
        else:
            self._value = new_value
            self._ephemeral = False

    async def update(self, partial: Mapping[str, Any]) -> None:
        """
        Shallow-merge fields into the current value and write the result.

        Works for mappings, dataclass instances and pydantic models.

        Raises:
            RecordUpdateError: If the value is not one of those
        """
        await self.set(merge_partial(self._value, partial))


class GenericRecord(AbstractRecord[T]):
    """Record with no behavior beyond the base operations."""


def merge_partial(value: Any, partial: Mapping[str, Any]) -> Any:
    """Return a copy of value with the fields in partial replaced."""
    if isinstance(value, BaseModel):
        return value.model_copy(update=dict(partial))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.replace(value, **partial)
    if isinstance(value, Mapping):
        return {**value, **partial}
    raise RecordUpdateError(
        f"Can only update records whose value is an object, got {type(value).__name__}",
        {"type": type(value).__name__},
    )
