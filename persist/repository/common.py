"""
Shared repository plumbing: cache binding and record containers.

A cache handler is either a mutable mapping (dict, an LRU mapping, ...)
or any object exposing:

    get(name) -> record | None
    entries() -> iterable of (name, record)
    set(name, record | None)
    delete(name)                 optional (or __delitem__)

Its shape is resolved once into a CacheBinding when a repository is built.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from persist.core.config import RepositoryConfig
from persist.core.errors import ConfigError
from persist.handle import Persist
from persist.repository.record import AbstractRecord

logger = logging.getLogger(__name__)

RecordFilter = Callable[[Any, str], bool]


class CacheCapability(str, Enum):
    """How a cache handler forgets a name."""

    DELETE = "delete"  # explicit removal
    SET_NONE = "set_none"  # store None in place of the record


@dataclass(frozen=True)
class CacheBinding:
    """A cache handler together with its resolved capabilities."""

    handler: Any
    capability: CacheCapability
    is_mapping: bool

    @classmethod
    def resolve(cls, handler: Any) -> CacheBinding | None:
        """
        Inspect a cache handler once.

        Returns None when no handler is configured.

        Raises:
            ConfigError: If the handler has neither a mapping interface nor
                get/entries/set methods
        """
        if handler is None:
            return None
        if isinstance(handler, MutableMapping):
            return cls(handler, CacheCapability.DELETE, is_mapping=True)

        missing = [m for m in ("get", "entries", "set") if not callable(getattr(handler, m, None))]
        if missing:
            raise ConfigError(
                f"Cache handler {type(handler).__name__} is missing: {', '.join(missing)}"
            )
        if callable(getattr(handler, "delete", None)) or hasattr(handler, "__delitem__"):
            capability = CacheCapability.DELETE
        else:
            capability = CacheCapability.SET_NONE
        return cls(handler, capability, is_mapping=False)

    def get(self, name: str) -> AbstractRecord | None:
        return self.handler.get(name)

    def entries(self) -> Iterator[tuple[str, AbstractRecord]]:
        """Iterate (name, record) pairs, skipping names marked absent."""
        # Snapshot so records can be deleted while iterating
        items = list(self.handler.items() if self.is_mapping else self.handler.entries())
        for name, record in items:
            if record is not None:
                yield name, record

    def store(self, name: str, record: AbstractRecord) -> None:
        if self.is_mapping:
            self.handler[name] = record
        else:
            self.handler.set(name, record)

    def remove(self, name: str) -> None:
        if self.capability is CacheCapability.SET_NONE:
            self.handler.set(name, None)
        elif self.is_mapping:
            self.handler.pop(name, None)
        elif callable(getattr(self.handler, "delete", None)):
            self.handler.delete(name)
        elif self.handler.get(name) is not None:
            del self.handler[name]


class RecordContainer:
    """
    Owns the Persist handle of one name and the record built on it.

    With a cache bound, the container becomes the handle's change listener:
    every successful write puts the record into the cache, every delete
    takes it out, and then the caller's own on_change is called with the
    same value.
    """

    def __init__(
        self,
        name: str,
        config: RepositoryConfig,
        cache: CacheBinding | None = None,
    ) -> None:
        self._name = name
        self._config = config
        self._cache = cache
        self._record: AbstractRecord | None = None

        if cache is not None:
            self._persist = Persist(name, config, on_change=self._on_change)
        else:
            self._persist = Persist(name, config)

    @property
    def persist(self) -> Persist:
        return self._persist

    def get_record(self, value: Any, ephemeral: bool) -> AbstractRecord:
        """Build the record for this name. The latest one is what gets cached."""
        record_class = self._config.record_class
        record = record_class(self._persist, value, ephemeral)
        self._record = record
        return record

    def _on_change(self, value: Any | None) -> None:
        if self._cache is not None:
            if value is None:
                self._cache.remove(self._name)
                logger.debug(f"Removed '{self._name}' from cache")
            elif self._record is not None:
                self._cache.store(self._name, self._record)
                logger.debug(f"Cached '{self._name}'")

        if self._config.on_change is not None:
            self._config.on_change(value)
