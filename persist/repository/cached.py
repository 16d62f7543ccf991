"""
CachedRepository — every stored record held in memory.

preload() reads all names the backend knows into the cache once. After
that, lookups and iteration are synchronous. Writes and deletes made
through records of this repository keep the cache current. Writes made
to the backend by other means are not seen.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from persist.core.config import RepositoryConfig
from persist.core.errors import RecordNotFoundError
from persist.repository.common import CacheBinding, RecordContainer, RecordFilter
from persist.repository.record import AbstractRecord, GenericRecord

logger = logging.getLogger(__name__)


class CachedRepository:
    """
    Eager multi-record store.

    Usage:
        repo = await CachedRepository.preload(RepositoryConfig(storage_factory=factory))
        for name, record in repo.entries():
            ...
        admins = repo.filter(lambda value, name: value["role"] == "admin")
    """

    def __init__(self, config: RepositoryConfig, cache: CacheBinding) -> None:
        self._config = config
        self._cache = cache

    @classmethod
    async def preload(cls, config: RepositoryConfig) -> CachedRepository:
        """
        Build a repository with every stored record loaded.

        A plain dict is used as the cache when none is configured.
        """
        overrides: dict[str, Any] = {}
        if config.cache_handler is None:
            overrides["cache_handler"] = {}
        if config.record_class is None:
            overrides["record_class"] = GenericRecord
        if overrides:
            config = config.replace(**overrides)

        cache = CacheBinding.resolve(config.cache_handler)
        assert cache is not None
        repo = cls(config, cache)

        names = await config.storage_factory.list_names()
        loaded = 0
        for name in names:
            container = RecordContainer(name, config, cache)
            value = await container.persist.get()
            if value is not None:
                cache.store(name, container.get_record(value, ephemeral=False))
                loaded += 1

        logger.debug(f"Preloaded {loaded} of {len(names)} record(s)")
        return repo

    @property
    def config(self) -> RepositoryConfig:
        return self._config

    @property
    def record_class(self) -> type[AbstractRecord]:
        return self._config.record_class  # type: ignore[return-value]

    def create_ephemeral(self, name: str, value: Any) -> AbstractRecord:
        """Build a record without writing it. It is cached once saved."""
        container = RecordContainer(name, self._config, self._cache)
        return container.get_record(value, ephemeral=True)

    async def create(self, name: str, value: Any) -> AbstractRecord:
        """Build a record and save it."""
        record = self.create_ephemeral(name, value)
        await record.save()
        return record

    def get(self, name: str) -> AbstractRecord | None:
        return self._cache.get(name)

    def get_or_fail(self, name: str) -> AbstractRecord:
        """
        Raises:
            RecordNotFoundError: If the name is not cached
        """
        record = self.get(name)
        if record is None:
            raise RecordNotFoundError(self.record_class, name)
        return record

    def entries(self) -> Iterator[tuple[str, AbstractRecord]]:
        """Iterate (name, record) pairs in cache order."""
        return self._cache.entries()

    def find(self, predicate: RecordFilter) -> AbstractRecord | None:
        """First record whose (value, name) matches."""
        for name, record in self._cache.entries():
            if predicate(record.value, name):
                return record
        return None

    def filter(self, predicate: RecordFilter) -> list[AbstractRecord]:
        """All records whose (value, name) match, in cache order."""
        return [
            record
            for name, record in self._cache.entries()
            if predicate(record.value, name)
        ]

    def __len__(self) -> int:
        return sum(1 for _ in self._cache.entries())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._cache.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._cache.entries())
