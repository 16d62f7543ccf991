"""
Repository — on-demand access to many records sharing one config.

Records are read from storage when asked for. With a cache handler
configured, records written through the repository are cached and later
lookups return the same instance without touching storage.
"""

from __future__ import annotations

import logging
from typing import Any

from persist.core.config import RepositoryConfig
from persist.core.errors import RecordNotFoundError
from persist.repository.common import CacheBinding, RecordContainer
from persist.repository.record import AbstractRecord, GenericRecord

logger = logging.getLogger(__name__)


class Repository:
    """
    Lazy multi-record store.

    Usage:
        repo = Repository(RepositoryConfig(storage_factory=factory, cache_handler={}))
        user = await repo.create("alex", {"email": "alex@example.com"})
        same = await repo.get("alex")          # same instance, from cache
        settings = await repo.get("settings", {"theme": "light"}, keep_ephemeral=True)
    """

    def __init__(self, config: RepositoryConfig) -> None:
        if config.record_class is None:
            config = config.replace(record_class=GenericRecord)
        self._config = config
        self._cache = CacheBinding.resolve(config.cache_handler)

    @property
    def config(self) -> RepositoryConfig:
        return self._config

    @property
    def record_class(self) -> type[AbstractRecord]:
        return self._config.record_class  # type: ignore[return-value]

    def _container(self, name: str) -> RecordContainer:
        return RecordContainer(name, self._config, self._cache)

    def create_ephemeral(self, name: str, value: Any) -> AbstractRecord:
        """Build a record without writing it."""
        return self._container(name).get_record(value, ephemeral=True)

    async def create(self, name: str, value: Any) -> AbstractRecord:
        """Build a record and save it."""
        record = self.create_ephemeral(name, value)
        await record.save()
        return record

    async def get(
        self,
        name: str,
        default: Any = None,
        keep_ephemeral: bool = False,
    ) -> AbstractRecord | None:
        """
        Look up a record by name.

        Order: cache, then storage, then the default value. A record built
        from the default is saved unless keep_ephemeral is set. Returns
        None when nothing is stored and no default is given.
        """
        if self._cache is not None:
            cached = self._cache.get(name)
            if cached is not None:
                return cached

        container = self._container(name)
        value = await container.persist.get()
        if value is not None:
            return container.get_record(value, ephemeral=False)

        if default is None:
            return None

        record = container.get_record(default, ephemeral=True)
        if not keep_ephemeral:
            await record.save()
            logger.debug(f"Saved default value for '{name}'")
        return record

    async def get_or_fail(self, name: str) -> AbstractRecord:
        """
        Look up a record by name.

        Raises:
            RecordNotFoundError: If nothing is stored under the name
        """
        record = await self.get(name)
        if record is None:
            raise RecordNotFoundError(self.record_class, name)
        return record
