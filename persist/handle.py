"""
Persist — a handle on one named storage slot.

Applies the configured validator on read and/or write and notifies the
change listener after every successful write.
"""

from __future__ import annotations

import logging
from typing import Any

from persist.core.config import Config, InstanceConfig
from persist.core.errors import ConfigError
from persist.store.base import Storage

logger = logging.getLogger(__name__)


class Persist:
    """
    Reads and writes a single value by name.

    Usage:
        p = Persist("settings", config, validator=Settings.model_validate)
        p = Persist("notes")    # uses persist.defaults.get_defaults()
        await p.set({"theme": "dark"})
        value = await p.get()   # validated on read (validate_get=True)
        await p.set(None)       # deletes the stored value

    Validator errors propagate unchanged. The change listener is called
    with the written value (None for a delete) only after storage confirms
    the write.
    """

    def __init__(self, name: str, config: Config | None = None, **overrides: Any) -> None:
        if not name:
            raise ConfigError("Persist name must be a non-empty string")
        if config is None:
            from persist.defaults import get_defaults

            config = get_defaults()
        self._name = name
        self._config: InstanceConfig = InstanceConfig.from_config(config, **overrides)
        self._storage: Storage = self._config.storage_factory.create(name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> InstanceConfig:
        return self._config

    async def get(self) -> Any | None:
        """Read the stored value, or None if nothing is stored."""
        value = await self._storage.get()
        if value is None:
            return None
        validator = self._config.validator
        if self._config.validate_get and validator is not None:
            return validator(value)
        return value

    async def set(self, value: Any | None) -> None:
        """Write a value. None deletes the stored value."""
        validator = self._config.validator
        if value is not None and self._config.validate_set and validator is not None:
            value = validator(value)

        await self._storage.set(value)
        logger.debug(f"{'Deleted' if value is None else 'Stored'} '{self._name}'")

        if self._config.on_change is not None:
            self._config.on_change(value)
