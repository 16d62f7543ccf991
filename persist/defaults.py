"""
Process-wide defaults and shortcut functions.

Everything in the core takes its config explicitly. This module keeps one
default Config for scripts that just want to store something:

    await persist({"theme": "dark"})
    settings = await obtain()

Tests call restore_builtin_defaults() to start from a clean slate.
"""

from __future__ import annotations

import logging
from typing import Any

from persist.core.config import Config, PersistSettings, RepositoryConfig, Validator
from persist.handle import Persist
from persist.repository.cached import CachedRepository
from persist.repository.record import AbstractRecord
from persist.repository.repository import Repository
from persist.store.file import FileStorageFactory

logger = logging.getLogger(__name__)

_defaults: Config | None = None
_default_instance: Persist | None = None


def _builtin_defaults() -> Config:
    return Config(storage_factory=FileStorageFactory("data"))


def get_defaults() -> Config:
    """The current default Config."""
    global _defaults
    if _defaults is None:
        _defaults = _builtin_defaults()
    return _defaults


def set_defaults(**overrides: Any) -> Config:
    """Replace some default fields. Drops the cached default instance."""
    global _defaults, _default_instance
    _defaults = get_defaults().replace(**overrides)
    _default_instance = None
    return _defaults


def configure(settings: PersistSettings | None = None) -> Config:
    """Set the defaults from settings (loaded from files and env if omitted)."""
    global _defaults, _default_instance
    settings = settings or PersistSettings.load()
    _defaults = settings.to_config()
    _default_instance = None
    logger.debug(f"Defaults configured with {settings.storage.backend} storage")
    return _defaults


def restore_builtin_defaults() -> None:
    """Forget every customization. Used in testing."""
    global _defaults, _default_instance
    _defaults = None
    _default_instance = None


def get_default_instance() -> Persist:
    """The Persist handle for the default name."""
    global _default_instance
    if _default_instance is None:
        config = get_defaults()
        _default_instance = Persist(config.default_name, config)
    return _default_instance


async def persist(value: Any | None) -> None:
    """Store a value under the default name. None deletes it."""
    await get_default_instance().set(value)


async def obtain(validator: Validator | None = None) -> Any | None:
    """Read the value stored under the default name."""
    value = await get_default_instance().get()
    if validator is not None and value is not None:
        return validator(value)
    return value


async def record(default_value: Any = None, name: str | None = None) -> AbstractRecord | None:
    """
    Get the record for a name (the default name if omitted).

    If nothing is stored, the default becomes an ephemeral record that is
    not written until saved. Returns None without a default.
    """
    repo = get_repo()
    return await repo.get(name or repo.config.default_name, default_value, keep_ephemeral=True)


def get_repo(**overrides: Any) -> Repository:
    """A Repository over the defaults plus any RepositoryConfig overrides."""
    return Repository(RepositoryConfig.from_config(get_defaults(), **overrides))


async def preload_repo(**overrides: Any) -> CachedRepository:
    """A preloaded CachedRepository over the defaults plus overrides."""
    return await CachedRepository.preload(
        RepositoryConfig.from_config(get_defaults(), **overrides)
    )
