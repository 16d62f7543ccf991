"""
Persist — typed, validated values stored by name, with record caching.

Public API:
    from persist import Persist, Repository, CachedRepository, persist, obtain
"""

__version__ = "0.1.0"

# Core
from persist.core.config import Config, InstanceConfig, PersistSettings, RepositoryConfig
from persist.core.errors import (
    ConfigError,
    PersistError,
    RecordError,
    RecordNotFoundError,
    RecordUpdateError,
    StorageError,
)
from persist.handle import Persist

# Storage
from persist.store.base import Storage, StorageFactory
from persist.store.file import FileStorageFactory
from persist.store.memory import MemoryStorageFactory
from persist.store.sqlite import SQLiteStorageFactory

# Repositories
from persist.repository.record import AbstractRecord, GenericRecord
from persist.repository.repository import Repository
from persist.repository.cached import CachedRepository

# Defaults
from persist.defaults import (
    configure,
    get_default_instance,
    get_defaults,
    get_repo,
    obtain,
    persist,
    preload_repo,
    record,
    restore_builtin_defaults,
    set_defaults,
)

__all__ = [
    # Core
    "Persist",
    "Config",
    "InstanceConfig",
    "RepositoryConfig",
    "PersistSettings",
    # Errors
    "PersistError",
    "ConfigError",
    "StorageError",
    "RecordError",
    "RecordNotFoundError",
    "RecordUpdateError",
    # Storage
    "Storage",
    "StorageFactory",
    "FileStorageFactory",
    "MemoryStorageFactory",
    "SQLiteStorageFactory",
    # Repositories
    "AbstractRecord",
    "GenericRecord",
    "Repository",
    "CachedRepository",
    # Defaults
    "configure",
    "get_defaults",
    "set_defaults",
    "restore_builtin_defaults",
    "get_default_instance",
    "persist",
    "obtain",
    "record",
    "get_repo",
    "preload_repo",
]
