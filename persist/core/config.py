"""
Persist configuration.

Two layers:

Runtime config (dataclasses, passed by reference into every handle and
repository):
    Config            storage_factory, validate_get, validate_set, default_name
    InstanceConfig    + validator, on_change
    RepositoryConfig  + record_class, cache_handler

Settings (pydantic, loaded from files and environment, then turned into a
runtime Config). Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (PERSIST_*)
3. Project config (./persist.toml)
4. User config (~/.persist/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    PERSIST_STORAGE_BACKEND → storage.backend
    PERSIST_STORAGE_PATH → storage.path
    PERSIST_VALIDATE_GET → validate_get
    PERSIST_DEFAULT_NAME → default_name
"""

from __future__ import annotations

import dataclasses
import os
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Literal

from pydantic import BaseModel, Field

from persist.core.errors import ConfigError

if TYPE_CHECKING:
    from persist.store.base import StorageFactory

Validator = Callable[[Any], Any]
ChangeListener = Callable[[Any], None]

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Runtime Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class Config:
    """Storage and validation settings shared by handles and repositories."""

    storage_factory: StorageFactory
    validate_get: bool = True
    validate_set: bool = False
    default_name: str = "default"

    def replace(self, **overrides: Any) -> Any:
        """Return a copy with some fields replaced."""
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_config(cls, base: Config, **overrides: Any) -> Any:
        """
        Build this config kind from any other config kind.

        Fields the base does not have keep their defaults unless overridden.
        Unknown overrides raise ConfigError.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = set(overrides) - names
        if unknown:
            raise ConfigError(
                f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}"
            )
        values = {
            f.name: getattr(base, f.name)
            for f in dataclasses.fields(base)
            if f.name in names
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class InstanceConfig(Config):
    """Config for a single persistence handle."""

    validator: Validator | None = None
    on_change: ChangeListener | None = None


@dataclass(frozen=True)
class RepositoryConfig(InstanceConfig):
    """
    Config shared by every record a repository produces.

    record_class defaults to GenericRecord when left as None.
    cache_handler None means no caching: every lookup reads storage.
    """

    record_class: type | None = None
    cache_handler: Any = None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Settings
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class StorageSettings(BaseModel):
    """Which backend to build and where it keeps data."""

    backend: Literal["file", "memory", "sqlite"] = "file"
    path: str = "data"
    file_extension: str = "json"
    file_prefix: str = ""
    file_name_handler: Literal["uri", "base64url"] = "uri"
    db_name: str = "persist.db"


class PersistSettings(BaseModel):
    """Root settings for Persist."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    validate_get: bool = True
    validate_set: bool = False
    default_name: str = "default"

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> PersistSettings:
        """
        Load settings from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        # Layer 1: User config (~/.persist/config.toml)
        user_config_path = user_path or Path.home() / ".persist" / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        # Layer 2: Project config (./persist.toml)
        project_config_path = project_path or Path.cwd() / "persist.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        # Layer 3: Environment variables
        _deep_merge(merged, _load_from_env())

        # Layer 4: Explicit overrides
        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return PersistSettings(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def build_storage_factory(self) -> StorageFactory:
        """Instantiate the configured storage backend."""
        from persist.store.file import FileStorageFactory
        from persist.store.memory import MemoryStorageFactory
        from persist.store.sqlite import SQLiteStorageFactory

        storage = self.storage
        if storage.backend == "memory":
            return MemoryStorageFactory()
        if storage.backend == "sqlite":
            return SQLiteStorageFactory(Path(storage.path) / storage.db_name)
        return FileStorageFactory(
            storage.path,
            file_extension=storage.file_extension,
            file_prefix=storage.file_prefix,
            file_name_handler=storage.file_name_handler,
        )

    def to_config(self) -> Config:
        """Build a runtime Config with a fresh storage factory."""
        return Config(
            storage_factory=self.build_storage_factory(),
            validate_get=self.validate_get,
            validate_set=self.validate_set,
            default_name=self.default_name,
        )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


_BOOL_FIELDS = {"validate_get", "validate_set"}


def _load_from_env() -> dict[str, Any]:
    """Load settings from PERSIST_* environment variables."""
    result: dict[str, Any] = {}

    env_mapping: dict[str, tuple[str | None, str]] = {
        "PERSIST_STORAGE_BACKEND": ("storage", "backend"),
        "PERSIST_STORAGE_PATH": ("storage", "path"),
        "PERSIST_STORAGE_FILE_EXTENSION": ("storage", "file_extension"),
        "PERSIST_STORAGE_FILE_PREFIX": ("storage", "file_prefix"),
        "PERSIST_STORAGE_FILE_NAME_HANDLER": ("storage", "file_name_handler"),
        "PERSIST_STORAGE_DB_NAME": ("storage", "db_name"),
        "PERSIST_VALIDATE_GET": (None, "validate_get"),
        "PERSIST_VALIDATE_SET": (None, "validate_set"),
        "PERSIST_DEFAULT_NAME": (None, "default_name"),
    }

    for env_var, (section, key) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if section is None and key in _BOOL_FIELDS:
            result[key] = _convert_value(value)
        elif section is None:
            result[key] = value
        else:
            result.setdefault(section, {})[key] = value

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes", "1"):
        return True
    if value.lower() in ("false", "no", "0"):
        return False
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            for var_name in pattern.findall(value):
                env_value = os.environ.get(var_name, "")
                value = value.replace(f"${{{var_name}}}", env_value)
            data[key] = value
