"""Tests for the Config system."""

import os
from pathlib import Path

import pytest

from persist.core.config import (
    Config,
    InstanceConfig,
    PersistSettings,
    RepositoryConfig,
    _convert_value,
    _deep_merge,
    _substitute_env_vars,
)
from persist.core.errors import ConfigError
from persist.store.file import FileStorageFactory
from persist.store.memory import MemoryStorageFactory
from persist.store.sqlite import SQLiteStorageFactory


def _load(**kwargs):
    """Load settings without touching real config files."""
    return PersistSettings.load(
        project_path=Path("/nonexistent/persist.toml"),
        user_path=Path("/nonexistent/config.toml"),
        **kwargs,
    )


# ━━━ Runtime config ━━━


def test_config_defaults():
    config = Config(storage_factory=MemoryStorageFactory())
    assert config.validate_get is True
    assert config.validate_set is False
    assert config.default_name == "default"


def test_from_config_copies_shared_fields():
    factory = MemoryStorageFactory()
    base = Config(storage_factory=factory, validate_set=True, default_name="x")

    repo_config = RepositoryConfig.from_config(base, cache_handler={})
    assert repo_config.storage_factory is factory
    assert repo_config.validate_set is True
    assert repo_config.default_name == "x"
    assert repo_config.cache_handler == {}
    assert repo_config.record_class is None


def test_from_config_drops_fields_the_target_lacks():
    repo_config = RepositoryConfig(storage_factory=MemoryStorageFactory(), cache_handler={})
    instance_config = InstanceConfig.from_config(repo_config)
    assert not hasattr(instance_config, "cache_handler")


def test_from_config_rejects_unknown_options():
    with pytest.raises(ConfigError, match="cache"):
        InstanceConfig.from_config(Config(storage_factory=MemoryStorageFactory()), cache={})


def test_replace_returns_copy():
    config = Config(storage_factory=MemoryStorageFactory())
    changed = config.replace(default_name="other")
    assert changed.default_name == "other"
    assert config.default_name == "default"


# ━━━ Settings ━━━


def test_default_settings():
    settings = PersistSettings()
    assert settings.storage.backend == "file"
    assert settings.storage.path == "data"
    assert settings.storage.file_extension == "json"
    assert settings.validate_get is True
    assert settings.validate_set is False
    assert settings.default_name == "default"


def test_load_with_overrides():
    settings = _load(overrides={"storage": {"backend": "memory"}, "default_name": "app"})
    assert settings.storage.backend == "memory"
    assert settings.default_name == "app"
    # Defaults still work for non-overridden values
    assert settings.storage.file_extension == "json"


def test_env_var_loading(monkeypatch):
    monkeypatch.setenv("PERSIST_STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("PERSIST_STORAGE_PATH", "/tmp/persist-data")
    monkeypatch.setenv("PERSIST_VALIDATE_SET", "true")
    monkeypatch.setenv("PERSIST_DEFAULT_NAME", "from-env")

    settings = _load()
    assert settings.storage.backend == "sqlite"
    assert settings.storage.path == "/tmp/persist-data"
    assert settings.validate_set is True
    assert settings.default_name == "from-env"


def test_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("PERSIST_DEFAULT_NAME", "from-env")
    assert _load(overrides={"default_name": "explicit"}).default_name == "explicit"


def test_toml_precedence(tmp_path: Path):
    user = tmp_path / "user.toml"
    user.write_text('default_name = "user"\n[storage]\nfile_extension = "yml"\n')
    project = tmp_path / "project.toml"
    project.write_text('default_name = "project"\n')

    settings = PersistSettings.load(project_path=project, user_path=user)
    assert settings.default_name == "project"
    assert settings.storage.file_extension == "yml"


def test_invalid_toml(tmp_path: Path):
    project = tmp_path / "persist.toml"
    project.write_text("this is not = = toml")
    with pytest.raises(ConfigError):
        PersistSettings.load(project_path=project, user_path=tmp_path / "none.toml")


def test_invalid_backend():
    with pytest.raises(ConfigError):
        _load(overrides={"storage": {"backend": "s3"}})


def test_build_storage_factory(tmp_path: Path):
    memory = PersistSettings(storage={"backend": "memory"})
    assert isinstance(memory.build_storage_factory(), MemoryStorageFactory)

    sqlite = PersistSettings(storage={"backend": "sqlite", "path": str(tmp_path)})
    assert isinstance(sqlite.build_storage_factory(), SQLiteStorageFactory)

    files = PersistSettings(storage={"path": str(tmp_path), "file_prefix": "p-"})
    factory = files.build_storage_factory()
    assert isinstance(factory, FileStorageFactory)
    assert factory.path_for("x") == tmp_path / "p-x.json"


def test_to_config():
    config = PersistSettings(validate_get=False, default_name="app").to_config()
    assert isinstance(config, Config)
    assert config.validate_get is False
    assert config.default_name == "app"


def test_env_var_substitution():
    data = {"key": "${HOME}/something", "nested": {"api": "${MY_KEY}"}}

    os.environ["MY_KEY"] = "secret123"
    _substitute_env_vars(data)

    assert "something" in data["key"]
    assert data["nested"]["api"] == "secret123"

    del os.environ["MY_KEY"]


def test_deep_merge():
    base = {"a": 1, "b": {"c": 2, "d": 3}, "e": 5}
    override = {"b": {"c": 20, "f": 6}, "g": 7}

    _deep_merge(base, override)

    assert base == {"a": 1, "b": {"c": 20, "d": 3, "f": 6}, "e": 5, "g": 7}


def test_convert_value():
    assert _convert_value("true") is True
    assert _convert_value("no") is False
    assert _convert_value("hello") == "hello"


def test_env_string_fields_not_converted(monkeypatch):
    monkeypatch.setenv("PERSIST_DEFAULT_NAME", "1")
    monkeypatch.setenv("PERSIST_VALIDATE_GET", "no")

    settings = _load()
    assert settings.default_name == "1"
    assert settings.validate_get is False
