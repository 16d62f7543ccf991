"""Shared test fixtures for Persist."""

import random

import pytest

from persist.core.config import Config, RepositoryConfig
from persist.defaults import restore_builtin_defaults
from persist.repository.record import AbstractRecord
from persist.store.memory import MemoryStorageFactory


class ExampleRecord(AbstractRecord[dict]):
    """Record kind with one domain method, for custom record_class tests."""

    async def randomise_number(self) -> None:
        number = self.value["example_number"]
        while number == self.value["example_number"]:
            number = random.randint(0, 10000)
        await self.update({"example_number": number})


class MapCache:
    """Cache handler with set() only: forgetting a name stores None."""

    def __init__(self) -> None:
        self.data: dict = {}

    def get(self, name):
        return self.data.get(name)

    def entries(self):
        return list(self.data.items())

    def set(self, name, value):
        self.data[name] = value


class DeletingCache(MapCache):
    """Cache handler with an explicit delete()."""

    def __init__(self) -> None:
        super().__init__()
        self.deleted: list[str] = []

    def delete(self, name):
        self.deleted.append(name)
        self.data.pop(name, None)


@pytest.fixture(autouse=True)
def clean_defaults():
    """Every test starts from the built-in defaults."""
    restore_builtin_defaults()
    yield
    restore_builtin_defaults()


@pytest.fixture
def factory():
    """Create a fresh in-memory storage factory."""
    return MemoryStorageFactory()


@pytest.fixture
def config(factory):
    """Create a default config over in-memory storage."""
    return Config(storage_factory=factory)


@pytest.fixture
def repo_config(factory):
    """Create a repository config over in-memory storage, no cache."""
    return RepositoryConfig(storage_factory=factory)


@pytest.fixture
def example_record_class():
    return ExampleRecord


@pytest.fixture
def map_cache():
    return MapCache()


@pytest.fixture
def deleting_cache():
    return DeletingCache()
