"""Tests for records."""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from persist.core.errors import RecordUpdateError
from persist.handle import Persist
from persist.repository.record import GenericRecord, merge_partial


@dataclass
class Point:
    x: int
    y: int


class Profile(BaseModel):
    name: str
    age: int


def test_property_getters(config):
    p = Persist("record-test", config)
    r = GenericRecord(p, {"text": "Hi"}, True)
    assert r.name == "record-test"
    assert r.ephemeral is True
    assert r.value == {"text": "Hi"}


@pytest.mark.asyncio
async def test_crud(config):
    p = Persist("crud", config)
    r = GenericRecord(p, {"text": "example"}, True)

    await r.save()
    assert r.ephemeral is False
    assert await p.get() == {"text": "example"}

    await r.set({"text": "something else"})
    assert r.ephemeral is False
    assert r.value == {"text": "something else"}
    assert await p.get() == {"text": "something else"}

    await r.delete()
    assert r.ephemeral is True
    assert await p.get() is None
    # Last known value stays readable
    assert r.value == {"text": "something else"}


@pytest.mark.asyncio
async def test_set_clears_ephemeral(config):
    r = GenericRecord(Persist("fresh", config), 1, True)
    await r.set(2)
    assert r.ephemeral is False


@pytest.mark.asyncio
async def test_reload_picks_up_external_change(config):
    p = Persist("reload", config)
    r = GenericRecord(p, {"text": "example"}, True)

    await p.set({"text": "hello"})
    await r.reload()
    assert r.ephemeral is False
    assert r.value == {"text": "hello"}


@pytest.mark.asyncio
async def test_reload_missing_marks_ephemeral(config):
    p = Persist("reload-missing", config)
    r = GenericRecord(p, {"text": "example"}, False)

    await r.reload()
    assert r.ephemeral is True
    assert r.value == {"text": "example"}


@pytest.mark.asyncio
async def test_partial_update(config):
    p = Persist("update", config)
    r = GenericRecord(p, {"text": "example", "number": 42}, True)
    await r.save()

    await r.update({"number": 123})
    assert r.value == {"text": "example", "number": 123}
    assert await p.get() == {"text": "example", "number": 123}


@pytest.mark.asyncio
async def test_update_requires_object(config):
    p = Persist("scalar", config)
    r = GenericRecord(p, 42, False)

    with pytest.raises(RecordUpdateError):
        await r.update({"x": 1})
    assert r.value == 42
    assert await p.get() is None


@pytest.mark.asyncio
async def test_failed_write_leaves_state_unchanged(config):
    def reject(value):
        raise ValueError("rejected")

    p = Persist("strict", config, validator=reject, validate_set=True)
    r = GenericRecord(p, {"a": 1}, True)

    with pytest.raises(ValueError):
        await r.set({"a": 2})
    assert r.value == {"a": 1}
    assert r.ephemeral is True

    with pytest.raises(ValueError):
        await r.save()
    assert r.ephemeral is True


@pytest.mark.asyncio
async def test_failed_reload_leaves_state_unchanged(config, factory):
    def reject(value):
        raise ValueError("rejected")

    await factory.create("bad").set({"a": 2})
    r = GenericRecord(Persist("bad", config, validator=reject), {"a": 1}, False)

    with pytest.raises(ValueError):
        await r.reload()
    assert r.value == {"a": 1}
    assert r.ephemeral is False


def test_merge_partial_dataclass():
    assert merge_partial(Point(1, 2), {"y": 3}) == Point(1, 3)


def test_merge_partial_pydantic():
    merged = merge_partial(Profile(name="Alex", age=30), {"age": 31})
    assert merged == Profile(name="Alex", age=31)


def test_merge_partial_does_not_mutate():
    original = {"x": 1, "y": 2}
    assert merge_partial(original, {"y": 3}) == {"x": 1, "y": 3}
    assert original == {"x": 1, "y": 2}


def test_merge_partial_rejects_scalars():
    for value in (1, "text", [1, 2], None, Point):
        with pytest.raises(RecordUpdateError):
            merge_partial(value, {"x": 1})


def test_repr(config):
    r = GenericRecord(Persist("shown", config), 5, True)
    assert repr(r) == "GenericRecord(name='shown', value=5, ephemeral=True)"
