"""Tests for clipboard id generation."""
import pytest
from fastapi import HTTPException

import clipboards
import ids
from clipboards import create_clipboard


def _sequence(*values):
    it = iter(values)
    return lambda: next(it)


def test_random_id_is_four_digits():
    for _ in range(200):
        value = ids.random_id()
        assert len(value) == 4
        assert value.isdigit()


def test_random_id_is_zero_padded(monkeypatch):
    monkeypatch.setattr(ids.secrets, "randbelow", lambda n: 7)
    assert ids.random_id() == "0007"


@pytest.mark.asyncio
async def test_generate_id_retries_on_collision(db, monkeypatch):
    monkeypatch.setattr(ids, "random_id", _sequence("0042"))
    await create_clipboard(db, "taken")

    monkeypatch.setattr(ids, "random_id", _sequence("0042", "0042", "0043"))
    assert await ids.generate_id(db) == "0043"


@pytest.mark.asyncio
async def test_generate_id_gives_up_after_max_attempts(db, monkeypatch):
    monkeypatch.setattr(ids, "random_id", lambda: "0042")
    await create_clipboard(db, "taken")

    with pytest.raises(HTTPException) as exc_info:
        await ids.generate_id(db, max_attempts=5)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_create_retries_when_insert_hits_taken_id(db, monkeypatch):
    monkeypatch.setattr(ids, "random_id", lambda: "0042")
    await create_clipboard(db, "first")

    # Simulates another request winning the race after the existence check.
    async def racing_generate_id(_db):
        return next(candidates)

    candidates = iter(["0042", "0051"])
    monkeypatch.setattr(clipboards, "generate_id", racing_generate_id)

    clipboard = await create_clipboard(db, "second")
    assert clipboard.id == "0051"


@pytest.mark.asyncio
async def test_live_ids_are_unique(db):
    created = [await create_clipboard(db, str(i)) for i in range(50)]
    assert len({c.id for c in created}) == 50
