from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

import database
from limiter import limiter


@pytest.fixture(autouse=True)
def _isolated_database(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DATABASE_PATH", str(tmp_path / "clipboard.db"))


@pytest.fixture(autouse=True)
def _no_rate_limits(monkeypatch):
    monkeypatch.setattr(limiter, "enabled", False)


@pytest.fixture()
async def db():
    conn = await database.get_db()
    try:
        yield conn
    finally:
        await conn.close()


@pytest.fixture()
async def client():
    from main import app

    transport = ASGITransport(app=app, client=("198.51.100.10", 54321))
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture()
def shift_clock(monkeypatch):
    """Move database.utcnow by a timedelta; call again to move it somewhere else."""
    real_utcnow = database.utcnow

    def _shift(delta: timedelta) -> None:
        monkeypatch.setattr(database, "utcnow", lambda: real_utcnow() + delta)

    return _shift
