"""Shared test fixtures for the Better Safe API."""

from __future__ import annotations

import asyncio
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from bettersafe.api.auth import create_access_token
from bettersafe.models.user import Profile


def run(coro):
    """Run a coroutine to completion from synchronous test code."""
    return asyncio.run(coro)


def make_token(user_id, **claims) -> str:
    return create_access_token({"sub": str(user_id), **claims})


def bearer(user_id, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear in-memory caches and limiters between tests."""
    from bettersafe.core.rate_limiter import maps_key_limiter
    from bettersafe.utils.weather import weather_cache
    yield
    weather_cache.clear()
    maps_key_limiter.reset()


@pytest.fixture()
def engine(tmp_path):
    """Fresh SQLite database per test."""
    import bettersafe.models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    run(_create())
    yield engine
    run(engine.dispose())


@pytest.fixture()
def session_factory(engine, monkeypatch):
    """Session maker bound to the test database, also used by background tasks."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr("bettersafe.database.AsyncSessionLocal", factory)
    return factory


@pytest.fixture()
def db_run(session_factory):
    """Run ``fn(session)`` against the test database and return its result."""
    def _run(fn):
        async def _inner():
            async with session_factory() as session:
                return await fn(session)
        return run(_inner())
    return _run


@pytest.fixture()
def app(session_factory):
    """FastAPI app with get_db pointed at the test database."""
    from bettersafe.database import get_db
    from bettersafe.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture()
def user_id():
    return uuid.uuid4()


@pytest.fixture()
def auth_headers(user_id):
    return bearer(user_id, email="student@bison.howard.edu")


@pytest.fixture()
def admin_headers(db_run):
    """Headers for a user whose profile carries the admin flag."""
    admin_id = uuid.uuid4()

    async def _create(session):
        session.add(Profile(user_id=admin_id, email="admin@howard.edu", is_admin=True))
        await session.commit()

    db_run(_create)
    return bearer(admin_id)


@pytest.fixture()
def make_profile(db_run):
    """Insert a profile and return its user id."""
    def _make(username=None, full_name=None):
        new_id = uuid.uuid4()

        async def _create(session):
            session.add(Profile(user_id=new_id, username=username, full_name=full_name))
            await session.commit()

        db_run(_create)
        return new_id
    return _make


@pytest.fixture()
def valid_incident():
    return {
        "category": "Suspicious Activity",
        "description": "Someone trying car doors behind the library",
        "location": "Founders Library",
        "latitude": 38.9227,
        "longitude": -77.0199,
        "anonymous": False,
    }
