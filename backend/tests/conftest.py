"""
Test bootstrap
- In-memory SQLite (aiosqlite) shared through a StaticPool, fresh per test
- App built with the test Database injected (no lifespan needed)
- httpx AsyncClient over ASGITransport
"""
from __future__ import annotations

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from mediacatalog.config import Settings
from mediacatalog.database import Database
from mediacatalog.main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": TEST_DATABASE_URL,
        # SQLite has no REPEATABLE READ
        "snapshot_isolation_level": None,
        "request_timeout_seconds": 5.0,
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
async def database() -> AsyncGenerator[Database, None]:
    db = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture()
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture()
def app(settings: Settings, database: Database):
    return create_app(settings, database)


@pytest.fixture()
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture()
def strict_app(database: Database):
    return create_app(make_settings(referential_mode="strict"), database)


@pytest.fixture()
async def strict_client(strict_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=strict_app), base_url="http://test") as client:
        yield client
