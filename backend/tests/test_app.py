import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from mediacatalog import config
from mediacatalog.config import Settings
from mediacatalog.database import Database
from mediacatalog.main import create_app, run
from mediacatalog.services.hierarchy import HierarchyService
from mediacatalog.services.scheduler import start_scheduler, stop_scheduler, sweep_orphans
from tests.conftest import make_settings
from tests.payloads import episode_doc, season_doc


@pytest.fixture()
def no_db_env(monkeypatch, tmp_path):
    for var in ("DATABASE_URL", "POSTGRES_HOST", "POSTGRES_PASSWORD"):
        monkeypatch.delenv(var, raising=False)
    # keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.mark.anyio
async def test_health_ok(async_client: AsyncClient):
    r = await async_client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["storeConnected"] is True
    assert "timestamp" in body


@pytest.fixture()
def unreachable_store(database: Database, monkeypatch) -> Database:
    async def refuse():
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    monkeypatch.setattr(database, "ping", refuse)
    return database


@pytest.mark.anyio
async def test_health_degraded_when_store_down(settings: Settings, unreachable_store: Database):
    app = create_app(settings, unreachable_store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.get("/api/health")

    assert r.status_code == 200
    assert r.json()["status"] == "degraded"
    assert r.json()["storeConnected"] is False


@pytest.mark.anyio
async def test_unreachable_store_is_fatal_at_startup(settings: Settings, unreachable_store: Database):
    app = create_app(settings, unreachable_store)
    served = False

    with pytest.raises(OperationalError):
        async with app.router.lifespan_context(app):
            served = True

    assert served is False
    assert not hasattr(app.state, "scheduler")


@pytest.mark.anyio
async def test_startup_creates_schema_when_asked(database: Database):
    app = create_app(make_settings(create_schema=True), database)

    async with app.router.lifespan_context(app):
        assert app.state.database is database
        assert app.state.scheduler is None


@pytest.mark.anyio
async def test_request_deadline(database: Database):
    app = create_app(make_settings(request_timeout_seconds=0.05), database)

    @app.get("/api/slow")
    async def slow():
        await asyncio.sleep(1)
        return {"done": True}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.get("/api/slow")

    assert r.status_code == 504
    assert r.json() == {"error": "Request timed out."}


def test_missing_connection_string_rejected(no_db_env):
    with pytest.raises(ValidationError):
        Settings()


def test_split_postgres_config(no_db_env, monkeypatch):
    monkeypatch.setenv("POSTGRES_HOST", "db")
    monkeypatch.setenv("POSTGRES_USER", "catalog")
    monkeypatch.setenv("POSTGRES_PASSWORD", "p#ss")
    monkeypatch.setenv("POSTGRES_DB", "catalog")

    url = Settings().get_async_url()

    assert url.drivername == "postgresql+asyncpg"
    assert url.password == "p#ss"
    assert url.host == "db"


def test_settings_from_env(no_db_env, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/catalog")
    monkeypatch.setenv("REFERENTIAL_MODE", "strict")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "2.5")

    settings = Settings()

    assert settings.strict_references is True
    assert settings.request_timeout_seconds == 2.5
    assert settings.port == 3000
    assert settings.get_async_url() == "postgresql+asyncpg://u:p@localhost/catalog"


def test_bare_postgres_url_uses_asyncpg(no_db_env, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/catalog")

    assert Settings().get_async_url() == "postgresql+asyncpg://u:p@db:5432/catalog"


def test_invalid_referential_mode(no_db_env, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("REFERENTIAL_MODE", "lenient")
    with pytest.raises(ValidationError):
        Settings()


def test_run_exits_without_connection_string(no_db_env):
    with pytest.raises(SystemExit) as exc:
        run()
    assert exc.value.code == 1


@pytest.mark.anyio
async def test_scheduled_sweep(database: Database):
    async with database.session_factory() as session:
        service = HierarchyService(session)
        await service.create_season("Ghost", season_doc(1))
        await service.create_episode("Ghost", 1, episode_doc(1))

    result = await sweep_orphans(database)

    assert (result.deleted_seasons, result.deleted_episodes) == (1, 1)


@pytest.mark.anyio
async def test_scheduler_disabled_by_default(database: Database):
    assert start_scheduler(database, 0) is None

    scheduler = start_scheduler(database, 6)
    try:
        job = scheduler.get_job("sweep_orphans")
        assert job is not None
    finally:
        stop_scheduler(scheduler)
