from contextlib import asynccontextmanager
from datetime import datetime, timezone
import asyncio
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from mediacatalog.config import Settings, get_settings
from mediacatalog.database import Database
from mediacatalog.errors import RequestTimeout, catalog_error_handler, register_error_handlers
from mediacatalog.api import series, seasons, episodes, movies, media
from mediacatalog.schemas.media import HealthResponse
from mediacatalog.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting {settings.app_name}...")
        owns_database = database is None
        db = database or Database(settings.get_async_url(), echo=settings.debug)
        try:
            await db.ping()
        except Exception as e:
            # Unreachable store at boot is fatal: never serve without it.
            logger.critical(f"Store unreachable at startup: {e}")
            if owns_database:
                await db.dispose()
            raise
        logger.info("Store connected")
        if settings.create_schema:
            await db.create_all()
            logger.info("Schema created")

        app.state.database = db
        app.state.scheduler = start_scheduler(db, settings.orphan_sweep_interval_hours)
        yield
        # Shutdown
        stop_scheduler(app.state.scheduler)
        if owns_database:
            await db.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if database is not None:
        app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def enforce_deadline(request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"{request.method} {request.url.path} exceeded "
                f"{settings.request_timeout_seconds}s deadline"
            )
            return await catalog_error_handler(request, RequestTimeout("Request timed out."))

    register_error_handlers(app)

    # Routers
    app.include_router(series.router)
    app.include_router(seasons.router)
    app.include_router(episodes.router)
    app.include_router(movies.router)
    app.include_router(media.router)

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    async def health(request: Request):
        connected = await request.app.state.database.is_connected()
        return HealthResponse(
            status="ok" if connected else "degraded",
            timestamp=datetime.now(timezone.utc),
            store_connected=connected,
        )

    return app


def run() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.critical(f"Invalid configuration, refusing to start: {e}")
        raise SystemExit(1)
    uvicorn.run(
        "mediacatalog.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
