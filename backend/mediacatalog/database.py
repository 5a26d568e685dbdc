"""Store client: async engine, session factory and the request-scoped session dependency."""
from __future__ import annotations
import logging
from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine for one process. Created at startup, disposed at shutdown."""

    def __init__(self, url: Any, echo: bool = False, **engine_kwargs: Any):
        self.engine = create_async_engine(url, echo=echo, pool_pre_ping=True, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def is_connected(self) -> bool:
        try:
            await self.ping()
        except Exception as e:
            logger.warning(f"Store ping failed: {e}")
            return False
        return True

    async def create_all(self) -> None:
        import mediacatalog.models  # noqa: F401  register all tables

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def use_snapshot(session: AsyncSession, isolation_level: str | None) -> None:
    """Pin the session's next transaction to ``isolation_level``.

    Has to run before the first statement of the transaction; a session that
    is already mid-transaction keeps its current level.
    """
    if isolation_level and not session.in_transaction():
        await session.connection(execution_options={"isolation_level": isolation_level})


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
