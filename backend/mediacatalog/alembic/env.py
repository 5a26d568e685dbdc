"""Alembic environment for the catalog schema.

The target database comes from the application settings (DATABASE_URL or
POSTGRES_*), so migrations and the running service always agree. Pass
``-x url=...`` to point a one-off run somewhere else.
"""
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, URL
from sqlalchemy.ext.asyncio import create_async_engine

from mediacatalog.config import get_settings
from mediacatalog.database import Base
import mediacatalog.models  # noqa: F401  registers every table on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def target_url() -> URL | str:
    override = context.get_x_argument(as_dictionary=True).get("url")
    if override:
        return override
    return get_settings().get_async_url()


def configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        # catch column type changes, not just added/dropped columns
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    url = target_url()
    if isinstance(url, URL):
        url = url.render_as_string(hide_password=False)
    configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    engine = create_async_engine(target_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
