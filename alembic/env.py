"""Alembic env: migrates through the app's async driver; SQLite ALTERs run in batch mode."""
import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config
if config.config_file_name is not None:
    # keep deepthink.* loggers alive when migrations run in-process
    fileConfig(config.config_file_name, disable_existing_loggers=False)

from deepthink.db.base import Base  # noqa: E402
from deepthink.core.config import get_settings  # noqa: E402

target_metadata = Base.metadata

ASYNC_DRIVERS = ("+aiosqlite", "+asyncpg")


def get_url() -> str:
    # Priority: ALEMBIC_DATABASE_URL -> settings.database_url -> alembic.ini sqlalchemy.url
    return (
        os.getenv("ALEMBIC_DATABASE_URL")
        or get_settings().database_url
        or config.get_main_option("sqlalchemy.url")
    )


def _configure(url: str, **kwargs) -> None:
    context.configure(
        url=url if "connection" not in kwargs else None,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(get_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection, url: str) -> None:
    _configure(url, connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations(url: str) -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = url
    connectable = async_engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations, url)
    await connectable.dispose()


def run_migrations_online() -> None:
    url = get_url()
    if any(driver in url for driver in ASYNC_DRIVERS):
        asyncio.run(run_async_migrations(url))
        return

    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = url
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        do_run_migrations(connection, url)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
