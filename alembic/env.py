"""Alembic environment for the csrf_tokens schema."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from csrf_guard.infrastructure.db.metadata import metadata

config = context.config

_DEFAULT_ALEMBIC_URL = "sqlite:///./csrf_guard.db"
_ASYNC_DRIVERS = ("+asyncpg", "+aiosqlite")

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _resolve_url() -> str:
    """Prefer DATABASE_URL from env/.env unless a caller set an explicit URL."""

    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    configured_url = config.get_main_option("sqlalchemy.url") or _DEFAULT_ALEMBIC_URL
    database_url = os.getenv("DATABASE_URL")
    if database_url and configured_url == _DEFAULT_ALEMBIC_URL:
        config.set_main_option("sqlalchemy.url", database_url)
        return database_url
    return configured_url


def _configure(connection: Connection) -> None:
    # Autogenerated SQLite revisions must use batch operations for ALTER support.
    context.configure(
        connection=connection,
        target_metadata=metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )


def run_migrations_offline(url: str) -> None:
    """Emit migration SQL without a database connection."""

    context.configure(
        url=url,
        target_metadata=metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations through an async driver (asyncpg, aiosqlite)."""

    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()


def run_migrations_online(url: str) -> None:
    """Run migrations against a live database using the URL's driver flavour."""

    if any(driver in url for driver in _ASYNC_DRIVERS):
        asyncio.run(run_async_migrations())
        return

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline(_resolve_url())
else:
    run_migrations_online(_resolve_url())
