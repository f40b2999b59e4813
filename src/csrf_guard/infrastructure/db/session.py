"""Async SQLAlchemy engine and session factory helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine whose pooled connections are checked before reuse."""

    return create_async_engine(database_url, pool_pre_ping=True)


def create_session_factory(bind: str | AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory from a database URL or an existing engine."""

    engine = create_engine(bind) if isinstance(bind, str) else bind
    return async_sessionmaker(engine, expire_on_commit=False)
