"""Async SQLAlchemy engine and session factory.

``create_engine_from_url`` builds the engine for whatever DATABASE_URL
the settings carry:

- PostgreSQL via asyncpg in production, with a bounded pool and a
  per-command timeout of DB_TIMEOUT_SECONDS
- SQLite via aiosqlite for tests and local experiments, on a single
  shared connection with foreign keys switched on

When DATABASE_URL is None the application uses the in-memory store and
never calls into this module.
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def create_engine_from_url(
    database_url: str, *, timeout_seconds: int = 5, echo: bool = False
) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"timeout": timeout_seconds},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=timeout_seconds,
        pool_pre_ping=True,
        connect_args={"timeout": timeout_seconds, "command_timeout": timeout_seconds},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
