"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from storefront.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def _configure_sqlite_connection(dbapi_connection: Any, connection_record: Any) -> None:
    """Turn on FK enforcement and hand transaction control to SQLAlchemy.

    The driver otherwise opens a transaction only at the first write, and
    per-transaction pragmas issued before that are lost.
    """
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn: Any) -> None:
    conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for the given URL.

    SQLite engines get foreign key enforcement switched on per connection,
    since SQLite leaves it off by default, and emit BEGIN when SQLAlchemy
    begins a transaction.

    Args:
        database_url: SQLAlchemy database URL with an async driver.
        echo: Whether to log emitted SQL.
        **kwargs: Extra arguments passed to ``create_async_engine``.

    Returns:
        Configured async engine.
    """
    kwargs.setdefault("pool_pre_ping", True)
    engine = create_async_engine(database_url, echo=echo, **kwargs)

    if make_url(database_url).get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_sqlite_transaction)

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Create async engine
engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory
async_session_factory = build_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the application session factory.

    Returns:
        Session factory used for connection-scoped work such as cascade deletes.
    """
    return async_session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
