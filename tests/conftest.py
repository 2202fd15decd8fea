"""Shared fixtures: a file-backed SQLite catalog per test."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from storefront.catalog.seed import SeedSummary, seed_demo_catalog
from storefront.catalog.service import CatalogService
from storefront.infrastructure.database import Base, build_engine, build_session_factory


class StatementCounter:
    """Counts SQL statements sent through an engine."""

    def __init__(self) -> None:
        self.statements: list[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)

    def matching(self, fragment: str) -> list[str]:
        return [s for s in self.statements if fragment in s]

    def reset(self) -> None:
        self.statements.clear()


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a fresh SQLite database with the catalog schema."""
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session for the code under test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> SeedSummary:
    """Load the demo catalog."""
    async with session_factory() as session:
        return await seed_demo_catalog(session)


@pytest_asyncio.fixture
async def service(
    session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    seeded: SeedSummary,
) -> CatalogService:
    """Catalog service over the seeded demo catalog."""
    return CatalogService(session, session_factory, request_id="test-request")


@pytest_asyncio.fixture
async def empty_service(
    session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
) -> CatalogService:
    """Catalog service over an empty catalog."""
    return CatalogService(session, session_factory, request_id="test-request")


@pytest_asyncio.fixture
async def statement_counter(engine: AsyncEngine) -> AsyncIterator[StatementCounter]:
    """Record every statement executed after the fixture is set up."""
    counter = StatementCounter()
    event.listen(engine.sync_engine, "before_cursor_execute", counter)
    yield counter
    event.remove(engine.sync_engine, "before_cursor_execute", counter)
