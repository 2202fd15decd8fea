"""Shared fixtures for API tests."""

from collections.abc import AsyncIterator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from storefront.infrastructure.database import get_session, get_session_factory
from storefront.main import app


@pytest_asyncio.fixture
async def client(session_factory, seeded) -> AsyncIterator[AsyncClient]:
    """Create test client bound to the seeded test database."""

    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
