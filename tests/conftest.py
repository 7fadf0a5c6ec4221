"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- A fresh application + in-memory database per test
- An httpx client bound to the application
"""

import os
from typing import Iterable

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JSON_LOGS"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from autocrud import CRUDConfig, Settings, add_crud_routes, create_app  # noqa: E402
from tests.models import Base, Dummy  # noqa: E402


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:", json_logs=False)


@pytest.fixture
async def app(settings: Settings):
    """
    Application with tables created and Dummy CRUD routes registered
    with query-parameter filtering, like a typical embedding app.
    """
    application = create_app(settings, Base.metadata)

    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    add_crud_routes(application, Dummy, "/dummies", CRUDConfig(add_query_params=True))

    yield application

    await application.state.engine.dispose()


@pytest.fixture
def session_maker(app):
    return app.state.session_maker


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def seed(session_maker):
    """Async callable inserting records through a separate session."""
    async def _seed(records: Iterable) -> None:
        async with session_maker() as session:
            session.add_all(list(records))
            await session.commit()

    return _seed


@pytest.fixture
def seed_dummies(seed):
    """Async callable inserting Dummy 1..count with value == id."""
    async def _seed_dummies(count: int) -> None:
        await seed(
            Dummy(id=i, name=f"Dummy {i}", value=i, skip=f"secret {i}")
            for i in range(1, count + 1)
        )

    return _seed_dummies
