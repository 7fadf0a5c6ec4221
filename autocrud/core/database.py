"""
Database engine and session management.

Provides SQLAlchemy async engine setup and session factories. Nothing here is
global: every application (and every test) owns its own engine.
"""

import logging

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)


def get_async_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    For SQLite:
    - Uses StaticPool so an in-memory database is shared by every session
    - Enables check_same_thread=False for async compatibility
    - Turns on foreign key enforcement for every new connection

    Args:
        database_url: Async database URL (e.g. "sqlite+aiosqlite:///:memory:")
        echo: Log emitted SQL

    Returns:
        Configured AsyncEngine instance
    """
    is_sqlite = database_url.startswith("sqlite")

    # SQLite-specific connection arguments (noop for other drivers)
    connect_args: dict = {"check_same_thread": False} if is_sqlite else {}

    engine_kwargs = {
        "echo": echo,
        "connect_args": connect_args,
    }

    # SQLite works best with StaticPool; let other drivers use defaults
    if is_sqlite:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory bound to an engine.

    Objects stay loaded after commit so handlers can serialize them
    without another round trip.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine, metadata: MetaData) -> None:
    """
    Create every table in metadata that does not exist yet.

    For production, run migrations instead; create_app() only calls this
    when Settings.create_tables is enabled.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database tables created", extra={"tables": sorted(metadata.tables)})


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool at shutdown."""
    await engine.dispose()
