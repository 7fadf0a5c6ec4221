"""
Health probe functions for dependency checks.

Each probe returns bool (True = healthy), handles its own exceptions
and enforces a timeout so a readiness check can never hang.
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


async def check_database(
    session_maker: async_sessionmaker[AsyncSession],
    timeout_seconds: float = 2.0,
) -> bool:
    """
    Check database connectivity.

    Executes SELECT 1 through a fresh session from session_maker.

    Args:
        session_maker: Session factory of the database to probe
        timeout_seconds: Maximum time to wait for response (default: 2.0)

    Returns:
        True if database is reachable and healthy, False otherwise
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            async with session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                return True

    except asyncio.TimeoutError:
        return False
    except Exception:
        # Any other error (connection failed, query error, etc.)
        return False
