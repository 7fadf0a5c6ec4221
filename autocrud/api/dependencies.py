"""
FastAPI dependency functions.

Resolve the AsyncSession a generated CRUD handler works with, either
from the per-request session bound by DBSessionMiddleware or straight
from a session factory.
"""

from typing import AsyncGenerator, Callable

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocrud.exceptions import ConfigurationError


SessionDependency = Callable[..., AsyncGenerator[AsyncSession, None]]


async def get_request_session(request: Request) -> AsyncSession:
    """
    Dependency returning the session bound to the current request.

    Raises:
        ConfigurationError: If DBSessionMiddleware is not installed and the
            routes were registered without a session dependency

    Example:
        @router.get("/custom")
        async def custom(db: AsyncSession = Depends(get_request_session)):
            ...
    """
    session = getattr(request.state, "db", None)
    if session is None:
        raise ConfigurationError(
            "No database session bound to the request: install "
            "DBSessionMiddleware or register the routes with a session_maker"
        )
    return session


def session_dependency(
    session_maker: async_sessionmaker[AsyncSession],
) -> SessionDependency:
    """
    Build a dependency yielding a new session from session_maker.

    The session is closed after the request; uncommitted work is rolled
    back by the close.

    Example:
        add_crud_routes(
            router, Dummy, "/dummies",
            CRUDConfig(session=session_dependency(session_maker)),
        )
    """
    async def get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    return get_db
