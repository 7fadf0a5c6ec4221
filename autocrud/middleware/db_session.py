"""
Per-request database session middleware.

Opens one AsyncSession per request and binds it to request.state.db,
where the generated CRUD handlers pick it up through
get_request_session(). The session is closed once the response has been
produced; anything left uncommitted is rolled back by the close.
"""

from typing import Callable

from fastapi import Request, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class DBSessionMiddleware(BaseHTTPMiddleware):
    """
    Bind a fresh database session to every request.

    Example:
        app.add_middleware(DBSessionMiddleware, session_maker=session_maker)
        add_crud_routes(app, Dummy, "/dummies")
    """

    def __init__(
        self,
        app: ASGIApp,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        super().__init__(app)
        self.session_maker = session_maker

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        async with self.session_maker() as session:
            request.state.db = session
            try:
                return await call_next(request)
            finally:
                request.state.db = None
