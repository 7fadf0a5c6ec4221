"""
Application factory.

Builds a FastAPI application wired with the database handle, the
per-request session middleware, structured logging and health probes.
CRUD routes are added on top with add_crud_routes().
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import MetaData

from autocrud.api import health
from autocrud.core.config import Settings, get_settings
from autocrud.core.database import close_db, get_async_engine, get_session_maker, init_db
from autocrud.core.logging_config import get_logger, setup_logging
from autocrud.middleware.db_session import DBSessionMiddleware
from autocrud.middleware.logging import LoggingMiddleware
from autocrud.middleware.request_id import RequestIDMiddleware


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    metadata: Optional[MetaData] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (default: loaded from the environment)
        metadata: Metadata of the exposed models; its tables are created at
            startup when settings.create_tables is enabled

    Returns:
        FastAPI application with app.state.settings, app.state.engine and
        app.state.session_maker set

    Example:
        app = create_app(metadata=Base.metadata)
        add_crud_routes(app, Dummy, "/dummies", CRUDConfig(add_query_params=True))
    """
    settings = settings or get_settings()
    engine = get_async_engine(settings.database_url, echo=settings.database_echo)
    session_maker = get_session_maker(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(level=settings.log_level, json_format=settings.json_logs)

        if settings.create_tables and metadata is not None:
            await init_db(engine, metadata)

        logger.info(
            "Application started",
            extra={"project": settings.project_name, "routes": len(app.routes)},
        )

        yield

        await close_db(engine)
        logger.info("Application stopped", extra={"project": settings.project_name})

    app = FastAPI(
        title=settings.project_name,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = session_maker

    # Middleware is executed in reverse order of registration
    # (last registered = first executed)

    # Per-request database session (innermost, closest to the handlers)
    app.add_middleware(DBSessionMiddleware, session_maker=session_maker)

    # Logging middleware (runs after RequestID to access request_id)
    app.add_middleware(LoggingMiddleware)

    # Request ID middleware (sets correlation ID)
    app.add_middleware(RequestIDMiddleware)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if settings.enable_health:
        app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])

    return app
