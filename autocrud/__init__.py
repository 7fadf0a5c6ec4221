"""
autocrud: generated REST CRUD endpoints for SQLAlchemy models on FastAPI.

Import the public API from this module:

    from autocrud import CRUDConfig, add_crud_routes, create_app
"""

from autocrud.api.crud import (
    CRUDConfig,
    add_create_route,
    add_crud_routes,
    add_delete_route,
    add_read_routes,
    add_update_route,
    crud_router,
)
from autocrud.api.dependencies import get_request_session, session_dependency
from autocrud.api.filters import FilterFunc, QueryParamFilter, apply_filters, query_param_filters
from autocrud.core.config import Settings, get_settings
from autocrud.exceptions import AutoCRUDError, ConfigurationError
from autocrud.main import create_app
from autocrud.middleware.db_session import DBSessionMiddleware
from autocrud.repositories.crud import CRUDRepository
from autocrud.schemas.model_schemas import HIDDEN_INFO_KEY, ModelSchemas, build_schemas

__all__ = [
    # Route registration
    "CRUDConfig",
    "add_read_routes",
    "add_create_route",
    "add_update_route",
    "add_delete_route",
    "add_crud_routes",
    "crud_router",
    # Sessions
    "DBSessionMiddleware",
    "get_request_session",
    "session_dependency",
    # Filters
    "FilterFunc",
    "QueryParamFilter",
    "apply_filters",
    "query_param_filters",
    # Schemas and data access
    "HIDDEN_INFO_KEY",
    "ModelSchemas",
    "build_schemas",
    "CRUDRepository",
    # Application
    "Settings",
    "get_settings",
    "create_app",
    # Errors
    "AutoCRUDError",
    "ConfigurationError",
]

__version__ = "0.1.0"
