"""
Generated CRUD endpoints.

Registers list/get/create/update/delete routes for any SQLAlchemy mapped
class on a FastAPI application or APIRouter. Each handler performs one
repository call and maps the outcome to a fixed status code:

- body that is not JSON or fails validation -> 400
- unknown (or filtered out) primary key -> 404
- any SQLAlchemy error -> 500 (the session is rolled back first)
- success -> 200 (read/update), 201 (create), 204 (delete)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Type, Union

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocrud.api.dependencies import (
    SessionDependency,
    get_request_session,
    session_dependency,
)
from autocrud.api.filters import (
    FilterFunc,
    apply_filters,
    query_param_filters,
    query_param_openapi,
)
from autocrud.exceptions import ConfigurationError
from autocrud.repositories.crud import CRUDRepository
from autocrud.schemas.model_schemas import ModelSchemas, build_schemas, primary_key


logger = logging.getLogger(__name__)

Router = Union[FastAPI, APIRouter]

NOT_FOUND_DETAIL = "not found"


@dataclass
class CRUDConfig:
    """
    Options for one CRUD registration.

    Attributes:
        dependencies: FastAPI Depends(...) markers run, in order, before every
            generated handler. Raise HTTPException in one to stop the request.
        filters: Callables (statement, request) -> statement applied to list,
            get-one and the update/delete lookups.
        add_query_params: Accept one optional equality query parameter per
            exposed column on the list endpoint.
        exclude: Attribute names hidden from schemas and query parameters.
        session: Dependency yielding the AsyncSession to use. Defaults to the
            session bound by DBSessionMiddleware.
        schemas: Explicit schemas replacing the generated ones.
        tags: OpenAPI tags (default: the model's table name).
    """

    dependencies: Sequence[Any] = field(default_factory=list)
    filters: Sequence[FilterFunc] = field(default_factory=list)
    add_query_params: bool = False
    exclude: Sequence[str] = field(default_factory=list)
    session: Optional[SessionDependency] = None
    schemas: Optional[ModelSchemas] = None
    tags: Optional[List[str]] = None


class _Resource:
    """Everything the handlers of one model/path registration share."""

    def __init__(
        self,
        model: type,
        path: str,
        config: Optional[CRUDConfig],
        session_maker: Optional[async_sessionmaker[AsyncSession]],
    ) -> None:
        self.model = model
        self.path = _normalize_path(path)
        self.item_path = f"{self.path}/{{id}}"
        self.config = config or CRUDConfig()
        self.pk = primary_key(model)
        self._pk_adapter = self.pk.adapter()
        self.schemas = self.config.schemas or build_schemas(model, self.config.exclude)
        self.name = getattr(model, "__tablename__", model.__name__.lower())
        self.tags = self.config.tags or [self.name]

        if session_maker is not None:
            self.session = session_dependency(session_maker)
        elif self.config.session is not None:
            self.session = self.config.session
        else:
            self.session = get_request_session

    def route_kwargs(self) -> dict:
        return {
            "dependencies": list(self.config.dependencies),
            "tags": self.tags,
        }

    def to_read(self, record: Any) -> BaseModel:
        return self.schemas.read.model_validate(record)

    async def lookup(self, repo: CRUDRepository, request: Request, raw_id: str) -> Any:
        """Find the record addressed by the path id or raise 404."""
        try:
            pk = self._pk_adapter.validate_python(raw_id)
        except ValidationError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)

        statement = apply_filters(repo.query(), request, self.config.filters)
        try:
            record = await repo.first(pk, statement)
        except SQLAlchemyError as exc:
            raise await self.persistence_error(repo, request, exc)

        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
        return record

    async def persistence_error(
        self,
        repo: CRUDRepository,
        request: Request,
        exc: SQLAlchemyError,
    ) -> HTTPException:
        """Roll back, log and build the 500 answer for a database failure."""
        await repo.rollback()
        logger.error(
            f"{self.model.__name__} persistence failure: {exc}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "model": self.model.__name__,
            },
            exc_info=True,
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc),
        )

    def request_body_openapi(self, schema: Type[BaseModel]) -> dict:
        return {
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": schema.model_json_schema()}},
            }
        }


def _normalize_path(path: str) -> str:
    normalized = path.strip().rstrip("/")
    if path.strip().startswith("/") and not normalized:
        raise ConfigurationError("CRUD path cannot be the root path '/'")
    if not normalized.startswith("/"):
        raise ConfigurationError(f"CRUD path must start with '/': {path!r}")
    return normalized


async def bind_json(request: Request, schema: Type[BaseModel]) -> BaseModel:
    """
    Parse the request body and validate it against schema.

    Raises:
        HTTPException 400: If the body is not JSON or does not validate
    """
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be valid JSON",
        )
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        )


def _log_registration(resource: _Resource, routes: List[str]) -> None:
    logger.debug(
        "Registered CRUD routes",
        extra={"model": resource.model.__name__, "resource": resource.path, "routes": routes},
    )


def _add_list_route(router: Router, resource: _Resource) -> None:
    model = resource.model
    filters: List[FilterFunc] = list(resource.config.filters)
    openapi_extra = None
    if resource.config.add_query_params:
        param_filters = query_param_filters(model, resource.config.exclude)
        filters.extend(param_filters)
        openapi_extra = {"parameters": query_param_openapi(param_filters)}

    async def list_records(
        request: Request,
        session: AsyncSession = Depends(resource.session),
    ):
        repo = CRUDRepository(session, model)
        statement = apply_filters(repo.query(), request, filters)
        try:
            records = await repo.find(statement)
        except SQLAlchemyError as exc:
            raise await resource.persistence_error(repo, request, exc)
        return [resource.to_read(record) for record in records]

    router.add_api_route(
        resource.path,
        list_records,
        methods=["GET"],
        response_model=List[resource.schemas.read],
        status_code=status.HTTP_200_OK,
        name=f"list_{resource.name}",
        summary=f"List {resource.name}",
        openapi_extra=openapi_extra,
        **resource.route_kwargs(),
    )


def _add_get_route(router: Router, resource: _Resource) -> None:
    model = resource.model

    async def get_record(
        id: str,
        request: Request,
        session: AsyncSession = Depends(resource.session),
    ):
        repo = CRUDRepository(session, model)
        record = await resource.lookup(repo, request, id)
        return resource.to_read(record)

    router.add_api_route(
        resource.item_path,
        get_record,
        methods=["GET"],
        response_model=resource.schemas.read,
        status_code=status.HTTP_200_OK,
        name=f"get_{resource.name}",
        summary=f"Get one {resource.name} record by primary key",
        responses={404: {"description": "Record not found"}},
        **resource.route_kwargs(),
    )


def add_read_routes(
    router: Router,
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """
    Register ``GET path`` (list) and ``GET path/{id}`` (one record).

    Args:
        router: FastAPI application or APIRouter
        model: SQLAlchemy mapped class with a single primary key
        path: Collection path, e.g. "/dummies"
        config: Registration options
        session_maker: Bind the routes to this database handle instead of
            the per-request session

    Raises:
        ConfigurationError: If model cannot be exposed or path is invalid
    """
    resource = _Resource(model, path, config, session_maker)
    _add_list_route(router, resource)
    _add_get_route(router, resource)
    _log_registration(resource, [f"GET {resource.path}", f"GET {resource.item_path}"])


def _add_create_route(router: Router, resource: _Resource) -> None:
    model = resource.model
    create_schema = resource.schemas.create

    async def create_record(
        request: Request,
        session: AsyncSession = Depends(resource.session),
    ):
        payload = await bind_json(request, create_schema)
        repo = CRUDRepository(session, model)
        record = model(**payload.model_dump(exclude_unset=True))
        try:
            await repo.create(record)
            body = resource.to_read(record)
            await repo.commit()
        except SQLAlchemyError as exc:
            raise await resource.persistence_error(repo, request, exc)
        return body

    router.add_api_route(
        resource.path,
        create_record,
        methods=["POST"],
        response_model=resource.schemas.read,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{resource.name}",
        summary=f"Create a {resource.name} record",
        responses={400: {"description": "Invalid request body"}},
        openapi_extra=resource.request_body_openapi(create_schema),
        **resource.route_kwargs(),
    )


def add_create_route(
    router: Router,
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """Register ``POST path``, answering 201 with the created record."""
    resource = _Resource(model, path, config, session_maker)
    _add_create_route(router, resource)
    _log_registration(resource, [f"POST {resource.path}"])


def _add_update_route(router: Router, resource: _Resource) -> None:
    model = resource.model
    update_schema = resource.schemas.update

    async def update_record(
        id: str,
        request: Request,
        session: AsyncSession = Depends(resource.session),
    ):
        repo = CRUDRepository(session, model)
        # Lookup first: a missing record answers 404 whatever the body holds
        record = await resource.lookup(repo, request, id)
        payload = await bind_json(request, update_schema)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(record, key, value)
        try:
            await repo.save(record)
            body = resource.to_read(record)
            await repo.commit()
        except SQLAlchemyError as exc:
            raise await resource.persistence_error(repo, request, exc)
        return body

    router.add_api_route(
        resource.item_path,
        update_record,
        methods=["PUT"],
        response_model=resource.schemas.read,
        status_code=status.HTTP_200_OK,
        name=f"update_{resource.name}",
        summary=f"Update a {resource.name} record",
        responses={
            400: {"description": "Invalid request body"},
            404: {"description": "Record not found"},
        },
        openapi_extra=resource.request_body_openapi(update_schema),
        **resource.route_kwargs(),
    )


def add_update_route(
    router: Router,
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """
    Register ``PUT path/{id}``.

    The body is merged onto the stored record: fields left out keep their
    current value. The primary key cannot be changed.
    """
    resource = _Resource(model, path, config, session_maker)
    _add_update_route(router, resource)
    _log_registration(resource, [f"PUT {resource.item_path}"])


def _add_delete_route(router: Router, resource: _Resource) -> None:
    model = resource.model

    async def delete_record(
        id: str,
        request: Request,
        session: AsyncSession = Depends(resource.session),
    ) -> Response:
        repo = CRUDRepository(session, model)
        record = await resource.lookup(repo, request, id)
        try:
            await repo.delete(record)
            await repo.commit()
        except SQLAlchemyError as exc:
            raise await resource.persistence_error(repo, request, exc)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    router.add_api_route(
        resource.item_path,
        delete_record,
        methods=["DELETE"],
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
        name=f"delete_{resource.name}",
        summary=f"Delete a {resource.name} record",
        responses={404: {"description": "Record not found"}},
        **resource.route_kwargs(),
    )


def add_delete_route(
    router: Router,
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """Register ``DELETE path/{id}``, answering 204 with an empty body."""
    resource = _Resource(model, path, config, session_maker)
    _add_delete_route(router, resource)
    _log_registration(resource, [f"DELETE {resource.item_path}"])


def add_crud_routes(
    router: Router,
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """
    Register every CRUD route of model under path.

    Example:
        app = create_app()
        add_crud_routes(app, Dummy, "/dummies", CRUDConfig(add_query_params=True))

        # GET    /dummies          list (filterable by ?name=...&value=...)
        # GET    /dummies/{id}     one record
        # POST   /dummies          create
        # PUT    /dummies/{id}     update
        # DELETE /dummies/{id}     delete
    """
    resource = _Resource(model, path, config, session_maker)
    _add_list_route(router, resource)
    _add_get_route(router, resource)
    _add_create_route(router, resource)
    _add_update_route(router, resource)
    _add_delete_route(router, resource)
    _log_registration(resource, [
        f"GET {resource.path}",
        f"GET {resource.item_path}",
        f"POST {resource.path}",
        f"PUT {resource.item_path}",
        f"DELETE {resource.item_path}",
    ])


def crud_router(
    model: type,
    path: str,
    config: Optional[CRUDConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    **router_kwargs: Any,
) -> APIRouter:
    """
    Build a standalone APIRouter holding every CRUD route of model.

    Example:
        app.include_router(
            crud_router(Dummy, "/dummies", session_maker=session_maker),
            prefix="/api",
        )
    """
    router = APIRouter(**router_kwargs)
    add_crud_routes(router, model, path, config, session_maker=session_maker)
    return router
