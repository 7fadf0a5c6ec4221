"""
Tests for CRUDConfig options and route registration variants.

This module tests:
- Pre-handler dependency chains
- Session sourcing (middleware, session_maker, explicit dependency)
- Partial registration (read/create/update/delete only)
- crud_router()
- Registration errors

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import pytest
from fastapi import Depends, FastAPI, HTTPException, Request, status
from httpx import ASGITransport, AsyncClient

from autocrud import (
    ConfigurationError,
    CRUDConfig,
    DBSessionMiddleware,
    add_create_route,
    add_crud_routes,
    add_delete_route,
    add_read_routes,
    add_update_route,
    build_schemas,
    crud_router,
    session_dependency,
)
from tests.models import Dummy, Membership, Note


pytestmark = pytest.mark.anyio


def client_for(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestDependencies:
    """Tests for CRUDConfig.dependencies (the pre-handler chain)."""

    async def test_dependencies_run_in_order_before_handler(self, session_maker, seed_dummies):
        # Arrange
        calls = []

        async def first(request: Request):
            calls.append(("first", request.method))

        def second():
            calls.append(("second", None))

        app = FastAPI()
        add_crud_routes(
            app, Dummy, "/dummies",
            CRUDConfig(dependencies=[Depends(first), Depends(second)]),
            session_maker=session_maker,
        )
        await seed_dummies(1)

        # Act
        async with client_for(app) as client:
            await client.get("/dummies")
            await client.delete("/dummies/1")

        # Assert
        assert calls == [
            ("first", "GET"), ("second", None),
            ("first", "DELETE"), ("second", None),
        ]

    async def test_dependency_aborts_request(self, session_maker, seed_dummies):
        # Arrange
        def require_token(request: Request):
            if request.headers.get("X-Token") != "letmein":
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="no token")

        app = FastAPI()
        add_crud_routes(
            app, Dummy, "/dummies",
            CRUDConfig(dependencies=[Depends(require_token)]),
            session_maker=session_maker,
        )
        await seed_dummies(1)

        async with client_for(app) as client:
            # Act
            rejected = await client.delete("/dummies/1")
            accepted = await client.get("/dummies/1", headers={"X-Token": "letmein"})

        # Assert
        assert rejected.status_code == 401
        assert accepted.status_code == 200


class TestSessionSources:
    """Tests for where generated handlers get their AsyncSession."""

    async def test_middleware_session(self, session_maker, seed_dummies):
        app = FastAPI()
        app.add_middleware(DBSessionMiddleware, session_maker=session_maker)
        add_crud_routes(app, Dummy, "/dummies")
        await seed_dummies(2)

        async with client_for(app) as client:
            response = await client.get("/dummies")

        assert len(response.json()) == 2

    async def test_explicit_session_dependency(self, session_maker, seed_dummies):
        app = FastAPI()
        add_crud_routes(
            app, Dummy, "/dummies",
            CRUDConfig(session=session_dependency(session_maker)),
        )
        await seed_dummies(2)

        async with client_for(app) as client:
            response = await client.get("/dummies/2")

        assert response.json()["name"] == "Dummy 2"

    async def test_missing_session_raises_configuration_error(self):
        # Arrange: no middleware and no session_maker
        app = FastAPI()
        add_crud_routes(app, Dummy, "/dummies")

        # Act / Assert
        async with client_for(app) as client:
            with pytest.raises(ConfigurationError):
                await client.get("/dummies")


class TestPartialRegistration:
    """Tests for registering a subset of the CRUD routes."""

    def route_set(self, app: FastAPI) -> set:
        return {
            (method, route.path)
            for route in app.routes
            if route.path.startswith("/dummies")
            for method in route.methods
        }

    def test_read_routes(self):
        app = FastAPI()
        add_read_routes(app, Dummy, "/dummies")

        assert self.route_set(app) == {("GET", "/dummies"), ("GET", "/dummies/{id}")}

    def test_write_routes(self):
        app = FastAPI()
        add_create_route(app, Dummy, "/dummies")
        add_update_route(app, Dummy, "/dummies")
        add_delete_route(app, Dummy, "/dummies")

        assert self.route_set(app) == {
            ("POST", "/dummies"),
            ("PUT", "/dummies/{id}"),
            ("DELETE", "/dummies/{id}"),
        }

    def test_trailing_slash_is_stripped(self):
        app = FastAPI()
        add_read_routes(app, Dummy, "/dummies/")

        assert ("GET", "/dummies") in self.route_set(app)

    async def test_create_only_has_no_list(self, session_maker):
        app = FastAPI()
        add_create_route(app, Dummy, "/dummies", session_maker=session_maker)

        async with client_for(app) as client:
            created = await client.post("/dummies", json={"name": "only"})
            listed = await client.get("/dummies")

        assert created.status_code == 201
        assert listed.status_code == 405


class TestCrudRouter:
    """Tests for crud_router()."""

    async def test_router_with_prefix(self, session_maker, seed_dummies):
        # Arrange
        app = FastAPI()
        app.include_router(
            crud_router(Dummy, "/dummies", session_maker=session_maker),
            prefix="/api",
        )
        await seed_dummies(2)

        # Act
        async with client_for(app) as client:
            listed = await client.get("/api/dummies")
            created = await client.post("/api/dummies", json={"name": "third"})
            deleted = await client.delete("/api/dummies/1")

        # Assert
        assert listed.status_code == 200
        assert len(listed.json()) == 2
        assert created.status_code == 201
        assert deleted.status_code == 204

    async def test_string_primary_key(self, session_maker):
        # Arrange
        app = FastAPI()
        app.include_router(crud_router(Note, "/notes", session_maker=session_maker))

        async with client_for(app) as client:
            # Act
            created = await client.post("/notes", json={"slug": "hello", "body": "world"})
            fetched = await client.get("/notes/hello")
            missing_key = await client.post("/notes", json={"body": "no slug"})

        # Assert
        assert created.status_code == 201
        assert created.json()["owner"] == "anonymous"
        assert created.json()["pinned"] is False
        assert created.json()["created_at"] is not None
        assert fetched.json()["body"] == "world"
        assert missing_key.status_code == 400

    def test_default_tags_use_table_name(self):
        router = crud_router(Dummy, "/dummies")

        assert all(route.tags == ["dummies"] for route in router.routes)

    def test_custom_tags_and_names(self):
        router = crud_router(Dummy, "/dummies", CRUDConfig(tags=["test"]))

        assert {route.name for route in router.routes} == {
            "list_dummies", "get_dummies", "create_dummies",
            "update_dummies", "delete_dummies",
        }
        assert all(route.tags == ["test"] for route in router.routes)


class TestExplicitSchemasAndExclude:
    """Tests for CRUDConfig.schemas and CRUDConfig.exclude."""

    async def test_exclude_hides_field(self, session_maker, seed_dummies):
        app = FastAPI()
        add_crud_routes(
            app, Dummy, "/dummies",
            CRUDConfig(exclude=["value"], add_query_params=True),
            session_maker=session_maker,
        )
        await seed_dummies(3)

        async with client_for(app) as client:
            response = await client.get("/dummies", params={"value": "1"})

        assert len(response.json()) == 3
        assert "value" not in response.json()[0]

    async def test_explicit_schemas(self, session_maker, seed_dummies):
        schemas = build_schemas(Dummy, exclude=["name"])
        app = FastAPI()
        add_read_routes(
            app, Dummy, "/dummies", CRUDConfig(schemas=schemas), session_maker=session_maker
        )
        await seed_dummies(1)

        async with client_for(app) as client:
            response = await client.get("/dummies/1")

        assert response.json() == {"id": 1, "value": 1}


class TestRegistrationErrors:
    """Tests for models and paths that cannot be registered."""

    def test_composite_primary_key(self):
        with pytest.raises(ConfigurationError, match="exactly one primary key"):
            add_crud_routes(FastAPI(), Membership, "/memberships")

    def test_unmapped_class(self):
        class Plain:
            id: int

        with pytest.raises(ConfigurationError, match="not a SQLAlchemy mapped class"):
            add_crud_routes(FastAPI(), Plain, "/plain")

    def test_root_path(self):
        with pytest.raises(ConfigurationError, match="root path"):
            add_crud_routes(FastAPI(), Dummy, "/")

    def test_path_without_leading_slash(self):
        with pytest.raises(ConfigurationError, match="must start with"):
            add_crud_routes(FastAPI(), Dummy, "dummies")
