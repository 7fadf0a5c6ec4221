"""
Query filters for generated CRUD routes.

A filter is a callable ``(statement, request) -> statement`` that narrows
the ``select(Model)`` a handler runs. Filters from CRUDConfig.filters run
on list, get-one and the update/delete lookups; query-parameter filters
only run on the list endpoint.
"""

from typing import Any, Callable, Dict, Iterable, List, Sequence

from fastapi import HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy import Select

from autocrud.schemas.model_schemas import ExposedColumn, exposed_columns


FilterFunc = Callable[[Select, Request], Select]


class QueryParamFilter:
    """
    Equality filter driven by one optional query parameter.

    ``GET /dummies?name=Dummy%204`` adds ``WHERE dummies.name = 'Dummy 4'``.
    The raw value is converted to the column's Python type first; a value
    that does not convert is answered with 400.
    """

    def __init__(self, model: type, exposed: ExposedColumn) -> None:
        self.model = model
        self.name = exposed.key
        self.exposed = exposed
        self._adapter = exposed.adapter()

    def __call__(self, statement: Select, request: Request) -> Select:
        raw = request.query_params.get(self.name)
        if raw is None:
            return statement
        try:
            value = self._adapter.validate_python(raw)
        except ValidationError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid value for query parameter '{self.name}': {raw!r}",
            )
        return statement.where(getattr(self.model, self.name) == value)

    def __repr__(self) -> str:
        return f"QueryParamFilter({self.model.__name__}.{self.name})"


def query_param_filters(model: type, exclude: Iterable[str] = ()) -> List[QueryParamFilter]:
    """
    Build one query-parameter filter per exposed column of model.

    Args:
        model: SQLAlchemy mapped class
        exclude: Attribute names that cannot be filtered on

    Returns:
        Filters in column order
    """
    return [QueryParamFilter(model, c) for c in exposed_columns(model, exclude)]


def apply_filters(
    statement: Select,
    request: Request,
    filters: Sequence[FilterFunc],
) -> Select:
    """Run every filter in order, each one narrowing the previous result."""
    for filter_func in filters:
        statement = filter_func(statement, request)
    return statement


_OPENAPI_TYPES = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
}


def query_param_openapi(filters: Sequence[QueryParamFilter]) -> List[Dict[str, Any]]:
    """
    OpenAPI parameter objects documenting query-parameter filters.

    The filters read request.query_params directly, so FastAPI cannot
    infer them from a handler signature.
    """
    parameters = []
    for query_filter in filters:
        schema_type = _OPENAPI_TYPES.get(query_filter.exposed.python_type, "string")
        parameters.append({
            "name": query_filter.name,
            "in": "query",
            "required": False,
            "schema": {"type": schema_type},
            "description": f"Only return records whose {query_filter.name} equals this value",
        })
    return parameters
