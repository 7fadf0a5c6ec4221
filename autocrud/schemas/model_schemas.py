"""
Pydantic schemas generated from SQLAlchemy mapped classes.

Every CRUD registration needs three request/response shapes for its model:
- read: what GET/POST/PUT return (all exposed columns)
- create: the POST body (required where the database would reject a missing value)
- update: the PUT body (every field optional, merged onto the stored record)

Columns are exposed unless they are listed in ``exclude`` or carry
``info={"autocrud_hidden": True}``.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, create_model
from sqlalchemy import BigInteger, Column, Integer, SmallInteger, String, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper

from autocrud.exceptions import ConfigurationError


HIDDEN_INFO_KEY = "autocrud_hidden"

# Widest signed value each integer type binds to; SQLite INTEGER is 64-bit
_INTEGER_BITS = ((SmallInteger, 16), (BigInteger, 64), (Integer, 64))


class ReadSchema(BaseModel):
    """Base class of generated response schemas."""

    model_config = ConfigDict(from_attributes=True)


class WriteSchema(BaseModel):
    """Base class of generated request body schemas; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class ModelSchemas:
    """The three schemas used by the routes of one model."""

    read: Type[BaseModel]
    create: Type[BaseModel]
    update: Type[BaseModel]


@dataclass(frozen=True)
class ExposedColumn:
    """A mapped column attribute visible through the API."""

    key: str
    column: Column
    python_type: Any

    @property
    def nullable(self) -> bool:
        return bool(self.column.nullable)

    @property
    def primary_key(self) -> bool:
        return bool(self.column.primary_key)

    @property
    def field_type(self) -> Any:
        """
        Annotation used to validate incoming values.

        Integer columns are bounded to the range the database can bind, so an
        oversized value fails validation instead of reaching the driver.
        """
        for sql_type, bits in _INTEGER_BITS:
            if isinstance(self.column.type, sql_type):
                limit = 2 ** (bits - 1)
                return Annotated[int, Field(ge=-limit, le=limit - 1)]
        return self.python_type

    def adapter(self) -> TypeAdapter:
        """TypeAdapter converting raw strings (query/path values) to field_type."""
        return TypeAdapter(self.field_type)


def get_mapper(model: type) -> Mapper:
    """
    Return the SQLAlchemy mapper of model.

    Raises:
        ConfigurationError: If model is not a mapped class
    """
    try:
        mapper = inspect(model)
    except NoInspectionAvailable as exc:
        raise ConfigurationError(
            f"{getattr(model, '__name__', model)!r} is not a SQLAlchemy mapped class"
        ) from exc
    if not isinstance(mapper, Mapper):
        raise ConfigurationError(
            f"{getattr(model, '__name__', model)!r} is not a SQLAlchemy mapped class"
        )
    return mapper


def column_python_type(column: Column) -> Any:
    """Python type of a column, Any when the SQL type does not declare one."""
    try:
        return column.type.python_type
    except NotImplementedError:
        return Any


def exposed_columns(model: type, exclude: Iterable[str] = ()) -> List[ExposedColumn]:
    """
    List the column attributes of model visible through the API.

    Attributes are returned in mapper order, which follows the class body.
    """
    excluded = set(exclude)
    columns = []
    for attr in get_mapper(model).column_attrs:
        column = attr.columns[0]
        if attr.key in excluded or column.info.get(HIDDEN_INFO_KEY):
            continue
        columns.append(ExposedColumn(attr.key, column, column_python_type(column)))
    return columns


def primary_key(model: type) -> ExposedColumn:
    """
    Return the single primary key attribute of model.

    Raises:
        ConfigurationError: If the model has a composite primary key
    """
    mapper = get_mapper(model)
    if len(mapper.primary_key) != 1:
        raise ConfigurationError(
            f"{model.__name__} must have exactly one primary key column, "
            f"found {len(mapper.primary_key)}"
        )
    column = mapper.primary_key[0]
    key = mapper.get_property_by_column(column).key
    return ExposedColumn(key, column, column_python_type(column))


def _has_default(column: Column) -> bool:
    return column.default is not None or column.server_default is not None


def _is_autoincrement(column: Column) -> bool:
    # "auto" only applies to single integer primary keys
    return (
        column.primary_key
        and column.autoincrement in (True, "auto")
        and isinstance(column.type, Integer)
    )


def _field_kwargs(column: Column) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if isinstance(column.type, String) and column.type.length:
        kwargs["max_length"] = column.type.length
    if column.doc:
        kwargs["description"] = column.doc
    return kwargs


def _create_field(exposed: ExposedColumn) -> Tuple[Any, Any]:
    column = exposed.column
    kwargs = _field_kwargs(column)
    optional = exposed.nullable or _has_default(column) or _is_autoincrement(column)
    if not optional:
        return exposed.field_type, Field(..., **kwargs)
    if exposed.nullable or exposed.primary_key:
        return Optional[exposed.field_type], Field(default=None, **kwargs)
    # Left unset, the column default applies; an explicit null is still rejected
    return exposed.field_type, Field(default=None, **kwargs)


def _update_field(exposed: ExposedColumn) -> Tuple[Any, Any]:
    annotation = Optional[exposed.field_type] if exposed.nullable else exposed.field_type
    return annotation, Field(default=None, **_field_kwargs(exposed.column))


def build_schemas(model: type, exclude: Iterable[str] = ()) -> ModelSchemas:
    """
    Generate the read, create and update schemas of model.

    Args:
        model: SQLAlchemy mapped class with a single primary key
        exclude: Attribute names kept out of every schema

    Returns:
        ModelSchemas with pydantic models named <Model>Read, <Model>Create
        and <Model>Update

    Raises:
        ConfigurationError: If model is not mapped or has a composite key
    """
    pk = primary_key(model)
    columns = exposed_columns(model, exclude)
    name = model.__name__

    read_fields = {
        c.key: (Optional[c.python_type], Field(default=None))
        for c in columns
    }
    create_fields = {c.key: _create_field(c) for c in columns}
    update_fields = {
        c.key: _update_field(c)
        for c in columns
        if c.key != pk.key
    }

    return ModelSchemas(
        read=create_model(f"{name}Read", __base__=ReadSchema, **read_fields),
        create=create_model(f"{name}Create", __base__=WriteSchema, **create_fields),
        update=create_model(f"{name}Update", __base__=WriteSchema, **update_fields),
    )
