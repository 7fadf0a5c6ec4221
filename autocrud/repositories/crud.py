"""
Generic CRUD repository.

Provides the database operations every generated route is built from:
find, first, create, save and delete over one mapped class.
"""

from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrud.schemas.model_schemas import primary_key


ModelT = TypeVar("ModelT")


class CRUDRepository(Generic[ModelT]):
    """
    Async repository for a single SQLAlchemy mapped class.

    The repository never commits on its own: create/save/delete flush so
    database errors surface at the call site, and the caller decides when
    to commit or roll back. SQLAlchemy errors propagate unchanged.

    Attributes:
        session: SQLAlchemy async session for database operations
        model: Mapped class the repository operates on
    """

    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
            model: SQLAlchemy mapped class with a single primary key

        Raises:
            ConfigurationError: If model is not mapped or has a composite key
        """
        self.session = session
        self.model = model
        self._pk = primary_key(model)

    @property
    def primary_key_column(self) -> Any:
        """Instrumented attribute of the primary key (e.g. Dummy.id)."""
        return getattr(self.model, self._pk.key)

    def query(self) -> Select:
        """
        Base statement selecting every record of the model.

        Filters narrow this statement before it is handed to find() or first().
        """
        return select(self.model)

    async def find(self, statement: Optional[Select] = None) -> List[ModelT]:
        """
        Run a select statement and return all matching records.

        Args:
            statement: Statement built from query(); defaults to all records

        Returns:
            Records ordered by primary key
        """
        if statement is None:
            statement = self.query()
        statement = statement.order_by(self.primary_key_column)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def first(
        self,
        pk: Any,
        statement: Optional[Select] = None,
    ) -> Optional[ModelT]:
        """
        Retrieve one record by primary key.

        Args:
            pk: Primary key value, already converted to the column's type
            statement: Statement built from query(); its filters still apply

        Returns:
            The record if found (and not excluded by filters), None otherwise
        """
        if statement is None:
            statement = self.query()
        statement = statement.where(self.primary_key_column == pk).limit(1)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def create(self, obj: ModelT) -> ModelT:
        """
        Insert a new record.

        Flushes to obtain generated keys and refreshes to load server
        defaults.
        """
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def save(self, obj: ModelT) -> ModelT:
        """Write pending changes of an existing record."""
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def delete(self, obj: ModelT) -> None:
        """Delete a record."""
        await self.session.delete(obj)
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
