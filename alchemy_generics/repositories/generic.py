"""
Generic repository over a mapped model / domain entity pair.

One implementation serves any model class implementing the GenericModel
protocol: CRUD coroutines, specification-filtered queries and optional
eager loading of many-to-many associations.
"""

import time
from typing import Any, Generic, List, NoReturn, Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from alchemy_generics.core.config import get_settings
from alchemy_generics.core.logging_config import get_logger, log_with_context
from alchemy_generics.exceptions import MappingError, NotFoundError, PersistenceError
from alchemy_generics.models.mapper import GenericModel, assign_entity, is_generic_model
from alchemy_generics.repositories.associations import AssociationResolver
from alchemy_generics.specifications import Specification, to_clause


logger = get_logger(__name__)

E = TypeVar("E")
M = TypeVar("M", bound=GenericModel)


class GenericRepository(Generic[M, E]):
    """
    Repository for any model/entity pairing.

    The pairing is fixed at construction: `model` is the mapped class and
    its to_entity()/from_entity() define the entity type. Writes flush but
    never commit; the transaction belongs to whoever owns the session.

    Attributes:
        session: SQLAlchemy async session for database operations
        model: Mapped model class served by this repository

    Example:
        >>> repo = GenericRepository(session, BookModel).enable_preload_associations()
        >>> book = Book(title="Dune")
        >>> await repo.insert(book)
        >>> book.id
        1
        >>> await repo.find(Equal("title", "Dune"))
        [Book(id=1, title='Dune', tags=[])]
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Type[M],
        preload_associations: Optional[bool] = None
    ):
        """
        Initialize repository. No I/O is performed.

        Args:
            session: SQLAlchemy async session
            model: Mapped class implementing to_entity()/from_entity()
            preload_associations: Initial preload flag; defaults to
                Settings.preload_associations

        Raises:
            MappingError: If model does not implement the mapping contract
        """
        if not is_generic_model(model):
            raise MappingError(
                f"{getattr(model, '__name__', model)!s} must implement "
                "to_entity() and from_entity()"
            )

        self.session = session
        self.model = model
        if preload_associations is None:
            preload_associations = get_settings().preload_associations
        self._preload_associations = preload_associations
        self._resolver = AssociationResolver(model)

    @property
    def model_name(self) -> str:
        return self.model.__name__

    @property
    def preload_associations(self) -> bool:
        return self._preload_associations

    @property
    def associations(self) -> List[str]:
        """Many-to-many relationship names of the model, resolved on demand."""
        return list(self._resolver.resolve())

    def enable_preload_associations(self) -> "GenericRepository[M, E]":
        """Eager-load every many-to-many association on reads."""
        self._preload_associations = True
        return self

    def disable_preload_associations(self) -> "GenericRepository[M, E]":
        """
        Stop eager-loading associations on reads.

        This clears the flag. Already resolved association names stay
        cached and are reused if preloading is enabled again.
        """
        self._preload_associations = False
        return self

    def set_preload_associations(self, enabled: bool) -> "GenericRepository[M, E]":
        if enabled:
            return self.enable_preload_associations()
        return self.disable_preload_associations()

    # Writes

    async def insert(self, entity: E) -> E:
        """
        Persist a new row built from `entity`.

        Generated fields (primary key, server defaults) are written back
        into `entity` in place.

        Returns:
            The same entity object, updated

        Raises:
            PersistenceError: If the insert fails
            MappingError: If mapping in either direction fails
        """
        model = self._to_model(entity)
        started = time.perf_counter()
        try:
            self.session.add(model)
            await self.session.flush()
            await self.session.refresh(model, attribute_names=self._refresh_attributes())
        except SQLAlchemyError as e:
            self._raise_persistence_error("insert", e)

        self._log_completed("insert", started)
        return assign_entity(entity, model.to_entity())

    async def update(self, entity: E) -> E:
        """
        Save every column of `entity`, inserting the row if it is missing.

        Returns:
            The same entity object, refreshed from the database

        Raises:
            PersistenceError: If the save fails
            MappingError: If mapping in either direction fails
        """
        model = self._to_model(entity)
        started = time.perf_counter()
        try:
            merged = await self.session.merge(model)
            await self.session.flush()
            await self.session.refresh(merged, attribute_names=self._refresh_attributes())
        except SQLAlchemyError as e:
            self._raise_persistence_error("update", e)

        self._log_completed("update", started)
        return assign_entity(entity, merged.to_entity())

    async def delete(self, entity: E) -> None:
        """
        Delete the row identified by the primary key of `entity`.

        Raises:
            NotFoundError: If no such row exists
            PersistenceError: If the delete fails
        """
        model = self._to_model(entity)
        identity = inspect(self.model).primary_key_from_instance(model)
        if any(value is None for value in identity):
            raise NotFoundError(self.model_name, None, operation="delete")

        await self._delete_identity(
            identity[0] if len(identity) == 1 else tuple(identity),
            "delete"
        )

    async def delete_by_id(self, id: Any) -> None:
        """
        Delete a row by primary key without building an entity.

        The row is deleted through the ORM so association rows of
        many-to-many relationships are removed with it.

        Raises:
            NotFoundError: If no row has this id
            PersistenceError: If the delete fails
        """
        await self._delete_identity(id, "delete_by_id")

    # Reads

    async def find_by_id(self, id: Any) -> E:
        """
        Fetch a single row by primary key.

        Associations are eager-loaded when preloading is enabled.

        Raises:
            NotFoundError: If no row has this id
            PersistenceError: If the query fails
        """
        started = time.perf_counter()
        options = self._preload_options()
        try:
            model = await self.session.get(
                self.model,
                id,
                options=options,
                populate_existing=bool(options)
            )
        except SQLAlchemyError as e:
            self._raise_persistence_error("find_by_id", e)

        if model is None:
            raise NotFoundError(self.model_name, id, operation="find_by_id")

        self._log_completed("find_by_id", started, count=1)
        return model.to_entity()

    async def find(self, *specifications: Specification) -> List[E]:
        """Return every entity matching all `specifications`."""
        return await self.find_with_limit(None, None, *specifications)

    async def find_all(self) -> List[E]:
        return await self.find_with_limit(None, None)

    async def find_with_limit(
        self,
        limit: Optional[int],
        offset: Optional[int],
        *specifications: Specification
    ) -> List[E]:
        """
        Return entities matching all `specifications`, bounded by limit/offset.

        Args:
            limit: Maximum rows; None or a negative value means no limit
            offset: Rows to skip; None or a negative value means none
            *specifications: Conditions AND-ed together, left to right

        Returns:
            Entities in the order the database returns them

        Raises:
            PersistenceError: If the query fails
            SpecificationError: If a specification is malformed
        """
        stmt = self._apply_specifications(select(self.model), specifications)

        options = self._preload_options()
        if options:
            stmt = stmt.options(*options)

        if limit is not None and limit >= 0:
            stmt = stmt.limit(limit)
        if offset is not None and offset >= 0:
            stmt = stmt.offset(offset)

        started = time.perf_counter()
        try:
            result = await self.session.execute(stmt)
            models = result.scalars().all()
        except SQLAlchemyError as e:
            self._raise_persistence_error("find_with_limit", e)

        self._log_completed("find_with_limit", started, count=len(models))
        return [model.to_entity() for model in models]

    async def count(self, *specifications: Specification) -> int:
        """
        Count rows matching all `specifications`.

        Uses the same filtering as find(); associations are never preloaded.

        Raises:
            PersistenceError: If the query fails
        """
        stmt = self._apply_specifications(
            select(func.count()).select_from(self.model),
            specifications
        )

        started = time.perf_counter()
        try:
            total = await self.session.scalar(stmt)
        except SQLAlchemyError as e:
            self._raise_persistence_error("count", e)

        total = int(total or 0)
        self._log_completed("count", started, count=total)
        return total

    # Helpers

    def _apply_specifications(
        self,
        stmt: Select,
        specifications: Sequence[Specification]
    ) -> Select:
        for specification in specifications:
            stmt = stmt.where(to_clause(specification))
        return stmt

    def _preload_options(self) -> list:
        if not self._preload_associations:
            return []
        return [
            selectinload(getattr(self.model, name))
            for name in self._resolver.resolve()
        ]

    def _refresh_attributes(self) -> List[str]:
        """Column attributes, plus associations when preloading is enabled."""
        names = [attr.key for attr in inspect(self.model).column_attrs]
        if self._preload_associations:
            names.extend(self._resolver.resolve())
        return names

    def _to_model(self, entity: E) -> M:
        model = self.model.from_entity(entity)
        if not isinstance(model, self.model):
            raise MappingError(
                f"{self.model_name}.from_entity() returned {type(model).__name__}",
                model=self.model_name
            )
        return model

    async def _delete_identity(self, id: Any, operation: str) -> None:
        started = time.perf_counter()
        try:
            model = await self.session.get(self.model, id)
            if model is None:
                raise NotFoundError(self.model_name, id, operation=operation)
            await self.session.delete(model)
            await self.session.flush()
        except SQLAlchemyError as e:
            self._raise_persistence_error(operation, e)

        self._log_completed(operation, started)

    def _raise_persistence_error(self, operation: str, error: SQLAlchemyError) -> NoReturn:
        log_with_context(
            logger,
            "error",
            f"{operation} on {self.model_name} failed: {error}",
            model=self.model_name,
            operation=operation,
        )
        raise PersistenceError(operation, self.model_name, error) from error

    def _log_completed(
        self,
        operation: str,
        started: float,
        count: Optional[int] = None
    ) -> None:
        log_with_context(
            logger,
            "debug",
            f"{operation} completed",
            model=self.model_name,
            operation=operation,
            latency_ms=round((time.perf_counter() - started) * 1000, 3),
            count=count,
        )
