"""
Default repository implementations over SQLAlchemy.

Both classes are thin adapters: every call translates into one data
context operation and every failure raised by SQLAlchemy or the driver
reaches the caller unchanged.
"""

from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Generic, Iterable, Iterator, List, Optional, Type

from sqlalchemy import Select

from repositori.core.context import AsyncDataContext, DataContext, TransactionState
from repositori.core.logging_config import get_logger
from repositori.repositories.base import EntityT, IdT


logger = get_logger(__name__)


def _check_identifiable(entity_type: type) -> None:
    if not hasattr(entity_type, "id"):
        raise TypeError(
            f"{entity_type.__name__} does not expose an 'id' attribute "
            "and cannot be used with a repository"
        )


class SqlAlchemyRepository(Generic[EntityT, IdT]):
    """
    Repository for one entity type over a blocking DataContext.

    Provides CRUD operations and explicit transaction control. The
    repository holds no entity state of its own: every instance it
    returns is tracked by the context's session.

    Attributes:
        context: Shared data context; never closed by the repository
        entity_type: Mapped class handled by this repository

    Example:
        >>> with session_maker() as session:
        ...     repo = SqlAlchemyRepository(DataContext(session), Widget)
        ...     repo.create(Widget(name="A"))
        ...     repo.commit_transaction()
    """

    def __init__(self, context: DataContext, entity_type: Type[EntityT]):
        """
        Initialize repository with a data context.

        Args:
            context: Data context wrapping the session to use
            entity_type: Mapped class exposing an `id` attribute

        Raises:
            TypeError: If entity_type has no `id` attribute
        """
        _check_identifiable(entity_type)
        self.context = context
        self.entity_type = entity_type

    @property
    def query(self) -> Select:
        """
        Unexecuted SELECT over all entities of the type.

        Compose it further before executing:

            stmt = repo.query.where(Widget.quantity > 3).order_by(Widget.name)
            widgets = session.scalars(stmt).all()
        """
        return self.context.set(self.entity_type)

    def get_by_id(self, entity_id: IdT) -> Optional[EntityT]:
        """
        Retrieve the first entity whose id equals entity_id.

        Args:
            entity_id: Identifier to look up

        Returns:
            Entity instance if found, None otherwise
        """
        stmt = self.query.where(self.entity_type.id == entity_id).limit(1)
        return self.context.first(stmt)

    def create(self, entity: EntityT) -> EntityT:
        """
        Register entity for insertion.

        Nothing is written until commit_transaction().
        """
        return self.context.mark_added(entity)

    def create_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return self.context.mark_added_range(entities)

    def update(self, entity: EntityT) -> EntityT:
        """
        Mark entity as modified.

        Every loaded column is written on the next commit, whether or not
        its value changed since it was read. Entities not tracked by the
        session (detached, or built by hand with an existing id) are
        attached first.
        """
        return self.context.mark_modified(entity)

    def update_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return self.context.mark_modified_range(entities)

    def delete(self, entity: EntityT) -> EntityT:
        """Mark entity for removal; returns it as confirmation."""
        return self.context.mark_removed(entity)

    def delete_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return self.context.mark_removed_range(entities)

    def start_transaction(self) -> None:
        """Begin an explicit transaction if none is active."""
        if self.context.transaction_state is TransactionState.NONE:
            self.context.begin_transaction()

    def commit_transaction(self) -> None:
        """
        Persist pending changes, then commit the explicit transaction.

        Without an explicit transaction only the persist happens.

        Raises:
            Whatever SQLAlchemy raises (IntegrityError, StaleDataError, ...)
        """
        try:
            self.context.save_changes()
            if self.context.transaction_state is TransactionState.ACTIVE:
                self.context.commit_transaction()
        except Exception:
            logger.exception(
                "Commit failed",
                extra={"entity": self.entity_type.__name__, "operation": "commit_transaction"},
            )
            raise

    def rollback_transaction(self) -> None:
        """Discard uncommitted changes if a transaction is active; else no-op."""
        if self.context.transaction_state is TransactionState.ACTIVE:
            self.context.rollback_transaction()

    @contextmanager
    def transaction(self) -> Iterator["SqlAlchemyRepository[EntityT, IdT]"]:
        """
        Run a block inside an explicit transaction.

        Commits on normal exit; rolls back and re-raises on exception,
        including a failure raised by the commit itself.

        Example:
            with repo.transaction():
                repo.delete(widget)
        """
        self.start_transaction()
        try:
            yield self
            self.commit_transaction()
        except Exception:
            self.rollback_transaction()
            raise


class AsyncSqlAlchemyRepository(Generic[EntityT, IdT]):
    """
    Repository for one entity type over an AsyncDataContext.

    Same contract as SqlAlchemyRepository. create/update run inline:
    they only change change-tracker state and never touch the database.

    Attributes:
        context: Shared data context; never closed by the repository
        entity_type: Mapped class handled by this repository
    """

    def __init__(self, context: AsyncDataContext, entity_type: Type[EntityT]):
        _check_identifiable(entity_type)
        self.context = context
        self.entity_type = entity_type

    @property
    def query(self) -> Select:
        """Unexecuted SELECT over all entities of the type."""
        return self.context.set(self.entity_type)

    async def get_by_id(self, entity_id: IdT) -> Optional[EntityT]:
        """
        Retrieve the first entity whose id equals entity_id.

        Returns:
            Entity instance if found, None otherwise
        """
        stmt = self.query.where(self.entity_type.id == entity_id).limit(1)
        return await self.context.first(stmt)

    async def create(self, entity: EntityT) -> EntityT:
        return self.context.mark_added(entity)

    async def create_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return self.context.mark_added_range(entities)

    async def update(self, entity: EntityT) -> EntityT:
        return self.context.mark_modified(entity)

    async def update_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return self.context.mark_modified_range(entities)

    async def delete(self, entity: EntityT) -> EntityT:
        return await self.context.mark_removed(entity)

    async def delete_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        return await self.context.mark_removed_range(entities)

    async def start_transaction(self) -> None:
        """Begin an explicit transaction if none is active."""
        if self.context.transaction_state is TransactionState.NONE:
            await self.context.begin_transaction()

    async def commit_transaction(self) -> None:
        """
        Persist pending changes, then commit the explicit transaction.

        Without an explicit transaction only the persist happens.
        """
        try:
            await self.context.save_changes()
            if self.context.transaction_state is TransactionState.ACTIVE:
                await self.context.commit_transaction()
        except Exception:
            logger.exception(
                "Commit failed",
                extra={"entity": self.entity_type.__name__, "operation": "commit_transaction"},
            )
            raise

    async def rollback_transaction(self) -> None:
        """Discard uncommitted changes if a transaction is active; else no-op."""
        if self.context.transaction_state is TransactionState.ACTIVE:
            await self.context.rollback_transaction()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["AsyncSqlAlchemyRepository[EntityT, IdT]"]:
        """
        Run a block inside an explicit transaction.

        Commits on normal exit; rolls back and re-raises on exception.

        Example:
            async with repo.transaction():
                await repo.delete(widget)
        """
        await self.start_transaction()
        try:
            yield self
            await self.commit_transaction()
        except Exception:
            await self.rollback_transaction()
            raise
