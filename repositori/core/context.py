"""
Data context over SQLAlchemy sessions.

A data context wraps one Session (or AsyncSession) and exposes the
operations repositories are built from: typed selection, query
execution, change-tracker state marking and an explicit transaction
lifecycle. The session keeps owning the unit of work and identity map;
the context only adds the explicit transaction flag.
"""

import enum
from typing import Any, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstanceState, Session, make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified

from repositori.core.logging_config import get_logger, log_with_context


logger = get_logger(__name__)

T = TypeVar("T")


class TransactionState(str, enum.Enum):
    """Explicit transaction flag owned by a data context."""

    NONE = "none"
    ACTIVE = "active"


def _require_identity(state: InstanceState) -> None:
    identity = state.mapper.primary_key_from_instance(state.obj())
    if any(value is None for value in identity):
        raise ValueError(
            f"{state.class_.__name__} has no identifier set; "
            "cannot track it as an existing row"
        )


def _detach_transient(state: InstanceState) -> None:
    # Transient instance carrying a primary key: treat as an existing row
    if state.transient:
        _require_identity(state)
        make_transient_to_detached(state.obj())


def _flag_all_columns(state: InstanceState) -> None:
    """Mark every loaded, non-primary-key column attribute as modified."""
    mapper = state.mapper
    pk_keys = {mapper.get_property_by_column(column).key for column in mapper.primary_key}
    instance = state.obj()
    for prop in mapper.column_attrs:
        if prop.key not in pk_keys and prop.key in state.dict:
            flag_modified(instance, prop.key)


def _entity_name(entity: Any) -> str:
    return type(entity).__name__


class _ContextBase:
    """Transaction flag bookkeeping shared by both contexts."""

    session: Any

    def __init__(self) -> None:
        self._transaction_flag = TransactionState.NONE

    @property
    def transaction_state(self) -> TransactionState:
        """
        ACTIVE while an explicit transaction is open.

        A flag left set after the session ended its transaction elsewhere
        (commit or rollback issued directly on the session) reads as NONE.
        """
        if (
            self._transaction_flag is TransactionState.ACTIVE
            and self.session.in_transaction()
        ):
            return TransactionState.ACTIVE
        return TransactionState.NONE

    def set(self, entity_type: Type[T]) -> Select:
        """Return an unexecuted SELECT over every row of entity_type."""
        return select(entity_type)

    def mark_added(self, entity: T) -> T:
        self.session.add(entity)
        log_with_context(
            logger, "debug", "Marked entity added",
            entity=_entity_name(entity), operation="add",
        )
        return entity

    def mark_added_range(self, entities: Iterable[T]) -> List[T]:
        entities = list(entities)
        self.session.add_all(entities)
        log_with_context(
            logger, "debug", "Marked entities added",
            entity=_entity_name(entities[0]) if entities else None,
            operation="add_range", count=len(entities),
        )
        return entities

    def mark_modified(self, entity: T) -> T:
        """
        Mark entity so all of its columns are written on the next flush.

        Detached instances, and transient ones that carry an id, are
        attached first. Pending instances stay pending: they are inserted
        with their current values anyway.
        """
        state = inspect(entity)
        _detach_transient(state)
        if state.detached:
            self.session.add(entity)
        if state.persistent:
            _flag_all_columns(state)
        log_with_context(
            logger, "debug", "Marked entity modified",
            entity=_entity_name(entity), entity_id=getattr(entity, "id", None),
            operation="update",
        )
        return entity

    def mark_modified_range(self, entities: Iterable[T]) -> List[T]:
        return [self.mark_modified(entity) for entity in entities]


class DataContext(_ContextBase):
    """
    Blocking data context wrapping a Session.

    Attributes:
        session: The wrapped session; never closed by the context
    """

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def first(self, statement: Select) -> Optional[Any]:
        """Execute statement and return the first scalar, or None."""
        return self.session.scalars(statement).first()

    def all(self, statement: Select) -> List[Any]:
        """Execute statement and return every scalar."""
        return list(self.session.scalars(statement).all())

    def mark_removed(self, entity: T) -> T:
        """
        Mark entity for deletion on the next flush.

        A pending instance is only dropped from the pending-insert set.
        """
        state = inspect(entity)
        if state.pending:
            self.session.expunge(entity)
        else:
            _detach_transient(state)
            self.session.delete(entity)
        log_with_context(
            logger, "debug", "Marked entity removed",
            entity=_entity_name(entity), entity_id=getattr(entity, "id", None),
            operation="delete",
        )
        return entity

    def mark_removed_range(self, entities: Iterable[T]) -> List[T]:
        return [self.mark_removed(entity) for entity in entities]

    def begin_transaction(self) -> None:
        """Open an explicit transaction unless one is already active."""
        if self.transaction_state is TransactionState.ACTIVE:
            return
        if not self.session.in_transaction():
            self.session.begin()
        self._transaction_flag = TransactionState.ACTIVE
        logger.info("Transaction started")

    def save_changes(self) -> None:
        """
        Persist pending changes.

        Inside an explicit transaction this only flushes; otherwise the
        changes are flushed and committed. A failed commit outside an
        explicit transaction rolls the session back before re-raising,
        so the context stays usable.
        """
        if self.transaction_state is TransactionState.ACTIVE:
            self.session.flush()
            return
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def commit_transaction(self) -> None:
        self.session.commit()
        self._transaction_flag = TransactionState.NONE
        logger.info("Transaction committed")

    def rollback_transaction(self) -> None:
        self.session.rollback()
        self._transaction_flag = TransactionState.NONE
        logger.info("Transaction rolled back")


class AsyncDataContext(_ContextBase):
    """
    Asyncio data context wrapping an AsyncSession.

    Same surface as DataContext; operations that reach the database are
    coroutines, pure change-tracker transitions are not, except removal
    which may load relationships for delete cascades.

    Attributes:
        session: The wrapped session; never closed by the context
    """

    def __init__(self, session: AsyncSession):
        super().__init__()
        self.session = session

    async def first(self, statement: Select) -> Optional[Any]:
        """Execute statement and return the first scalar, or None."""
        result = await self.session.scalars(statement)
        return result.first()

    async def all(self, statement: Select) -> List[Any]:
        """Execute statement and return every scalar."""
        result = await self.session.scalars(statement)
        return list(result.all())

    async def mark_removed(self, entity: T) -> T:
        """
        Mark entity for deletion on the next flush.

        A pending instance is only dropped from the pending-insert set.
        """
        state = inspect(entity)
        if state.pending:
            self.session.expunge(entity)
        else:
            _detach_transient(state)
            await self.session.delete(entity)
        log_with_context(
            logger, "debug", "Marked entity removed",
            entity=_entity_name(entity), entity_id=getattr(entity, "id", None),
            operation="delete",
        )
        return entity

    async def mark_removed_range(self, entities: Iterable[T]) -> List[T]:
        return [await self.mark_removed(entity) for entity in entities]

    async def begin_transaction(self) -> None:
        """Open an explicit transaction unless one is already active."""
        if self.transaction_state is TransactionState.ACTIVE:
            return
        if not self.session.in_transaction():
            await self.session.begin()
        self._transaction_flag = TransactionState.ACTIVE
        logger.info("Transaction started")

    async def save_changes(self) -> None:
        """
        Persist pending changes.

        Inside an explicit transaction this only flushes; otherwise the
        changes are flushed and committed, with a rollback on failure.
        """
        if self.transaction_state is TransactionState.ACTIVE:
            await self.session.flush()
            return
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def commit_transaction(self) -> None:
        await self.session.commit()
        self._transaction_flag = TransactionState.NONE
        logger.info("Transaction committed")

    async def rollback_transaction(self) -> None:
        await self.session.rollback()
        self._transaction_flag = TransactionState.NONE
        logger.info("Transaction rolled back")
