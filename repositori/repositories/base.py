"""
Repository capability interfaces.

Repository and AsyncRepository describe what a repository can do for
one entity type; SqlAlchemyRepository and AsyncSqlAlchemyRepository are
the default implementations. Callers may substitute their own, or wrap
a default one, as long as it satisfies the protocol.
"""

from typing import (
    Any,
    AsyncContextManager,
    ContextManager,
    Iterable,
    List,
    Optional,
    Protocol,
    TypeVar,
)

from sqlalchemy import Select

from repositori.models.base import Identifiable


EntityT = TypeVar("EntityT", bound=Identifiable[Any])
IdT = TypeVar("IdT")


class Repository(Protocol[EntityT, IdT]):
    """Blocking CRUD and transaction control for one entity type."""

    @property
    def query(self) -> Select:
        """Unexecuted, composable SELECT over all entities of the type."""
        ...

    def get_by_id(self, entity_id: IdT) -> Optional[EntityT]:
        """First entity whose id equals entity_id, or None."""
        ...

    def create(self, entity: EntityT) -> EntityT:
        """Register entity for insertion on the next commit."""
        ...

    def create_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        """Register every entity for insertion on the next commit."""
        ...

    def update(self, entity: EntityT) -> EntityT:
        """Mark entity so all of its fields are written on the next commit."""
        ...

    def update_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        ...

    def delete(self, entity: EntityT) -> EntityT:
        """Mark entity for removal on the next commit."""
        ...

    def delete_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        ...

    def start_transaction(self) -> None:
        ...

    def commit_transaction(self) -> None:
        ...

    def rollback_transaction(self) -> None:
        ...

    def transaction(self) -> ContextManager[Any]:
        ...


class AsyncRepository(Protocol[EntityT, IdT]):
    """Asyncio CRUD and transaction control for one entity type."""

    @property
    def query(self) -> Select:
        ...

    async def get_by_id(self, entity_id: IdT) -> Optional[EntityT]:
        ...

    async def create(self, entity: EntityT) -> EntityT:
        ...

    async def create_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        ...

    async def update(self, entity: EntityT) -> EntityT:
        ...

    async def update_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        ...

    async def delete(self, entity: EntityT) -> EntityT:
        ...

    async def delete_many(self, entities: Iterable[EntityT]) -> List[EntityT]:
        ...

    async def start_transaction(self) -> None:
        ...

    async def commit_transaction(self) -> None:
        ...

    async def rollback_transaction(self) -> None:
        ...

    def transaction(self) -> AsyncContextManager[Any]:
        ...
