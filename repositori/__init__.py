"""
Generic repository pattern over SQLAlchemy.

Typed CRUD operations and explicit transaction control for any mapped
entity exposing an identifier, in blocking and asyncio flavours.
"""

from repositori.core.context import AsyncDataContext, DataContext, TransactionState
from repositori.models.base import Identifiable
from repositori.repositories.base import AsyncRepository, Repository
from repositori.repositories.sqlalchemy_repository import (
    AsyncSqlAlchemyRepository,
    SqlAlchemyRepository,
)

__all__ = [
    "AsyncDataContext",
    "AsyncRepository",
    "AsyncSqlAlchemyRepository",
    "DataContext",
    "Identifiable",
    "Repository",
    "SqlAlchemyRepository",
    "TransactionState",
]

__version__ = "0.1.0"
