"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base, the identifier contract every repository
entity satisfies, mixins for identifiers and timestamps, and common
utilities for mapped classes.
"""

from typing import Any, Protocol, TypeVar, runtime_checkable
import uuid

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


IdT = TypeVar("IdT")


@runtime_checkable
class Identifiable(Protocol[IdT]):
    """
    Contract for entities handled by a repository.

    Any mapped class exposing an `id` attribute of a comparable type
    satisfies it; the mixins below are one way to get there.
    """

    id: IdT


class IntegerIdMixin:
    """
    Mixin that adds an autoincrement integer primary key column.

    Attributes:
        id: Integer primary key
    """

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Integer primary key"
    )


class UUIDMixin:
    """
    Mixin that adds a UUID primary key column.

    Uses TEXT type for SQLite compatibility (string format UUIDs).
    The value is generated client-side on insert when not provided.

    Attributes:
        id: UUID primary key as TEXT
    """

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="UUID primary key"
    )


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Both are filled by the database on insert; updated_at is refreshed
    by SQLAlchemy on every UPDATE it emits.

    Attributes:
        created_at: Timestamp when record was created (immutable)
        updated_at: Timestamp when record was last updated (auto-updated)
    """

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        doc="UTC timestamp when record was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        doc="UTC timestamp when record was last updated"
    )


class ModelMixin:
    """
    Mixin providing common model utilities.

    Adds helper methods for serialization and representation.
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary with all column values

        Note:
            Only includes columns, not relationships.
            Unloaded (expired) columns trigger a load on access.
        """
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        """
        String representation of model instance.

        Returns:
            String like "ModelName(id=1, name='value')"
        """
        state = self.__dict__
        attrs = ", ".join(
            f"{key}={state[key]!r}"
            for key in ("id", "name", "title")  # Key identifying fields
            if key in state
        )
        return f"{self.__class__.__name__}({attrs})"
