"""
Database models package.

Exports the declarative base, the identifier contract and mixins for
mapped classes used with repositories.
"""

from repositori.models.base import (
    Base,
    Identifiable,
    IntegerIdMixin,
    ModelMixin,
    TimestampMixin,
    UUIDMixin,
)

__all__ = [
    "Base",
    "Identifiable",
    "IntegerIdMixin",
    "ModelMixin",
    "TimestampMixin",
    "UUIDMixin",
]
