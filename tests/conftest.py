"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- Blocking and asyncio session fixtures over in-memory SQLite
"""

import os

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SQL_ECHO"] = "false"
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture(scope="function")
def session():
    """
    Provide a blocking database session for tests.

    Creates tables before test and drops them after.
    """
    from repositori.core.database import get_engine, session_maker
    from repositori.models.base import Base
    from tests import models  # noqa: F401 - Import to register models

    engine = get_engine()
    Base.metadata.create_all(engine)

    with session_maker() as db_session:
        yield db_session

    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
async def async_session():
    """
    Provide an async database session for tests.

    Creates tables before test and drops them after.
    """
    from repositori.core.database import get_async_engine, async_session_maker
    from repositori.models.base import Base
    from tests import models  # noqa: F401 - Import to register models

    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db_session:
        yield db_session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
