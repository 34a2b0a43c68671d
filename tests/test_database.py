"""
Engine and session management tests.

Tests engine creation from settings, session generators and table
creation helpers.
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from repositori.core import database
from repositori.models.base import Base
from tests import models  # noqa: F401 - Import to register models


class TestEngines:
    """Engine creation."""

    def test_engine_is_created_once(self):
        assert database.get_engine() is database.get_engine()

    def test_engine_uses_blocking_sqlite_driver(self):
        engine = database.get_engine()

        assert engine.dialect.name == "sqlite"
        assert engine.url.drivername == "sqlite"

    def test_async_engine_uses_aiosqlite(self):
        engine = database.get_async_engine()

        assert engine.url.drivername == "sqlite+aiosqlite"

    def test_foreign_keys_enabled(self):
        with database.get_engine().connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


class TestSessions:
    """Session factories and generators."""

    def test_session_maker_settings(self):
        session = database.session_maker()
        try:
            assert isinstance(session, Session)
            assert session.autoflush is False
        finally:
            session.close()

    def test_session_factory_is_cached_and_bound_to_engine(self):
        factory = database.get_session_factory()

        assert database.get_session_factory() is factory
        assert factory.kw["bind"] is database.get_engine()

    @pytest.mark.anyio
    async def test_close_db_forgets_session_factories(self):
        """
        Test close_db drops factories along with the engines.

        Arrange: Build both session factories
        Act: close_db()
        Assert: New factories are built, bound to the new engines
        """
        # Arrange
        factory = database.get_session_factory()
        async_factory = database.get_async_session_factory()

        # Act
        await database.close_db()

        # Assert
        assert database.get_session_factory() is not factory
        assert database.get_async_session_factory() is not async_factory
        assert database.get_async_session_factory().kw["bind"] is database.get_async_engine()

    def test_get_session_closes_after_use(self):
        generator = database.get_session()
        session = next(generator)
        assert isinstance(session, Session)

        with pytest.raises(StopIteration):
            next(generator)

    @pytest.mark.anyio
    async def test_get_async_session_yields_async_session(self):
        async for session in database.get_async_session():
            assert isinstance(session, AsyncSession)


class TestTableCreation:
    """init_db / init_async_db / close_db."""

    def test_init_db_creates_tables(self):
        """
        Test init_db registers every mapped table.

        Arrange: Engine with registered models
        Act: init_db()
        Assert: widgets and notes tables exist
        """
        # Arrange
        engine = database.get_engine()

        # Act
        database.init_db()

        # Assert
        tables = inspect(engine).get_table_names()
        assert "widgets" in tables
        assert "notes" in tables
        Base.metadata.drop_all(engine)

    @pytest.mark.anyio
    async def test_init_async_db_and_close(self):
        await database.init_async_db()
        engine = database.get_async_engine()
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert "widgets" in tables

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await database.close_db()

        assert database.get_async_engine() is not engine
