"""
Engine configuration and session management.

Provides lazily created blocking and asyncio SQLAlchemy engines, session
factories, and session generators suitable for dependency injection.
Repositories never open or close sessions themselves; these helpers are
for the application that owns the unit of work.
"""

from typing import AsyncGenerator, Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from repositori.core.config import get_settings
from repositori.core.logging_config import get_logger
from repositori.models.base import Base


logger = get_logger(__name__)

_ENGINE: Optional[Engine] = None
_ASYNC_ENGINE: Optional[AsyncEngine] = None
_SESSION_MAKER: Optional[sessionmaker] = None
_ASYNC_SESSION_MAKER: Optional[async_sessionmaker] = None


def _engine_kwargs(is_sqlite: bool) -> dict:
    settings = get_settings()
    kwargs: dict = {"echo": settings.sql_echo}
    if is_sqlite:
        # SQLite works best with StaticPool; let other drivers use defaults
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


def _enable_sqlite_foreign_keys(sync_engine: Engine) -> None:
    @event.listens_for(sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine() -> Engine:
    """
    Return the blocking Engine, creating it on first use.

    For SQLite:
    - Uses StaticPool (one shared connection, so :memory: databases survive)
    - Disables check_same_thread
    - Enables foreign key enforcement on every connection
    """
    global _ENGINE
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_engine(
            settings.sync_database_url,
            **_engine_kwargs(settings.is_sqlite),
        )
        if settings.is_sqlite:
            _enable_sqlite_foreign_keys(_ENGINE)
        logger.info("Created engine", extra={"dialect": _ENGINE.dialect.name})
    return _ENGINE


def get_async_engine() -> AsyncEngine:
    """Return the asyncio AsyncEngine, creating it on first use."""
    global _ASYNC_ENGINE
    if _ASYNC_ENGINE is None:
        settings = get_settings()
        _ASYNC_ENGINE = create_async_engine(
            settings.async_database_url,
            **_engine_kwargs(settings.is_sqlite),
        )
        if settings.is_sqlite:
            _enable_sqlite_foreign_keys(_ASYNC_ENGINE.sync_engine)
        logger.info("Created async engine", extra={"dialect": _ASYNC_ENGINE.dialect.name})
    return _ASYNC_ENGINE


def get_session_factory() -> sessionmaker:
    """Return the blocking session factory bound to get_engine()."""
    global _SESSION_MAKER
    if _SESSION_MAKER is None:
        _SESSION_MAKER = sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _SESSION_MAKER


def get_async_session_factory() -> async_sessionmaker:
    """Return the asyncio session factory bound to get_async_engine()."""
    global _ASYNC_SESSION_MAKER
    if _ASYNC_SESSION_MAKER is None:
        _ASYNC_SESSION_MAKER = async_sessionmaker(
            get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,
        )
    return _ASYNC_SESSION_MAKER


def session_maker() -> Session:
    """Open a new blocking Session. The caller closes it."""
    return get_session_factory()()


def async_session_maker() -> AsyncSession:
    """Open a new AsyncSession. The caller closes it."""
    return get_async_session_factory()()


def init_db() -> None:
    """
    Create every table registered on Base.metadata.

    Models must be imported before calling this so their tables are
    registered. Use migrations instead for anything long-lived.
    """
    with get_engine().begin() as conn:
        Base.metadata.create_all(conn)


async def init_async_db() -> None:
    """Asyncio counterpart of init_db()."""
    async with get_async_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Dispose both engines and forget the session factories.

    Should be called at application shutdown. The next get_engine() or
    get_async_engine() call starts from fresh settings.
    """
    global _ENGINE, _ASYNC_ENGINE, _SESSION_MAKER, _ASYNC_SESSION_MAKER
    if _ENGINE is not None:
        _ENGINE.dispose()
    if _ASYNC_ENGINE is not None:
        await _ASYNC_ENGINE.dispose()
    _ENGINE = _ASYNC_ENGINE = None
    _SESSION_MAKER = _ASYNC_SESSION_MAKER = None


def get_session() -> Generator[Session, None, None]:
    """
    Yield a blocking Session and close it afterwards.

    Caller must explicitly commit or rollback, typically through a
    repository's commit_transaction().

    Example:
        for session in get_session():
            repo = SqlAlchemyRepository(DataContext(session), Widget)
            ...
    """
    session = session_maker()
    try:
        yield session
    finally:
        session.close()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession and close it afterwards.

    Usable directly as a web-framework dependency.

    Example:
        async for session in get_async_session():
            repo = AsyncSqlAlchemyRepository(AsyncDataContext(session), Widget)
            ...
    """
    async with async_session_maker() as session:
        yield session
