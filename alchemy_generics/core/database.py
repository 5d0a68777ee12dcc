"""
Engine and session helpers.

Repositories only need an AsyncSession; these helpers build one from
Settings the same way for applications and tests.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from alchemy_generics.core.config import Settings, get_settings


def create_engine_from_settings(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create and configure an async SQLAlchemy engine.

    For SQLite:
    - Uses StaticPool so in-memory databases survive across sessions
    - Enables check_same_thread=False for async compatibility
    - Turns on foreign key enforcement for every connection

    Args:
        settings: Settings to read the URL and echo flag from
            (defaults to get_settings())

    Returns:
        Configured AsyncEngine instance
    """
    settings = settings or get_settings()
    is_sqlite = settings.database_url.startswith("sqlite")

    engine_kwargs: dict = {
        "echo": settings.sql_echo,
        "connect_args": {"check_same_thread": False} if is_sqlite else {},
    }
    if is_sqlite:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(settings.database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory used to hand sessions to repositories.

    Objects are not expired on commit so entities mapped after a commit
    do not trigger lazy loads.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine, metadata: MetaData) -> None:
    """
    Create all tables registered on `metadata`.

    For production schemas use migrations instead; this is meant for
    local development and tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def drop_models(engine: AsyncEngine, metadata: MetaData) -> None:
    """Drop all tables registered on `metadata`."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Provide a transactional scope around a series of repository calls.

    Commits when the block exits normally and rolls back on any exception.

    Example:
        async with session_scope(session_maker) as session:
            repo = GenericRepository(session, BookModel)
            await repo.insert(book)
    """
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
