"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- In-memory SQLite engine and session fixtures
- Seeded rows for query tests
"""

import os
import sys
from pathlib import Path

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["ALCHEMY_GENERICS_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ALCHEMY_GENERICS_PRELOAD_ASSOCIATIONS"] = "false"
os.environ["ALCHEMY_GENERICS_SQL_ECHO"] = "false"

# Make sample_models importable from unit/ and integration/
sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop the cached Settings so monkeypatched env vars take effect."""
    from alchemy_generics.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def engine():
    """
    Provide a fresh in-memory database with all sample tables created.
    """
    from alchemy_generics.core.config import Settings
    from alchemy_generics.core.database import create_engine_from_settings, init_models
    from alchemy_generics.models.base import Base
    import sample_models  # noqa: F401 - Import to register models

    engine = create_engine_from_settings(Settings())
    await init_models(engine, Base.metadata)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    from alchemy_generics.core.database import create_session_maker

    return create_session_maker(engine)


@pytest.fixture
async def async_session(session_maker):
    """
    Provide an async database session.

    Uncommitted work is rolled back when the test ends.
    """
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seeded_books(session_maker):
    """
    Commit five books across two authors.

    Returns:
        List of Book entities with ids assigned, in insertion order
    """
    from alchemy_generics.repositories.generic import GenericRepository
    from sample_models import Author, AuthorModel, Book, BookModel

    async with session_maker() as session:
        authors = GenericRepository(session, AuthorModel)
        books = GenericRepository(session, BookModel)

        herbert = await authors.insert(Author(name="Frank Herbert"))
        le_guin = await authors.insert(Author(name="Ursula K. Le Guin"))

        seeded = []
        for title, pages, author in [
            ("Dune", 412, herbert),
            ("Dune Messiah", 256, herbert),
            ("Children of Dune", 444, herbert),
            ("The Dispossessed", 387, le_guin),
            ("The Lathe of Heaven", 184, le_guin),
        ]:
            seeded.append(
                await books.insert(Book(title=title, pages=pages, author_id=author.id))
            )

        await session.commit()

    return seeded
