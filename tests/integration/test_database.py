"""
Tests for engine and session helpers.
"""

import pytest
from sqlalchemy import text

from alchemy_generics.core.config import Settings
from alchemy_generics.core.database import (
    create_engine_from_settings,
    drop_models,
    session_scope,
)
from alchemy_generics.models.base import Base
from alchemy_generics.repositories.generic import GenericRepository
from sample_models import Author, AuthorModel


class TestEngineFactory:

    @pytest.mark.anyio
    async def test_sqlite_engine_enforces_foreign_keys(self, engine):
        async with engine.connect() as conn:
            result = await conn.execute(text("PRAGMA foreign_keys"))
            assert result.scalar() == 1

    def test_engine_uses_settings_url(self):
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:", sql_echo=True)

        engine = create_engine_from_settings(settings)

        assert engine.url.drivername == "sqlite+aiosqlite"
        assert engine.echo is True


class TestSessionScope:

    @pytest.mark.anyio
    async def test_commits_on_success(self, session_maker):
        # Arrange & Act
        async with session_scope(session_maker) as session:
            await GenericRepository(session, AuthorModel).insert(Author(name="Committed"))

        # Assert
        async with session_maker() as session:
            assert await GenericRepository(session, AuthorModel).count() == 1

    @pytest.mark.anyio
    async def test_rolls_back_on_error(self, session_maker):
        # Arrange & Act
        with pytest.raises(RuntimeError):
            async with session_scope(session_maker) as session:
                await GenericRepository(session, AuthorModel).insert(Author(name="Discarded"))
                raise RuntimeError("boom")

        # Assert
        async with session_maker() as session:
            assert await GenericRepository(session, AuthorModel).count() == 0

    @pytest.mark.anyio
    async def test_drop_models_removes_tables(self, engine):
        await drop_models(engine, Base.metadata)

        async with engine.connect() as conn:
            result = await conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            )
            assert result.scalars().all() == []
