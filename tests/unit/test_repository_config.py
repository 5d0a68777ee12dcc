"""
Unit tests for GenericRepository construction and preload configuration.

No database access happens here: construction performs no I/O.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from alchemy_generics.exceptions import MappingError
from alchemy_generics.repositories.generic import GenericRepository
from sample_models import Author, BookModel, GenreModel


@pytest.fixture
def session():
    return MagicMock(spec=AsyncSession)


class TestConstruction:

    def test_no_io_on_construction(self, session):
        GenericRepository(session, BookModel)

        assert session.method_calls == []

    def test_rejects_model_without_mapping_contract(self, session):
        with pytest.raises(MappingError, match="GenreModel must implement"):
            GenericRepository(session, GenreModel)

    def test_preload_default_from_settings(self, session, monkeypatch):
        monkeypatch.setenv("ALCHEMY_GENERICS_PRELOAD_ASSOCIATIONS", "true")

        repo = GenericRepository(session, BookModel)

        assert repo.preload_associations is True

    def test_explicit_preload_overrides_settings(self, session, monkeypatch):
        monkeypatch.setenv("ALCHEMY_GENERICS_PRELOAD_ASSOCIATIONS", "true")

        repo = GenericRepository(session, BookModel, preload_associations=False)

        assert repo.preload_associations is False

    def test_each_repository_owns_its_configuration(self, session):
        first = GenericRepository(session, BookModel).enable_preload_associations()
        second = GenericRepository(session, BookModel)

        assert first.preload_associations is True
        assert second.preload_associations is False


class TestPreloadToggles:

    def test_enable_returns_self(self, session):
        repo = GenericRepository(session, BookModel)

        assert repo.enable_preload_associations() is repo
        assert repo.preload_associations is True

    def test_disable_clears_flag(self, session):
        """
        disable_preload_associations() turns preloading off.
        """
        repo = GenericRepository(session, BookModel).enable_preload_associations()

        result = repo.disable_preload_associations()

        assert result is repo
        assert repo.preload_associations is False

    @pytest.mark.parametrize("enabled", [True, False])
    def test_set_dispatches(self, session, enabled):
        repo = GenericRepository(session, BookModel, preload_associations=not enabled)

        assert repo.set_preload_associations(enabled) is repo
        assert repo.preload_associations is enabled

    def test_associations_survive_toggling(self, session):
        repo = GenericRepository(session, BookModel).enable_preload_associations()
        before = repo.associations

        repo.disable_preload_associations().enable_preload_associations()

        assert repo.associations == before
        assert sorted(before) == ["genres", "tags"]


class TestMappingFailure:

    @pytest.mark.anyio
    async def test_from_entity_wrong_type(self, session):
        """
        A model whose from_entity() builds the wrong class is a MappingError.
        """
        class BrokenModel:
            def to_entity(self):
                return Author()

            @classmethod
            def from_entity(cls, entity):
                return object()

        repo = GenericRepository(session, BrokenModel)

        with pytest.raises(MappingError, match="from_entity\\(\\) returned object"):
            await repo.insert(Author(name="x"))

        session.add.assert_not_called()
