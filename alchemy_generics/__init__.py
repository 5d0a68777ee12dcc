"""
Generic async repositories for SQLAlchemy models.

Maps persisted rows to domain entities, runs specification-filtered
queries and optionally eager-loads many-to-many associations.
"""

from alchemy_generics.exceptions import (
    MappingError,
    NotFoundError,
    PersistenceError,
    RepositoryError,
    SpecificationError,
)
from alchemy_generics.models.mapper import GenericModel
from alchemy_generics.repositories import AssociationResolver, GenericRepository
from alchemy_generics.specifications import Specification

__version__ = "0.1.0"

__all__ = [
    "GenericRepository",
    "AssociationResolver",
    "GenericModel",
    "Specification",
    "RepositoryError",
    "NotFoundError",
    "PersistenceError",
    "MappingError",
    "SpecificationError",
]
