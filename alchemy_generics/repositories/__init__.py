"""
Repository layer for data access.

Provides a generic repository that isolates database access from
business logic for any model/entity pairing.
"""

from alchemy_generics.repositories.associations import AssociationResolver
from alchemy_generics.repositories.generic import GenericRepository

__all__ = [
    "AssociationResolver",
    "GenericRepository",
]
