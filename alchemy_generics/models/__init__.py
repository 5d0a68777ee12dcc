"""
Model base classes and the model/entity mapping contract.
"""

from alchemy_generics.models.base import (
    Base,
    IntegerIDMixin,
    ModelMixin,
    TimestampMixin,
    UUIDMixin,
)
from alchemy_generics.models.mapper import GenericModel, assign_entity, is_generic_model

__all__ = [
    # Base classes
    "Base",
    "IntegerIDMixin",
    "UUIDMixin",
    "TimestampMixin",
    "ModelMixin",
    # Mapping contract
    "GenericModel",
    "assign_entity",
    "is_generic_model",
]
