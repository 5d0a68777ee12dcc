"""
Model/entity mapping contract.

Each mapped model class converts itself to a domain entity and builds
itself from one. This is the only thing a model must implement to be
served by GenericRepository.
"""

import dataclasses
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from alchemy_generics.exceptions import MappingError


E = TypeVar("E")


@runtime_checkable
class GenericModel(Protocol[E]):
    """
    Protocol implemented by mapped models.

    Relationship collections must round-trip safely. to_entity() maps a
    collection that was never loaded to None (not an empty list), and
    from_entity() leaves the relationship unset when the entity holds
    None. update() merges every attribute that is set, so an empty list
    built from an unloaded collection would delete the stored links.

    Example:
        class BookModel(Base, IntegerIDMixin):
            __tablename__ = "books"
            title = Column(String, nullable=False)
            tags = relationship("TagModel", secondary=book_tags)

            def to_entity(self) -> Book:
                unloaded = inspect(self).unloaded
                tags = None if "tags" in unloaded else [t.to_entity() for t in self.tags]
                return Book(id=self.id, title=self.title, tags=tags)

            @classmethod
            def from_entity(cls, entity: Book) -> "BookModel":
                model = cls(id=entity.id, title=entity.title)
                if entity.tags is not None:
                    model.tags = [TagModel.from_entity(t) for t in entity.tags]
                return model
    """

    def to_entity(self) -> E:
        """Convert this row into its domain entity."""
        ...

    @classmethod
    def from_entity(cls, entity: E) -> "GenericModel[E]":
        """Build a (transient) row from a domain entity."""
        ...


def is_generic_model(model: type) -> bool:
    """Return True if `model` exposes both halves of the mapping contract."""
    return (
        callable(getattr(model, "to_entity", None))
        and callable(getattr(model, "from_entity", None))
    )


def assign_entity(target: Any, source: Any) -> Any:
    """
    Overwrite the state of `target` with the state of `source`.

    Used to write a freshly mapped entity back into the object the caller
    passed in, so generated fields (ids, timestamps) become visible to it.
    Supports dataclasses, pydantic models, dicts and plain objects.

    Args:
        target: Entity object owned by the caller
        source: Entity produced by to_entity()

    Returns:
        `target`, mutated

    Raises:
        MappingError: If the types differ or target is immutable
    """
    if type(target) is not type(source):
        raise MappingError(
            f"to_entity() returned {type(source).__name__}, "
            f"expected {type(target).__name__}"
        )

    try:
        if isinstance(target, dict):
            target.clear()
            target.update(source)
        elif dataclasses.is_dataclass(target):
            for field in dataclasses.fields(target):
                setattr(target, field.name, getattr(source, field.name))
        elif isinstance(target, BaseModel):
            for name in type(target).model_fields:
                setattr(target, name, getattr(source, name))
        else:
            vars(target).update(vars(source))
    except (AttributeError, TypeError, ValueError) as e:
        raise MappingError(
            f"Cannot write mapped state back into {type(target).__name__}: {e}"
        ) from e

    return target
