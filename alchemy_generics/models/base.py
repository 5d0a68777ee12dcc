"""
Base models and mixins for SQLAlchemy ORM.

Provides a declarative base plus mixins for identifiers and timestamps.
Repositories work with any mapped class; these are conveniences for
models that want backend-managed fields.
"""

from typing import Any
import uuid

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for library-provided and test models
Base = declarative_base()


class IntegerIDMixin:
    """
    Mixin that adds an autoincrement integer primary key.

    Attributes:
        id: Integer primary key assigned by the database on insert
    """

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Autoincrement integer primary key"
    )


class UUIDMixin:
    """
    Mixin that adds a UUID primary key column.

    UUIDs are stored as strings so SQLite and PostgreSQL behave the same.

    Attributes:
        id: UUID primary key as TEXT
    """

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="UUID primary key"
    )


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Both are populated by the database; repositories refresh them
    after insert and update.
    """

    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        doc="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        doc="Timestamp when record was last updated"
    )


class ModelMixin:
    """
    Mixin providing common model utilities.
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Note:
            Only includes columns, not relationships.
        """
        return {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        attrs = ", ".join(
            f"{key}={repr(value)}"
            for key, value in self.to_dict().items()
            if key in ["id", "name", "title"]
        )
        return f"{self.__class__.__name__}({attrs})"
