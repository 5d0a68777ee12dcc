"""
Exception hierarchy for repository operations.

Callers are expected to branch on NotFoundError separately from
PersistenceError (e.g. delete-if-exists or upsert patterns).
"""

from typing import Any, Optional


class RepositoryError(Exception):
    """Base exception for alchemy_generics"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        model: Optional[str] = None
    ):
        super().__init__(message)
        self.operation = operation
        self.model = model


class NotFoundError(RepositoryError, LookupError):
    """Raised when no row matches the requested identifier"""

    def __init__(
        self,
        model: str,
        identifier: Any,
        operation: Optional[str] = None
    ):
        super().__init__(
            f"{model} with id {identifier!r} not found",
            operation=operation,
            model=model
        )
        self.identifier = identifier


class PersistenceError(RepositoryError):
    """
    Raised when the database driver fails during an operation.

    The driver exception is kept unmodified on `original` and is also
    chained as `__cause__`.
    """

    def __init__(self, operation: str, model: str, original: BaseException):
        super().__init__(
            f"{operation} on {model} failed: {original}",
            operation=operation,
            model=model
        )
        self.original = original


class MappingError(RepositoryError, TypeError):
    """Raised when model/entity conversion does not yield the expected type"""
    pass


class SpecificationError(RepositoryError, ValueError):
    """Raised when a specification cannot be turned into a query condition"""
    pass
