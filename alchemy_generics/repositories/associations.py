"""
Lazy discovery of many-to-many relationships on a mapped model.
"""

import threading
from typing import Any, Callable, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable, SQLAlchemyError
from sqlalchemy.orm import RelationshipDirection

from alchemy_generics.core.logging_config import get_logger, log_with_context


logger = get_logger(__name__)


class AssociationResolver:
    """
    Introspects and caches the many-to-many relationship names of a model.

    Resolution happens at most once per resolver, guarded by a lock so
    concurrent first use from several threads still introspects a single
    time. Introspection failures are not raised: they are logged and the
    resolver settles on an empty list, so queries run without preloading
    rather than failing.

    Attributes:
        model: Mapped model class (an instance is accepted and its class used)
        inspector: Callable returning a Mapper for the model; defaults to
            sqlalchemy.inspect and is injectable for instrumentation
    """

    def __init__(
        self,
        model: Any,
        inspector: Optional[Callable[[Any], Any]] = None
    ):
        self.model = model if isinstance(model, type) else type(model)
        self.inspector = inspector or inspect
        self._lock = threading.Lock()
        self._resolved = False
        self._associations: Tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self) -> Tuple[str, ...]:
        """
        Return the cached association names, introspecting on first call.

        Returns:
            Tuple of relationship names in declaration order
        """
        if self._resolved:
            return self._associations

        with self._lock:
            if not self._resolved:
                self._associations = self._introspect()
                self._resolved = True

        return self._associations

    def _introspect(self) -> Tuple[str, ...]:
        try:
            mapper = self.inspector(self.model)
            names = [
                relationship.key
                for relationship in mapper.relationships
                if relationship.direction is RelationshipDirection.MANYTOMANY
            ]
        except (NoInspectionAvailable, SQLAlchemyError, AttributeError) as e:
            log_with_context(
                logger,
                "warning",
                f"Association introspection failed, preloading disabled for "
                f"{self.model.__name__}: {e}",
                model=self.model.__name__,
                operation="resolve_associations",
            )
            return ()

        # dict.fromkeys keeps declaration order while dropping duplicates
        associations = tuple(dict.fromkeys(names))
        log_with_context(
            logger,
            "debug",
            "Resolved associations",
            model=self.model.__name__,
            operation="resolve_associations",
            associations=list(associations),
        )
        return associations
