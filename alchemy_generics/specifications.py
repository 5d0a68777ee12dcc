"""
Composable query specifications.

A specification produces a condition and the values bound to it. The
condition is either a SQL fragment using `?` positional placeholders or a
SQLAlchemy boolean clause. Repositories AND together every specification
passed to a query, left to right.

Example:
    >>> spec = Equal("author_id", 3) & GreaterThan("pages", 100)
    >>> spec.get_query()
    '(author_id = ? AND pages > ?)'
    >>> spec.get_values()
    [3, 100]
"""

import itertools
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, List, Sequence, Tuple, Union

from sqlalchemy import and_, not_, or_, text
from sqlalchemy.sql.elements import ColumnElement

from alchemy_generics.exceptions import SpecificationError


Condition = Union[str, ColumnElement]

_FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Unique bind parameter prefixes across every clause built by this process
_bind_ids = itertools.count()


class Specification(ABC):
    """
    Base class for query predicates.

    Subclasses must be immutable and stateless so one instance can be
    reused across calls and repositories.
    """

    @abstractmethod
    def get_query(self) -> Condition:
        """Return the condition fragment or SQLAlchemy clause."""

    @abstractmethod
    def get_values(self) -> Sequence[Any]:
        """Return values for the `?` placeholders, in order."""

    def __and__(self, other: "Specification") -> "Specification":
        return And(self, other)

    def __or__(self, other: "Specification") -> "Specification":
        return Or(self, other)

    def __invert__(self) -> "Specification":
        return Not(self)


def _validate_field(field: str) -> None:
    if not isinstance(field, str) or not _FIELD_PATTERN.match(field):
        raise SpecificationError(f"Invalid field name: {field!r}")


def to_clause(specification: Specification) -> ColumnElement:
    """
    Turn a specification into a SQLAlchemy clause usable in `.where()`.

    String conditions become `text()` clauses whose `?` placeholders are
    rewritten to uniquely named bind parameters.

    Note:
        Every `?` counts as a placeholder, including one inside a quoted
        literal or a PostgreSQL JSON operator (`?`, `?|`, `?&`). Pass such
        values as bound parameters or use an Expression specification.

    Raises:
        SpecificationError: If the placeholder count does not match the
            number of values, or a clause condition carries values
    """
    query = specification.get_query()
    values = list(specification.get_values())

    if not isinstance(query, str):
        if values:
            raise SpecificationError(
                f"{type(specification).__name__} returned a clause and bound values; "
                "clauses must carry their own parameters"
            )
        return query

    parts = query.split("?")
    if len(parts) - 1 != len(values):
        raise SpecificationError(
            f"{type(specification).__name__} has {len(parts) - 1} placeholders "
            f"but {len(values)} values"
        )

    prefix = f"spec_{next(_bind_ids)}"
    params = {}
    # Literal colons must not be read as named binds by text()
    sql = parts[0].replace(":", "\\:")
    for index, (value, part) in enumerate(zip(values, parts[1:])):
        name = f"{prefix}_{index}"
        params[name] = value
        sql += f":{name}" + part.replace(":", "\\:")

    return text(sql).bindparams(**params)


@dataclass(frozen=True)
class FieldComparison(Specification):
    """Compares a column against a single value."""

    field: str
    value: Any
    operator: ClassVar[str] = "="

    def __post_init__(self):
        _validate_field(self.field)

    def get_query(self) -> str:
        return f"{self.field} {self.operator} ?"

    def get_values(self) -> List[Any]:
        return [self.value]


class Equal(FieldComparison):
    operator = "="


class NotEqual(FieldComparison):
    operator = "<>"


class GreaterThan(FieldComparison):
    operator = ">"


class GreaterOrEqual(FieldComparison):
    operator = ">="


class LessThan(FieldComparison):
    operator = "<"


class LessOrEqual(FieldComparison):
    operator = "<="


class Like(FieldComparison):
    operator = "LIKE"


@dataclass(frozen=True)
class IsNull(Specification):
    field: str

    def __post_init__(self):
        _validate_field(self.field)

    def get_query(self) -> str:
        return f"{self.field} IS NULL"

    def get_values(self) -> List[Any]:
        return []


class IsNotNull(IsNull):
    def get_query(self) -> str:
        return f"{self.field} IS NOT NULL"


@dataclass(frozen=True, init=False)
class In(Specification):
    """
    Membership test. An empty collection matches no rows.
    """

    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values: Sequence[Any]):
        _validate_field(field)
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))

    def get_query(self) -> str:
        if not self.values:
            return "1 = 0"
        placeholders = ", ".join("?" for _ in self.values)
        return f"{self.field} IN ({placeholders})"

    def get_values(self) -> List[Any]:
        return list(self.values)


@dataclass(frozen=True, init=False)
class Raw(Specification):
    """
    Caller-written condition with positional `?` placeholders.

    Note:
        A literal `?` inside a quoted string is counted as a placeholder;
        pass such values as bound parameters instead.
    """

    query: str
    values: Tuple[Any, ...]

    def __init__(self, query: str, *values: Any):
        if not query or not query.strip():
            raise SpecificationError("Raw specification requires a condition")
        object.__setattr__(self, "query", query)
        object.__setattr__(self, "values", values)

    def get_query(self) -> str:
        return self.query

    def get_values(self) -> List[Any]:
        return list(self.values)


@dataclass(frozen=True, eq=False)
class Expression(Specification):
    """
    Wraps a SQLAlchemy boolean clause, e.g. `Expression(BookModel.pages > 100)`.
    """

    clause: ColumnElement

    def get_query(self) -> ColumnElement:
        return self.clause

    def get_values(self) -> List[Any]:
        return []


@dataclass(frozen=True, init=False)
class _Combinator(Specification):
    specifications: Tuple[Specification, ...]
    joiner: ClassVar[str] = "AND"

    def __init__(self, *specifications: Specification):
        if not specifications:
            raise SpecificationError(
                f"{type(self).__name__} requires at least one specification"
            )
        object.__setattr__(self, "specifications", specifications)

    def _all_textual(self) -> bool:
        return all(isinstance(s.get_query(), str) for s in self.specifications)

    def get_query(self) -> Condition:
        if self._all_textual():
            joined = f" {self.joiner} ".join(s.get_query() for s in self.specifications)
            return f"({joined})"
        # Mixed text and clauses: bind each child now
        clauses = [to_clause(s) for s in self.specifications]
        return and_(*clauses) if self.joiner == "AND" else or_(*clauses)

    def get_values(self) -> List[Any]:
        if not self._all_textual():
            return []
        values: List[Any] = []
        for specification in self.specifications:
            values.extend(specification.get_values())
        return values


class And(_Combinator):
    joiner = "AND"


class Or(_Combinator):
    joiner = "OR"


@dataclass(frozen=True)
class Not(Specification):
    specification: Specification

    def get_query(self) -> Condition:
        query = self.specification.get_query()
        if isinstance(query, str):
            return f"NOT ({query})"
        return not_(to_clause(self.specification))

    def get_values(self) -> List[Any]:
        if isinstance(self.specification.get_query(), str):
            return list(self.specification.get_values())
        return []
