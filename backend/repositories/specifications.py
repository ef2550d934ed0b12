"""
Specification Pattern Implementation

Encapsulates query criteria in reusable, composable objects that can be
rendered as SQLAlchemy filters or evaluated against loaded entities.

A specification may need joins (for criteria on related entities). Those are
reported by join_paths() and added to a statement by apply(), so composed
specifications carry the joins of both sides.
"""

from abc import ABC, abstractmethod
from typing import Generic, List, TypeVar

from sqlalchemy import Select, and_, or_, not_


T = TypeVar('T')


class Specification(ABC, Generic[T]):
    """
    Abstract base class for specifications.

    A specification encapsulates a single business rule or query criterion.
    """

    @abstractmethod
    def is_satisfied_by(self, candidate: T) -> bool:
        """
        Check if a candidate object satisfies this specification.

        Args:
            candidate: Object to check

        Returns:
            True if candidate satisfies specification
        """
        pass

    @abstractmethod
    def to_sql_filter(self):
        """
        Convert specification to SQLAlchemy filter expression.

        Returns:
            SQLAlchemy filter expression
        """
        pass

    def join_paths(self) -> List:
        """Relationship join targets this specification's filter refers to."""
        return []

    def apply(self, stmt: Select) -> Select:
        """
        Add this specification's joins and filter to a select statement.

        Args:
            stmt: Statement selecting from the specification's root entity

        Returns:
            The joined and filtered statement
        """
        for target in self.join_paths():
            stmt = stmt.join(target)
        return stmt.where(self.to_sql_filter())

    def __and__(self, other: "Specification[T]") -> "AndSpecification[T]":
        """Combine specifications with AND."""
        return AndSpecification(self, other)

    def __or__(self, other: "Specification[T]") -> "OrSpecification[T]":
        """Combine specifications with OR."""
        return OrSpecification(self, other)

    def __invert__(self) -> "NotSpecification[T]":
        """Negate specification with NOT."""
        return NotSpecification(self)


class AndSpecification(Specification[T]):
    """Specification that combines two specifications with AND."""

    def __init__(self, left: Specification[T], right: Specification[T]):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: T) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)

    def to_sql_filter(self):
        return and_(self.left.to_sql_filter(), self.right.to_sql_filter())

    def join_paths(self) -> List:
        return self.left.join_paths() + self.right.join_paths()


class OrSpecification(Specification[T]):
    """
    Specification that combines two specifications with OR.

    Joins are inner joins, so a side whose joins find no row also removes the
    candidate from the other side's results.
    """

    def __init__(self, left: Specification[T], right: Specification[T]):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: T) -> bool:
        return self.left.is_satisfied_by(candidate) or self.right.is_satisfied_by(candidate)

    def to_sql_filter(self):
        return or_(self.left.to_sql_filter(), self.right.to_sql_filter())

    def join_paths(self) -> List:
        return self.left.join_paths() + self.right.join_paths()


class NotSpecification(Specification[T]):
    """Specification that negates another specification."""

    def __init__(self, spec: Specification[T]):
        self.spec = spec

    def is_satisfied_by(self, candidate: T) -> bool:
        return not self.spec.is_satisfied_by(candidate)

    def to_sql_filter(self):
        return not_(self.spec.to_sql_filter())

    def join_paths(self) -> List:
        return self.spec.join_paths()
