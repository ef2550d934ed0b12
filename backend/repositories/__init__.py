"""
Repository layer for data access abstraction.

This package contains repository classes that encapsulate database queries
and provide a clean interface for data access operations.
"""

from .base_repository import BaseRepository
from .user_repository import UserRepository
from .where_clause import WhereClauseSpec

__all__ = [
    "BaseRepository",
    "UserRepository",
    "WhereClauseSpec",
]
