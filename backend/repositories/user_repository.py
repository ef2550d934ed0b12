"""
User repository for user-specific data access operations.
"""

from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from models import User as UserModel
from .base_repository import BaseRepository
from .where_clause import WhereClauseSpec


class UserRepository(BaseRepository[UserModel]):
    """Repository for User model operations."""

    def __init__(self, db: Session):
        super().__init__(db, UserModel)

    def find_by_id(self, user_id: str) -> Optional[UserModel]:
        """
        Look up a user by primary key.

        Returns:
            The user, or None if there is no such user
        """
        return self.get_by_id(user_id)

    def get_by_username(self, username: str) -> Optional[UserModel]:
        return self.db.query(self.model).filter(
            self.model.username == username
        ).first()

    def get_by_department_name(self, department_name: str) -> List[UserModel]:
        """
        Get all users of the department(s) with the given name.

        Args:
            department_name: Exact department name

        Returns:
            List of users, ordered by id
        """
        return self.find(WhereClauseSpec(self.model, {"department.name": department_name}))

    def get_with_roles(self, user_id: str) -> Optional[UserModel]:
        """
        Get a user with roles, department and attributes eagerly loaded.

        Args:
            user_id: User UUID

        Returns:
            User instance, or None if not found
        """
        return self.db.query(self.model).options(
            selectinload(self.model.roles),
            selectinload(self.model.attributes),
            selectinload(self.model.department)
        ).filter(self.model.id == user_id).first()
