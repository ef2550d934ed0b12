"""
User Service

Business logic for the user directory: listing with filters, creating,
updating and deleting users. Routes stay thin and delegate here.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from exceptions import DatabaseError, EntityNotFoundError, ValidationError
from models import Department, Role, User, UserAttribute
from repositories.base_repository import BaseRepository
from repositories.user_repository import UserRepository
from repositories.user_specifications import ActiveUsersSpec, UsersWithRoleSpec
from repositories.where_clause import WhereClauseSpec
from schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for user-related business logic."""

    def __init__(self, db: Session):
        """
        Initialize UserService.

        Args:
            db: Database session
        """
        self.db = db
        self.user_repo = UserRepository(db)
        self.department_repo = BaseRepository(db, Department)
        self.role_repo = BaseRepository(db, Role)

    def list_users(
        self,
        department: Optional[str] = None,
        active: Optional[bool] = None,
        role: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[User]:
        """
        List users, optionally filtered.

        Args:
            department: Department name
            active: Active flag
            role: Name of a role the user must hold
            limit: Maximum number of users
            offset: Number of users to skip

        Returns:
            Matching users ordered by id
        """
        spec = WhereClauseSpec(User, {"department.name": department} if department is not None else {})
        if active is not None:
            spec = spec & ActiveUsersSpec(active)
        if role is not None:
            spec = spec & UsersWithRoleSpec(role)
        return self.user_repo.find(spec, limit=limit, offset=offset)

    def get_user(self, user_id: str) -> User:
        """
        Raises:
            EntityNotFoundError: If there is no such user
        """
        user = self.user_repo.get_with_roles(user_id)
        if user is None:
            raise EntityNotFoundError("User", user_id)
        return user

    def create_user(self, data: UserCreate) -> User:
        """
        Create a user with its department, manager, roles and attributes.

        Raises:
            ValidationError: If a referenced department, manager or role does not exist
            DatabaseError: If the user violates a database constraint
        """
        # Look references up before the user exists; their queries autoflush
        department = self._department(data.department_id)
        manager = self._manager(data.manager_id)
        roles = self._roles(data.role_ids)

        values = data.model_dump(exclude={"department_id", "manager_id", "role_ids", "attributes"})
        user = User(**values)
        user.department = department
        user.manager = manager
        user.roles = roles
        for key, value in data.attributes.items():
            user.attributes[key] = UserAttribute(key=key, value=value)

        with self._unit_of_work("create_user"):
            self.user_repo.create(user)
        logger.info(f"Created user {user.id} ({user.username})")
        return user

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        """
        Apply the fields present in data to a user.

        Raises:
            EntityNotFoundError: If there is no such user
            ValidationError: If a referenced entity does not exist or the user
                would become its own manager
        """
        user = self.get_user(user_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)

        if "department_id" in changes:
            user.department = self._department(changes.pop("department_id"))
        if "manager_id" in changes:
            manager_id = changes.pop("manager_id")
            if manager_id == user.id:
                raise ValidationError("A user cannot manage themselves", invalid_fields={"manager_id": manager_id})
            user.manager = self._manager(manager_id)
        if "role_ids" in changes:
            user.roles = self._roles(changes.pop("role_ids") or [])
        for name, value in changes.items():
            setattr(user, name, value)

        with self._unit_of_work("update_user"):
            self.user_repo.update(user)
        return user

    def delete_user(self, user_id: str) -> None:
        """
        Raises:
            EntityNotFoundError: If there is no such user
        """
        with self._unit_of_work("delete_user"):
            deleted = self.user_repo.delete_by_id(user_id)
        if not deleted:
            raise EntityNotFoundError("User", user_id)
        logger.info(f"Deleted user {user_id}")

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DatabaseError(operation, str(e.orig)) from e

    def _department(self, department_id: Optional[str]) -> Optional[Department]:
        if department_id is None:
            return None
        department = self.department_repo.get_by_id(department_id)
        if department is None:
            raise ValidationError(
                f"Department {department_id} does not exist",
                invalid_fields={"department_id": department_id}
            )
        return department

    def _manager(self, manager_id: Optional[str]) -> Optional[User]:
        if manager_id is None:
            return None
        manager = self.user_repo.find_by_id(manager_id)
        if manager is None:
            raise ValidationError(
                f"Manager {manager_id} does not exist",
                invalid_fields={"manager_id": manager_id}
            )
        return manager

    def _roles(self, role_ids: List[int]) -> List[Role]:
        if not role_ids:
            return []
        roles = self.role_repo.find_where({"id": list(role_ids)})
        missing = set(role_ids) - {role.id for role in roles}
        if missing:
            raise ValidationError(
                f"Unknown role ids: {sorted(missing)}",
                invalid_fields={"role_ids": sorted(missing)}
            )
        return roles
