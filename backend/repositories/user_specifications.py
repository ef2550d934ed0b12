"""
User-specific Specifications

Concrete specifications for querying users.
"""

from typing import Optional

from models import User, Role
from .specifications import Specification


class ActiveUsersSpec(Specification[User]):
    """Specification for users by their active flag."""

    def __init__(self, active: bool = True):
        self.active = active

    def is_satisfied_by(self, user: User) -> bool:
        return bool(user.active) == self.active

    def to_sql_filter(self):
        return User.active == self.active


class UsersWithRoleSpec(Specification[User]):
    """
    Specification for users holding a role with the given name.

    Uses an EXISTS sub-select, so users holding several roles are not
    repeated in the results.
    """

    def __init__(self, role_name: str):
        self.role_name = role_name

    def is_satisfied_by(self, user: User) -> bool:
        return any(role.name == self.role_name for role in user.roles)

    def to_sql_filter(self):
        return User.roles.any(Role.name == self.role_name)


class UsersByUsernamePatternSpec(Specification[User]):
    """Specification for usernames matching a case-insensitive substring."""

    def __init__(self, fragment: str):
        self.fragment = fragment

    def is_satisfied_by(self, user: User) -> bool:
        return self.fragment.lower() in (user.username or '').lower()

    def to_sql_filter(self):
        return User.username.ilike(f"%{self.fragment}%")


class UsersByAgeRangeSpec(Specification[User]):
    """Specification for users within an age range (bounds inclusive)."""

    def __init__(self, min_age: Optional[int] = None, max_age: Optional[int] = None):
        self.min_age = min_age
        self.max_age = max_age

    def is_satisfied_by(self, user: User) -> bool:
        if user.age is None:
            return False
        if self.min_age is not None and user.age < self.min_age:
            return False
        if self.max_age is not None and user.age > self.max_age:
            return False
        return True

    def to_sql_filter(self):
        from sqlalchemy import and_
        filters = [User.age.isnot(None)]
        if self.min_age is not None:
            filters.append(User.age >= self.min_age)
        if self.max_age is not None:
            filters.append(User.age <= self.max_age)
        return and_(*filters)
