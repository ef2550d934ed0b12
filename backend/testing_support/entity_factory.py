"""
Domain fixture builders on top of EntityHelper.

Each builder saves a random entity and then overrides the fields a test
cares about, so tests only spell out what matters to them.
"""

from typing import Any, Dict, Iterable, Optional

from exceptions import ValidationError
from models import Department, Role, User, UserAttribute
from .entity_helper import EntityHelper

# Marker for "keep the randomly generated value"
RANDOM = object()


def _apply(overrides: Dict[str, Any]):
    def mutator(entity):
        for name, value in overrides.items():
            if not hasattr(type(entity), name):
                raise ValidationError(f"{type(entity).__name__} has no attribute '{name}'")
            setattr(entity, name, value)
    return mutator


class EntityFactory:
    """Creates saved departments, roles and users for tests."""

    def __init__(self, entity_helper: EntityHelper):
        self.entity_helper = entity_helper

    def create_department(self, **overrides: Any) -> Department:
        return self.entity_helper.create(Department, _apply(overrides))

    def create_role(self, **overrides: Any) -> Role:
        return self.entity_helper.create(Role, _apply(overrides))

    def create_user(
        self,
        department: Any = RANDOM,
        roles: Iterable[Role] = (),
        attributes: Optional[Dict[str, str]] = None,
        **overrides: Any
    ) -> User:
        """
        Save a random user.

        Args:
            department: Department to assign; None for no department, RANDOM
                (the default) for a freshly generated one
            roles: Roles to grant
            attributes: Key/value attributes to attach
            **overrides: Column values to set, e.g. username="alice"

        Returns:
            The saved user
        """
        apply_overrides = _apply(overrides)

        def mutator(user: User):
            if department is not RANDOM:
                user.department = department
            user.roles = list(roles)
            for key, value in (attributes or {}).items():
                user.attributes[key] = UserAttribute(key=key, value=value)
            apply_overrides(user)

        return self.entity_helper.create(User, mutator)
