"""
Test support: random entities and generic fixture helpers.
"""

from .entity_helper import EntityHelper
from .entity_factory import EntityFactory
from .random_utils import RandomEntityGenerator, random_entity

__all__ = [
    "EntityHelper",
    "EntityFactory",
    "RandomEntityGenerator",
    "random_entity",
]
