from datetime import datetime

import pytest
from sqlalchemy import ARRAY, Column, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

from exceptions import ConfigurationError, ValidationError
from models import Department, Role, User, UserAttribute
from testing_support import RandomEntityGenerator, random_entity

OddBase = declarative_base()


class Tagged(OddBase):
    __tablename__ = 'tagged'

    id = Column(Integer, primary_key=True)
    tags = Column(ARRAY(Integer))


class Strict(OddBase):
    __tablename__ = 'strict'

    id = Column(Integer, primary_key=True)
    name = Column(String)

    def __init__(self, name):
        self.name = name


class Node(OddBase):
    __tablename__ = 'nodes'

    id = Column(Integer, primary_key=True)
    parent_id = Column(Integer, ForeignKey('nodes.id'), nullable=False)

    parent = relationship("Node", remote_side=[id])


def test_random_fills_columns(generator):
    user = generator.random(User, "id")

    assert isinstance(user.username, str) and 1 <= len(user.username) <= 20
    assert isinstance(user.age, int)
    assert isinstance(user.active, bool)
    assert isinstance(user.balance, float)
    assert isinstance(user.created_at, datetime)


def test_random_skips_excluded_and_foreign_key_fields(generator):
    user = generator.random(User, "id", "email")

    assert user.id is None
    assert user.email is None
    assert user.department_id is None
    assert user.manager_id is None


def test_random_populates_references_up_to_max_depth(generator):
    user = generator.random(User, "id")

    assert isinstance(user.department, Department)
    assert isinstance(user.department.name, str)
    # Optional self-references are not followed
    assert user.manager is None


def test_max_depth_zero_skips_optional_references():
    user = RandomEntityGenerator(seed=1, max_depth=0).random(User, "id")

    assert user.department is None


def test_required_reference_is_populated_past_max_depth():
    attribute = RandomEntityGenerator(seed=1, max_depth=0).random(UserAttribute, "id")

    assert isinstance(attribute.user, User)
    assert attribute.user_id is None
    assert attribute.user.attributes[attribute.key] is attribute


def test_required_reference_cycle_raises():
    with pytest.raises(ValidationError):
        RandomEntityGenerator(seed=1).random(Node, "id")


def test_collections_empty_by_default(generator):
    user = generator.random(User, "id")

    assert user.roles == []
    assert len(user.attributes) == 0


def test_collection_size():
    generator = RandomEntityGenerator(seed=3, collection_size=(2, 2))

    user = generator.random(User, "id")

    assert len(user.roles) == 2
    assert len(user.attributes) == 2
    assert all(attribute.user is user for attribute in user.attributes.values())
    # Nested entities are past max_depth and get no collections
    assert len(user.department.users) == 1


def test_string_length_limits_respected(generator):
    for _ in range(20):
        department = generator.random(Department, "id")
        assert 1 <= len(department.code) <= 10


def test_same_seed_same_values():
    first = RandomEntityGenerator(seed=7).random(Role, "id")
    second = RandomEntityGenerator(seed=7).random(Role, "id")

    assert (first.name, first.description) == (second.name, second.description)


def test_register_overrides_defaults(generator):
    generator.register(String, lambda sa_type: "fixed")

    department = generator.random(Department, "id")

    assert department.name == "fixed"
    assert department.code == "fixed"


def test_unmapped_class_raises(generator):
    class NotAnEntity:
        pass

    with pytest.raises(ConfigurationError):
        generator.random(NotAnEntity)
    with pytest.raises(ConfigurationError):
        generator.random("User")


def test_column_type_without_generator_raises(generator):
    with pytest.raises(ValidationError):
        generator.random(Tagged, "id")


def test_class_needing_constructor_arguments_raises(generator):
    with pytest.raises(ValidationError):
        generator.random(Strict)


def test_invalid_limits_raise():
    with pytest.raises(ValidationError):
        RandomEntityGenerator(collection_size=(3, 1))
    with pytest.raises(ValidationError):
        RandomEntityGenerator(max_depth=-1)


def test_random_entity_uses_shared_generator():
    role = random_entity(Role, "id")

    assert isinstance(role.name, str)
    assert role.id is None
