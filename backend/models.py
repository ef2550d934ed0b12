from sqlalchemy import Column, String, Integer, Float, Boolean, Text, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Index, Table
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import relationship
from sqlalchemy.orm.collections import attribute_keyed_dict
from datetime import datetime
import uuid
from database import Base


def generate_uuid():
    return str(uuid.uuid4())


class IdentityEqualityMixin:
    """
    Entities are equal when they share a mapped type and a persistent identity.

    Transient or pending instances (no identity yet) only equal themselves.
    """

    def _identity_key(self):
        return sa_inspect(self).identity

    def __eq__(self, other):
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        identity = self._identity_key()
        return identity is not None and identity == other._identity_key()

    def __hash__(self):
        identity = self._identity_key()
        if identity is None:
            return id(self)
        return hash((type(self), identity))


user_roles = Table(
    'user_roles',
    Base.metadata,
    Column('user_id', String, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('role_id', Integer, ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
)


class Department(IdentityEqualityMixin, Base):
    __tablename__ = 'departments'

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    code = Column(String(10))

    users = relationship("User", back_populates="department")

    __table_args__ = (
        CheckConstraint("name != ''"),
        Index('idx_departments_name', 'name'),
    )


class Role(IdentityEqualityMixin, Base):
    __tablename__ = 'roles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    description = Column(Text)

    __table_args__ = (
        UniqueConstraint('name', name='uq_role_name'),
    )


class User(IdentityEqualityMixin, Base):
    """
    A user of the directory.

    Relationships are lazy-loaded; detached users only expose the ones that
    were loaded while their session was open.
    - department: optional owning department (SET NULL when it is deleted)
    - manager: optional self-reference (SET NULL when the manager is deleted)
    - roles: many-to-many through user_roles
    - attributes: free-form key/value pairs keyed by UserAttribute.key
    """
    __tablename__ = 'users'

    id = Column(String, primary_key=True, default=generate_uuid)
    username = Column(String(50), nullable=False)
    email = Column(String(120))
    full_name = Column(String(120))
    age = Column(Integer)
    active = Column(Boolean, default=True)
    balance = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    department_id = Column(String, ForeignKey('departments.id', ondelete='SET NULL'), nullable=True)
    manager_id = Column(String, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    department = relationship("Department", back_populates="users")
    manager = relationship("User", remote_side=[id])
    roles = relationship("Role", secondary=user_roles)
    attributes = relationship(
        "UserAttribute",
        collection_class=attribute_keyed_dict("key"),
        cascade="all, delete-orphan",
        back_populates="user"
    )

    __table_args__ = (
        CheckConstraint("username != ''"),
        Index('idx_users_username', 'username'),
        Index('idx_users_department', 'department_id'),
    )


class UserAttribute(IdentityEqualityMixin, Base):
    __tablename__ = 'user_attributes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    key = Column(String(50), nullable=False)
    value = Column(Text)

    user = relationship("User", back_populates="attributes")

    __table_args__ = (
        UniqueConstraint('user_id', 'key', name='uq_user_attribute_key'),
    )
