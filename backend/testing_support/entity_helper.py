"""
Entity Helper

Generic create/find/remove operations for any mapped entity, used by tests
to set up and tear down fixtures.

Every call runs in its own transaction: a session is opened, committed on
success, rolled back on failure and closed. Entities handed back are
detached, so lazy relationships a test wants to read afterwards must be
named when loading them:

    helper = EntityHelper(SessionLocal)
    user = helper.create(User, lambda u: setattr(u, "active", True))
    loaded = helper.find(user, "roles", "attributes")
    helper.remove_all(User, {"department.name": ["Sales", None]})

A helper bound to an existing session (EntityHelper(session=db)) joins that
session's transaction instead and only flushes, leaving commit or rollback
to its owner.
"""

from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from sqlalchemy import delete, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable, SQLAlchemyError
from sqlalchemy.orm import Mapper, Session, aliased, sessionmaker

from exceptions import ConfigurationError, DatabaseError, ValidationError
from repositories.where_clause import WhereClauseSpec, split_path
from utils.logging_utils import log_operation
from .random_utils import RandomEntityGenerator, get_default_generator

T = TypeVar('T')


class EntityHelper:
    """
    Test-data access facade over a SQLAlchemy session.

    Args:
        session_factory: Factory for per-call sessions
        session: Existing session to join instead (exactly one of the two)
        generator: Random entity generator (defaults to the shared one)
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        session: Optional[Session] = None,
        generator: Optional[RandomEntityGenerator] = None
    ):
        if (session_factory is None) == (session is None):
            raise ConfigurationError("EntityHelper needs either a session factory or a session")
        self.session_factory = session_factory
        self.session = session
        self.generator = generator or get_default_generator()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        if self.session is not None:
            try:
                yield self.session
                self.session.flush()
            except SQLAlchemyError as e:
                raise DatabaseError(operation, str(e)) from e
            return

        session = self.session_factory(expire_on_commit=False)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(operation, str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @log_operation("entity_helper.create")
    def create(self, model: type, mutator: Optional[Callable[[Any], None]] = None):
        """
        Persist a random instance of model.

        The identifying attribute is left to the database or its column default.

        Args:
            model: Mapped class
            mutator: Called with the random instance before it is saved

        Returns:
            The saved instance
        """
        entity = self.generator.random(model, self.get_id_field_name(model))
        if mutator is not None:
            mutator(entity)
        with self._transaction("create") as session:
            session.add(entity)
        return entity

    def find(self, entity: T, *lazy_fields: str) -> Optional[T]:
        """
        Reload an entity by its identifier.

        Args:
            entity: Previously saved instance
            *lazy_fields: Lazy attributes to load before the session closes

        Returns:
            Fresh instance, or None if it no longer exists
        """
        return self.find_by_id(type(entity), self.get_id(entity), *lazy_fields)

    @log_operation("entity_helper.find")
    def find_by_id(self, model: type, entity_id: Any, *lazy_fields: str):
        with self._transaction("find") as session:
            entity = session.get(model, entity_id)
            self._initialize_lazy_fields(entity, lazy_fields)
        return entity

    @log_operation("entity_helper.find_all")
    def find_all(self, model: type, where_params: Optional[Dict[str, Any]] = None, *lazy_fields: str) -> List:
        """
        Load every entity matching a where-clause mapping.

        Args:
            model: Mapped class
            where_params: Dotted attribute path -> value or values; None or
                empty matches everything
            *lazy_fields: Lazy attributes to load on each result

        Returns:
            Matching entities, each at most once
        """
        spec = WhereClauseSpec(model, where_params)
        with self._transaction("find_all") as session:
            entities = list(session.scalars(spec.apply(select(model))).unique().all())
            for entity in entities:
                self._initialize_lazy_fields(entity, lazy_fields)
        return entities

    @log_operation("entity_helper.remove")
    def remove(self, entity) -> None:
        with self._transaction("remove") as session:
            session.delete(session.merge(entity))

    @log_operation("entity_helper.remove_all")
    def remove_all(self, model: type, where_params: Optional[Dict[str, Any]] = None) -> int:
        """
        Delete every entity matching a where-clause mapping.

        DELETE statements cannot join, so matching identifiers are selected
        from an aliased root (with whatever joins the paths need) and the
        delete is restricted to that sub-select. A helper bound to a session
        expires that session afterwards, so lookups through it no longer
        see the deleted rows.

        Args:
            model: Mapped class
            where_params: Dotted attribute path -> value or values; None or
                empty deletes everything

        Returns:
            Number of deleted rows
        """
        id_attribute = getattr(model, self.get_id_field_name(model))
        root = aliased(model)
        spec = WhereClauseSpec(model, where_params, root=root)
        matching_ids = spec.apply(select(getattr(root, id_attribute.key)))

        stmt = (
            delete(model)
            .where(id_attribute.in_(matching_ids.scalar_subquery()))
            .execution_options(synchronize_session=False)
        )
        with self._transaction("remove_all") as session:
            deleted = session.execute(stmt).rowcount
            if self.session is not None:
                # The caller's identity map still holds the deleted rows and
                # whatever ON DELETE rules changed; reload on next access
                session.expire_all()
        return deleted

    @log_operation("entity_helper.merge")
    def merge(self, entity: T) -> T:
        with self._transaction("merge") as session:
            merged = session.merge(entity)
        return merged

    def get_id(self, entity) -> Any:
        """Identifier value of an entity (None while unsaved)."""
        mapper = self._mapper(type(entity))
        return getattr(entity, self.get_id_field_name(mapper.class_))

    def get_id_field_name(self, model: type) -> str:
        """
        Name of the identifying attribute of model.

        Raises:
            ConfigurationError: If model is unmapped or its primary key is not
                exactly one column
        """
        mapper = self._mapper(model)
        if len(mapper.primary_key) != 1:
            raise ConfigurationError(f"Cannot get id field name for {model!r}")
        return mapper.get_property_by_column(mapper.primary_key[0]).key

    @staticmethod
    def _mapper(model) -> Mapper:
        try:
            mapper = sa_inspect(model)
        except NoInspectionAvailable:
            raise ConfigurationError(f"Cannot get id field name for {model!r}: not a mapped class")
        if not isinstance(mapper, Mapper):
            raise ConfigurationError(f"Cannot get id field name for {model!r}: not a mapped class")
        return mapper

    def _initialize_lazy_fields(self, entity, lazy_fields) -> None:
        if entity is None:
            return
        for field in lazy_fields:
            for value in self._field_values(entity, split_path(field), field):
                initialize(value)

    @staticmethod
    def _field_values(entity, segments: List[str], field: str) -> List[Any]:
        """Values at the end of a dotted path; collections on the way fan out."""
        current = [entity]
        for index, name in enumerate(segments):
            following = []
            for item in current:
                value = _read_field(item, name, field)
                if index == len(segments) - 1:
                    following.append(value)
                elif value is None:
                    continue
                elif isinstance(value, Mapping):
                    following.extend(value.values())
                elif _is_collection(value):
                    following.extend(value)
                else:
                    following.append(value)
            current = following
        return current


def _is_collection(value) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray))


def _read_field(entity, name: str, field: str):
    try:
        return getattr(entity, name)
    except AttributeError as e:
        raise ValidationError(
            f"Cannot read '{name}' of {type(entity).__name__} (lazy field {field!r})",
            invalid_fields={field: str(e)}
        ) from e


def initialize(lazy_field) -> None:
    """
    Force a loaded relationship value to materialize.

    None is left alone, mappings are sized and other collections iterated.

    Raises:
        ValidationError: For any other value, which has nothing to load
    """
    if lazy_field is None:
        return
    if isinstance(lazy_field, Mapping):
        len(lazy_field)
    elif _is_collection(lazy_field):
        for _ in lazy_field:
            pass
    else:
        raise ValidationError(f"Don't know how to initialize {lazy_field!r}")
