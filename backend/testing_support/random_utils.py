"""
Random entity generation for test fixtures.

Builds transient instances of any SQLAlchemy-mapped class and fills them from
the mapper's metadata:

- Column attributes get values from a type registry: an ordered list of
  SQLAlchemy column types, each paired with a generator closure that receives
  the column's type instance (so lengths, scales and enum members are honored).
  The first matching entry wins; register() puts new entries in front.
- Foreign-key columns are never generated; they follow from relationships.
- Many-to-one relationships are filled with nested random entities while the
  current depth is below max_depth. Self-references are only followed when
  required (non-nullable), otherwise every generated row would drag in a chain
  of extra rows of the same type.
- Collections receive collection_size random elements while depth allows.

Usage:
    generator = RandomEntityGenerator(seed=42)
    user = generator.random(User, "id")  # "id" is skipped at every level
"""

import logging
from datetime import timezone
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

from faker import Faker
from sqlalchemy import (
    JSON, BigInteger, Boolean, Column, Date, DateTime, Enum, Float, Integer, LargeBinary,
    Numeric, SmallInteger, String, Text, Time, Uuid
)
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.orm.collections import collection_adapter
from sqlalchemy.orm.interfaces import MANYTOONE
from sqlalchemy.types import TypeDecorator, TypeEngine

from config import settings
from constants import RandomDefaults
from exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

ValueGenerator = Callable[[TypeEngine], Any]

# Required many-to-one chains may run past max_depth; past this many extra
# levels the mapping is assumed to be a required cycle
REQUIRED_DEPTH_SLACK = 5


class RandomEntityGenerator:
    """
    Populates arbitrary mapped object graphs with random values.

    Args:
        seed: Seed for reproducible output (None = nondeterministic)
        max_depth: Depth up to which optional relationships are followed
        collection_size: (min, max) number of elements per generated collection
        locale: Faker locale
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        max_depth: int = RandomDefaults.MAX_DEPTH,
        collection_size: Tuple[int, int] = RandomDefaults.COLLECTION_SIZE,
        locale: Optional[str] = None
    ):
        low, high = collection_size
        if max_depth < 0 or low < 0 or low > high:
            raise ValidationError(
                "Invalid generator limits",
                invalid_fields={"max_depth": max_depth, "collection_size": collection_size}
            )
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
        self.max_depth = max_depth
        self.collection_size = (low, high)
        self._generators: List[Tuple[type, ValueGenerator]] = self._default_generators()

    def _default_generators(self) -> List[Tuple[type, ValueGenerator]]:
        fake = self.fake
        # Subclasses before their bases: Enum and Text are Strings, Float is Numeric
        return [
            (Enum, lambda t: fake.random_element(list(t.enum_class) if t.enum_class else t.enums)),
            (Text, self._text),
            (String, lambda t: fake.pystr(min_chars=1, max_chars=self._max_length(t, RandomDefaults.STRING_LENGTH))),
            (Boolean, lambda t: fake.pybool()),
            (SmallInteger, lambda t: fake.random_int(RandomDefaults.INT_MIN, RandomDefaults.SMALL_INT_MAX)),
            (BigInteger, lambda t: fake.random_int(RandomDefaults.INT_MIN, RandomDefaults.INT_MAX)),
            (Integer, lambda t: fake.random_int(RandomDefaults.INT_MIN, RandomDefaults.INT_MAX)),
            (Float, lambda t: fake.pyfloat(left_digits=4, right_digits=2, positive=True)),
            (Numeric, lambda t: fake.pydecimal(
                left_digits=4, right_digits=t.scale if t.scale is not None else 2, positive=True
            )),
            (DateTime, lambda t: fake.date_time(tzinfo=timezone.utc if t.timezone else None)),
            (Date, lambda t: fake.date_object()),
            (Time, lambda t: fake.time_object()),
            (LargeBinary, lambda t: fake.binary(length=RandomDefaults.BINARY_LENGTH)),
            (Uuid, lambda t: fake.uuid4(cast_to=None) if t.as_uuid else fake.uuid4()),
            (JSON, lambda t: {fake.word(): fake.pystr() for _ in range(3)}),
        ]

    @staticmethod
    def _max_length(sa_type: TypeEngine, default: int) -> int:
        length = getattr(sa_type, 'length', None)
        return min(length, default) if length else default

    def _text(self, sa_type: TypeEngine) -> str:
        limit = self._max_length(sa_type, RandomDefaults.TEXT_LENGTH)
        if limit < 5:
            # Faker's text() needs room for at least one word
            return self.fake.pystr(min_chars=1, max_chars=limit)
        return self.fake.text(max_nb_chars=limit)

    def register(self, sa_type: type, generator: ValueGenerator) -> None:
        """
        Register a value generator for a column type, ahead of the defaults.

        Args:
            sa_type: SQLAlchemy type class (subclasses match too)
            generator: Callable receiving the column's type instance
        """
        self._generators.insert(0, (sa_type, generator))

    def random(self, model: type, *excluded_fields: str):
        """
        Create a transient random instance of a mapped class.

        Args:
            model: Mapped class
            *excluded_fields: Attribute names left unset, at every nesting level

        Returns:
            New, unsaved instance

        Raises:
            ConfigurationError: If model is not a mapped class
            ValidationError: If model cannot be instantiated or a column type
                has no generator
        """
        mapper = self._mapper(model)
        return self._populate(mapper, set(excluded_fields), depth=0, skipped=set())

    @staticmethod
    def _mapper(model) -> Mapper:
        mapper = sa_inspect(model, raiseerr=False) if isinstance(model, type) else None
        if not isinstance(mapper, Mapper):
            raise ConfigurationError(f"{model!r} is not a mapped class")
        return mapper

    def _populate(self, mapper: Mapper, excluded: Set[str], depth: int, skipped: Set[str]):
        model = mapper.class_
        try:
            instance = model()
        except TypeError as e:
            raise ValidationError(f"Cannot instantiate {model.__name__}: {e}") from e

        for prop in mapper.column_attrs:
            if prop.key in excluded or prop.key in skipped:
                continue
            column = prop.columns[0]
            if not isinstance(column, Column) or not self._is_generated(column, depth):
                continue
            setattr(instance, prop.key, self._value_for(column, model, prop.key))

        for rel in mapper.relationships:
            if rel.key in excluded or rel.key in skipped or rel.viewonly:
                continue
            reverse = {rel.back_populates} if rel.back_populates else set()
            if rel.direction is MANYTOONE:
                self._populate_reference(instance, mapper, rel, excluded, depth, reverse)
            elif depth < self.max_depth:
                self._populate_collection(instance, rel, excluded, depth, reverse)

        return instance

    @staticmethod
    def _is_generated(column: Column, depth: int) -> bool:
        if column.foreign_keys or column.computed is not None or column.identity is not None:
            return False
        if column.primary_key:
            # Nested keys and keys the database or a default provides are left alone
            if depth > 0 or column.default is not None or column.server_default is not None:
                return False
            if isinstance(column.type, Integer) and column.autoincrement in (True, 'auto'):
                return False
        return True

    def _populate_reference(self, instance, mapper: Mapper, rel, excluded: Set[str], depth: int, reverse: Set[str]):
        required = any(not column.nullable for column in rel.local_columns)
        self_referencing = rel.mapper.isa(mapper) or mapper.isa(rel.mapper)
        if not required and (self_referencing or depth >= self.max_depth):
            return
        if depth >= self.max_depth + REQUIRED_DEPTH_SLACK:
            raise ValidationError(
                f"Cannot satisfy required relationship {mapper.class_.__name__}.{rel.key}: "
                f"required references nest deeper than {depth} levels"
            )
        related = self._populate(rel.mapper, excluded, depth + 1, reverse)
        setattr(instance, rel.key, related)

    def _populate_collection(self, instance, rel, excluded: Set[str], depth: int, reverse: Set[str]):
        low, high = self.collection_size
        size = self.fake.random_int(low, high)
        if not size:
            return
        if not rel.uselist:
            setattr(instance, rel.key, self._populate(rel.mapper, excluded, depth + 1, reverse))
            return
        adapter = collection_adapter(getattr(instance, rel.key))
        for _ in range(size):
            adapter.append_with_event(self._populate(rel.mapper, excluded, depth + 1, reverse))

    def _value_for(self, column: Column, model: type, key: str):
        for sa_type in self._type_chain(column.type):
            for registered, generator in self._generators:
                if isinstance(sa_type, registered):
                    return generator(sa_type)
        raise ValidationError(
            f"No random generator for {model.__name__}.{key} of type {column.type!r}",
            invalid_fields={key: repr(column.type)}
        )

    @staticmethod
    def _type_chain(sa_type: TypeEngine) -> Iterable[TypeEngine]:
        """The column type, then the types it decorates."""
        yield sa_type
        while isinstance(sa_type, TypeDecorator):
            sa_type = sa_type.impl
            yield sa_type


_default_generator: Optional[RandomEntityGenerator] = None


def get_default_generator() -> RandomEntityGenerator:
    """Shared generator configured from RANDOM_SEED / RANDOM_MAX_DEPTH / RANDOM_COLLECTION_SIZE."""
    global _default_generator
    if _default_generator is None:
        _default_generator = RandomEntityGenerator(
            seed=settings.get_random_seed(),
            max_depth=settings.get_random_max_depth(),
            collection_size=settings.get_random_collection_size()
        )
        logger.debug(
            f"Random entity generator ready (max_depth={_default_generator.max_depth}, "
            f"collection_size={_default_generator.collection_size})"
        )
    return _default_generator


def random_entity(model: type, *excluded_fields: str):
    """Create a random transient instance of model with the shared generator."""
    return get_default_generator().random(model, *excluded_fields)
