"""
Where-clause Specification

Turns a mapping of dotted attribute paths to values into a conjunctive
filter over a mapped entity:

    WhereClauseSpec(User, {
        "active": True,
        "department.name": ["Sales", "Support"],
        "manager.department.code": None,
    })

Each key is resolved segment by segment from the root entity. Every
relationship hop is joined (inner join) against its own alias; keys that
share a prefix share its joins. The last segment may be a column or a
many-to-one relationship.

Values:
- scalar: None -> IS NULL, anything else -> equality
- collection (list/tuple/set/frozenset) with one element -> same as that
  element given as a scalar
- other collections -> IS NULL (if None is present) OR IN (non-null values);
  a collection with neither branch matches nothing
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, true, false
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import aliased, RelationshipProperty
from sqlalchemy.orm.interfaces import MANYTOONE

from exceptions import ValidationError
from .specifications import Specification

VALUE_COLLECTION_TYPES = (list, tuple, set, frozenset)


def is_value_collection(value: Any) -> bool:
    """Strings, bytes and mappings are scalars; sequences and sets are collections."""
    return isinstance(value, VALUE_COLLECTION_TYPES)


def split_path(path: str) -> List[str]:
    segments = path.split('.') if isinstance(path, str) else []
    if not segments or any(not segment for segment in segments):
        raise ValidationError(f"Invalid attribute path: {path!r}", invalid_fields={str(path): "malformed path"})
    return segments


class _Restriction:
    """One where-clause entry resolved against a root entity."""

    def __init__(self, path: str, segments: List[str], expression, prop, value: Any):
        self.path = path
        self.segments = segments
        self.expression = expression
        self.prop = prop
        self.value = value

    @property
    def is_relationship(self) -> bool:
        return isinstance(self.prop, RelationshipProperty)

    def to_sql_filter(self):
        if is_value_collection(self.value):
            return self._in_or_is_null(list(self.value))
        return self._equal_or_is_null(self.value)

    def _equal_or_is_null(self, value):
        if value is None:
            return self.expression == None  # noqa: E711 - renders IS NULL, also for many-to-one
        return self.expression == value

    def _in(self, values):
        if self.is_relationship:
            # Relationship comparators have no in_()
            return or_(*[self.expression == value for value in values])
        return self.expression.in_(values)

    def _in_or_is_null(self, values: List[Any]):
        if len(values) == 1:
            return self._equal_or_is_null(values[0])

        predicates = []
        non_null_values = [value for value in values if value is not None]
        if len(non_null_values) != len(values):
            predicates.append(self._equal_or_is_null(None))
        if non_null_values:
            predicates.append(self._in(non_null_values))

        if not predicates:
            return false()
        return or_(*predicates)

    def matches(self, leaf: Any) -> bool:
        """In-memory counterpart of to_sql_filter() for one reachable value."""
        if not is_value_collection(self.value):
            return self._equal(leaf, self.value)

        values = list(self.value)
        if len(values) == 1:
            return self._equal(leaf, values[0])
        if leaf is None:
            return any(value is None for value in values)
        return any(self._equal(leaf, value) for value in values if value is not None)

    @staticmethod
    def _equal(leaf: Any, value: Any) -> bool:
        if value is None:
            return leaf is None
        return leaf is not None and leaf == value


class WhereClauseSpec(Specification):
    """
    Conjunctive specification built from a where-clause mapping.

    Args:
        model: Mapped entity class the paths are resolved from
        where_params: Mapping of dotted attribute path to value or values
        root: Selectable entity to resolve against (defaults to model; pass an
            alias to build the same predicate for a sub-select)

    Raises:
        ValidationError: If a path names an unknown attribute, traverses a
            column, or ends on a collection relationship
    """

    def __init__(self, model, where_params: Optional[Dict[str, Any]] = None, root=None):
        self.model = model
        self.root = root if root is not None else model
        self.where_params = dict(where_params or {})
        self._aliases: Dict[Tuple[str, ...], Any] = {}
        self._join_targets: List = []
        self._restrictions = [
            self._resolve(path, value) for path, value in self.where_params.items()
        ]

    def _property(self, entity, name: str, path: str):
        mapper = sa_inspect(entity).mapper
        if name not in mapper.attrs:
            raise ValidationError(
                f"{mapper.class_.__name__} has no attribute '{name}' (in path {path!r})",
                invalid_fields={path: f"unknown attribute '{name}'"}
            )
        return mapper.attrs[name]

    def _join(self, prefix: Tuple[str, ...], parent, name: str, prop: RelationshipProperty):
        alias = self._aliases.get(prefix)
        if alias is None:
            alias = aliased(prop.mapper.class_)
            self._aliases[prefix] = alias
            self._join_targets.append(getattr(parent, name).of_type(alias))
        return alias

    def _resolve(self, path: str, value: Any) -> _Restriction:
        segments = split_path(path)
        current = self.root
        for index, name in enumerate(segments[:-1]):
            prop = self._property(current, name, path)
            if not isinstance(prop, RelationshipProperty):
                raise ValidationError(
                    f"Cannot traverse '{name}' in path {path!r}: it is not a relationship",
                    invalid_fields={path: f"'{name}' is a column"}
                )
            current = self._join(tuple(segments[:index + 1]), current, name, prop)

        last = segments[-1]
        prop = self._property(current, last, path)
        if isinstance(prop, RelationshipProperty) and prop.direction is not MANYTOONE:
            raise ValidationError(
                f"Path {path!r} ends on collection '{last}'; filter on one of its attributes instead",
                invalid_fields={path: "collection relationship"}
            )
        return _Restriction(path, segments, getattr(current, last), prop, value)

    def join_paths(self) -> List:
        return list(self._join_targets)

    def to_sql_filter(self):
        if not self._restrictions:
            return true()
        return and_(*[restriction.to_sql_filter() for restriction in self._restrictions])

    def is_satisfied_by(self, candidate) -> bool:
        return all(
            any(restriction.matches(leaf) for leaf in _reachable_values(candidate, restriction.segments))
            for restriction in self._restrictions
        )


def _reachable_values(obj, segments: List[str]) -> List[Any]:
    """
    Values at the end of a dotted path, fanning out over collections.

    A None hop yields nothing, mirroring the inner joins the SQL filter uses.
    """
    current = [obj]
    for name in segments[:-1]:
        following = []
        for item in current:
            related = getattr(item, name)
            if related is None:
                continue
            if isinstance(related, Mapping):
                following.extend(related.values())
            elif isinstance(related, (list, set, tuple)):
                following.extend(related)
            else:
                following.append(related)
        current = following
    return [getattr(item, segments[-1]) for item in current]
