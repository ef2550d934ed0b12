"""
Base repository providing common CRUD operations.
"""

from typing import Generic, TypeVar, List, Optional, Type, Dict, Any
from sqlalchemy import select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from .specifications import Specification
from .where_clause import WhereClauseSpec

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Generic base repository providing common CRUD operations.
    All specific repositories should inherit from this class.
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize the repository.

        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class (single-column primary key)
        """
        self.db = db
        self.model = model
        mapper = sa_inspect(model)
        self.id_column = mapper.primary_key[0]
        self.id_attribute = getattr(model, mapper.get_property_by_column(self.id_column).key)

    def create(self, obj: T) -> T:
        """
        Create a new record in the database.

        Args:
            obj: Model instance to create

        Returns:
            Created model instance
        """
        self.db.add(obj)
        self.db.flush()
        return obj

    def get_by_id(self, id: Any) -> Optional[T]:
        """
        Retrieve a record by its primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        return self.db.get(self.model, id)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """
        Retrieve all records.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of model instances
        """
        query = self.db.query(self.model).order_by(self.id_column)
        if limit:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        return query.all()

    def update(self, obj: T) -> T:
        """
        Flush pending changes of an existing record.

        Args:
            obj: Model instance with updated values

        Returns:
            Updated model instance
        """
        self.db.flush()
        return obj

    def delete(self, obj: T) -> None:
        """
        Delete a record from the database.

        Args:
            obj: Model instance to delete
        """
        self.db.delete(obj)
        self.db.flush()

    def delete_by_id(self, id: Any) -> bool:
        """
        Delete a record by its primary key.

        Args:
            id: Primary key value

        Returns:
            True if deleted, False if not found
        """
        obj = self.get_by_id(id)
        if obj:
            self.delete(obj)
            return True
        return False

    def count(self) -> int:
        """
        Count total records.

        Returns:
            Total number of records
        """
        return self.db.query(self.model).count()

    def exists(self, id: Any) -> bool:
        """
        Check if a record exists by primary key.

        Args:
            id: Primary key value

        Returns:
            True if exists, False otherwise
        """
        return self.db.query(self.model).filter(self.id_column == id).count() > 0

    def find(
        self,
        spec: Specification[T],
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[T]:
        """
        Find records matching a Specification.

        Args:
            spec: Specification to match against (joins included)
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            Matching model instances, each at most once, ordered by primary key
        """
        id_attribute = self.id_attribute
        if not limit and not offset:
            stmt = spec.apply(select(self.model)).order_by(id_attribute)
            return list(self.db.scalars(stmt).unique().all())

        # To-many joins repeat rows, so the page is cut from the distinct ids
        page = spec.apply(select(id_attribute)).distinct().order_by(id_attribute)
        if limit:
            page = page.limit(limit)
        if offset:
            page = page.offset(offset)
        stmt = (
            select(self.model)
            .where(id_attribute.in_(page.correlate(None).scalar_subquery()))
            .order_by(id_attribute)
        )
        return list(self.db.scalars(stmt).all())

    def find_where(self, where_params: Dict[str, Any]) -> List[T]:
        """
        Find records matching a where-clause mapping.

        Args:
            where_params: Dotted attribute path -> value, or collection of values

        Returns:
            List of matching model instances
        """
        return self.find(WhereClauseSpec(self.model, where_params))

    def filter_by(self, **filters: Any) -> List[T]:
        """
        Filter records by attribute equality.

        Args:
            **filters: Attribute name -> value (None matches NULL)

        Returns:
            List of matching model instances
        """
        return self.find_where(filters)
