# backend/gymschedule/repositories/base_repository.py
"""
Base Repository Pattern for the gym scheduling engine.

Repositories never commit. Services own the transaction, so a booking
rejected halfway through its checks leaves nothing behind. Every driver
error is reported as RepositoryException; the service layer turns that
into an opaque ServiceException.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Common data access for one mapped model.

    Attributes:
        db: SQLAlchemy session (owned by the calling service)
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _storage_errors(self, action: str, rollback: bool = False) -> Iterator[None]:
        """Translate driver errors raised inside the block into RepositoryException."""
        try:
            yield
        except SQLAlchemyError as e:
            self.logger.error("Failed to %s %s: %s", action, self.model.__name__, e)
            if rollback:
                self.db.rollback()
            raise RepositoryException(f"Failed to {action} {self.model.__name__}: {str(e)}") from e

    # Reads

    def get_by_id(self, id: str, for_update: bool = False) -> Optional[T]:
        """
        Load an entity by primary key.

        With for_update the row is locked (SELECT ... FOR UPDATE where the
        dialect supports it) and its attributes are reloaded, so values read
        before another writer committed are never reused.
        """
        with self._storage_errors("retrieve"):
            query = self._build_query().filter(self.model.id == id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()

    # Writes (flush only)

    def create(self, **kwargs: Any) -> T:
        """Add a new entity and flush so its generated id is available."""
        entity = self.model(**kwargs)
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as e:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, e)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {e}") from e
        except SQLAlchemyError as e:
            self.logger.error("Error creating %s: %s", self.model.__name__, e)
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}") from e
        return entity

    def flush(self) -> None:
        with self._storage_errors("flush"):
            self.db.flush()

    def delete(self, id: str) -> bool:
        """Delete by primary key; False when nothing was there."""
        entity = self.get_by_id(id)
        if entity is None:
            return False
        with self._storage_errors("delete", rollback=True):
            self.db.delete(entity)
            self.db.flush()
        return True

    # Helpers for subclasses

    def _build_query(self) -> Query:
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[Any]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")
