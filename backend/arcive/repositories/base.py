"""Base repository with shared owner-scoped lookups.

Subclasses specify model_class, owner_column, and not_found_error; the base
provides get_by_id / get_owned. Ownership failures raise the same NotFound
error as a missing row so callers cannot probe for other users' items.

Override _base_query() to apply default filters (e.g., soft-delete
exclusion in FileRepository).
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., File)
        id_column:       Name of the primary-key column (default "id")
        owner_column:    Name of the owning-user column (default "owner_id")
        not_found_error: Exception class raised with the requested id
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    owner_column: str = "owner_id"
    not_found_error: Type[NotFoundError]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def get_by_id(self, entity_id: str) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_owned(self, entity_id: str, owner_id: str) -> ModelT:
        """Get an entity owned by *owner_id*. Foreign rows look missing."""
        col = getattr(self.model_class, self.id_column)
        owner = getattr(self.model_class, self.owner_column)
        entity = self._base_query().filter(col == entity_id, owner == owner_id).first()
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity
