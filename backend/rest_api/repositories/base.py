"""
Base Repository implementation.
Provides common data access patterns over a synchronous SQLAlchemy session.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic
from sqlalchemy.orm import Session
from sqlalchemy import Select, select


ModelT = TypeVar("ModelT")


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: Return the SQLAlchemy model class
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    def _base_query(self) -> Select:
        """Return base query; subclasses add eager loading or ordering."""
        return select(self.model)

    def find_by_id(self, entity_id: int, include_deleted: bool = False) -> ModelT | None:
        """
        Find entity by ID.

        Args:
            entity_id: Entity ID
            include_deleted: Include soft-deleted entities

        Returns:
            Entity or None
        """
        query = self._base_query().where(self.model.id == entity_id)

        if not include_deleted and hasattr(self.model, "is_active"):
            query = query.where(self.model.is_active.is_(True))

        return self._db.scalar(query)

    def add(self, entity: ModelT) -> ModelT:
        """
        Stage a new entity and flush so the database assigns its key.
        The caller owns the transaction and decides when to commit.
        """
        self._db.add(entity)
        self._db.flush()
        return entity
