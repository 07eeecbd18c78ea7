"""
Base Repository for the AI Chat backend

Shared plumbing for async repositories: each public method opens one
transactional session from the injected DatabaseManager and returns
immutable domain snapshots, never live ORM objects.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlmodel import SQLModel

from app.infrastructure.db.database import DatabaseManager


ModelType = TypeVar("ModelType", bound=SQLModel)
DomainType = TypeVar("DomainType", bound=BaseModel)


class BaseRepository(Generic[ModelType, DomainType]):
    """
    Generic async repository.

    Args:
        db: Database manager providing transactional sessions
        model: The SQLModel table class
        domain: The Pydantic snapshot class returned to callers
    """

    def __init__(
        self,
        db: DatabaseManager,
        model: Type[ModelType],
        domain: Type[DomainType],
    ):
        self._db = db
        self._model = model
        self._domain = domain

    def _to_domain(self, row: Optional[Any]) -> Optional[DomainType]:
        """Convert a table row into a domain snapshot."""
        if row is None:
            return None
        return self._domain.model_validate(row, from_attributes=True)
