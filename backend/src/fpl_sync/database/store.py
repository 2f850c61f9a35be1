"""
Persistence interface the reconciler writes through.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from fpl_sync.models.entities import EntityType


class StoreError(Exception):
    """Raised when the backing store fails a read or write."""

    def __init__(self, operation: str, table: str, message: str):
        self.operation = operation
        self.table = table
        super().__init__(f"{operation} on {table} failed: {message}")


class StoreGateway(ABC):
    """Read-by-id, insert-or-replace and bulk upsert over entity tables."""

    @abstractmethod
    def find_by_id(self, entity_type: EntityType, entity_id: int) -> Optional[object]:
        """Return the stored entity, or None when no row has that id."""

    @abstractmethod
    def save(self, entity) -> None:
        """Insert the entity, or replace the row with the same primary key."""

    @abstractmethod
    def bulk_upsert(
        self,
        entity_type: EntityType,
        entities: Sequence,
        conflict_key: str,
        update_columns: Sequence[str],
    ) -> None:
        """Insert all entities in one call; on conflict_key collisions overwrite update_columns."""

    @abstractmethod
    def find_all(self, entity_type: EntityType) -> List[object]:
        """Every stored entity of the type, ordered by id."""
