"""
Supabase-backed store gateway.

Tables are named after EntityType values and keyed on the FPL id column ``id``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client, create_client

from fpl_sync.config import Config
from fpl_sync.database.store import StoreError, StoreGateway
from fpl_sync.models.entities import ENTITY_CLASSES, EntityType

logger = logging.getLogger(__name__)


class SupabaseStore(StoreGateway):
    """StoreGateway over the Supabase (PostgREST) client."""

    def __init__(self, config: Config, client: Optional[Client] = None):
        self.config = config
        self.client: Optional[Client] = client
        if self.client is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize Supabase client."""
        if not self.config.supabase_url or not self.config.supabase_key:
            raise ValueError("Supabase URL and key are required")

        # Prefer the service key: the sync writes to every table
        key = self.config.supabase_service_key or self.config.supabase_key

        self.client = create_client(self.config.supabase_url, key)

        logger.info("Initialized Supabase client", extra={
            "url": self.config.supabase_url,
            "using_service_key": bool(self.config.supabase_service_key)
        })

    @staticmethod
    def _row(entity) -> Dict[str, Any]:
        row = entity.to_row()
        row["updated_at"] = datetime.now(timezone.utc).isoformat()
        return row

    def find_by_id(self, entity_type: EntityType, entity_id: int):
        table = entity_type.value
        try:
            result = (
                self.client.table(table)
                .select("*")
                .eq("id", entity_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise StoreError("find_by_id", table, str(e)) from e

        # Depending on the postgrest version a miss is either None or empty data
        if result is None or not result.data:
            return None
        return ENTITY_CLASSES[entity_type].from_row(result.data)

    def save(self, entity) -> None:
        table = entity.entity_type.value
        try:
            self.client.table(table).upsert(
                self._row(entity),
                on_conflict="id"
            ).execute()
        except Exception as e:
            raise StoreError("save", table, str(e)) from e

    def bulk_upsert(
        self,
        entity_type: EntityType,
        entities: Sequence,
        conflict_key: str,
        update_columns: Sequence[str],
    ) -> None:
        """
        Upsert many rows in one request.

        PostgREST overwrites every column present in the payload on conflict,
        so rows are narrowed to the conflict key plus ``update_columns``.
        """
        table = entity_type.value
        if not entities:
            return

        columns = [conflict_key, *update_columns, "updated_at"]
        rows = []
        for entity in entities:
            row = self._row(entity)
            missing = [c for c in columns if c not in row]
            if missing:
                raise ValueError(f"{table} rows have no column(s): {', '.join(missing)}")
            rows.append({c: row[c] for c in columns})

        try:
            self.client.table(table).upsert(
                rows,
                on_conflict=conflict_key
            ).execute()
        except Exception as e:
            raise StoreError("bulk_upsert", table, str(e)) from e

        logger.debug("Bulk upserted rows", extra={
            "table": table,
            "rows_count": len(rows)
        })

    def find_all(self, entity_type: EntityType) -> List[object]:
        table = entity_type.value
        try:
            result = self.client.table(table).select("*").order("id").execute()
        except Exception as e:
            raise StoreError("find_all", table, str(e)) from e

        entity_cls = ENTITY_CLASSES[entity_type]
        return [entity_cls.from_row(row) for row in (result.data or [])]
