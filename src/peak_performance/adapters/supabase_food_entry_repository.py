"""Supabase repository for food entries."""

import logging
from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from peak_performance.adapters.supabase_query import Row, execute
from peak_performance.domain.documents import (
    Fatal,
    decode_food_entry,
    encode_food_entry,
)
from peak_performance.domain.errors import (
    EntryNotFoundError,
    StoreError,
    UndecodableDocumentError,
)
from peak_performance.domain.models import FoodEntry
from peak_performance.services.food_entries import FoodEntryRepository

_logger = logging.getLogger(__name__)

_TABLE = "food_entries"


@dataclass
class SupabaseFoodEntryRepository(FoodEntryRepository):
    """Supabase implementation for food entry persistence."""

    client: Client

    def create_entry(self, entry: FoodEntry) -> str:
        """Insert an entry and return the id the database assigned."""
        rows = execute(self.client.table(_TABLE).insert(encode_food_entry(entry)))
        if not rows:
            raise StoreError("Failed to create food entry")
        return str(rows[0]["id"])

    def get_entry(self, entry_id: str) -> FoodEntry | None:
        rows = execute(
            self.client.table(_TABLE).select("*").eq("id", entry_id).limit(1)
        )
        if not rows:
            return None
        result = decode_food_entry(rows[0])
        if isinstance(result, Fatal):
            raise UndecodableDocumentError(result.error)
        return result.value

    def list_entries(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[FoodEntry]:
        """Return entries newest first, skipping rows that fail to decode."""
        query = self.client.table(_TABLE).select("*").eq("user_id", user_id)
        if start is not None:
            query = query.gte("date", start.isoformat())
        if end is not None:
            query = query.lt("date", end.isoformat())
        rows = execute(query.order("date", desc=True))
        return _decode_rows(rows)

    def update_entry(self, entry_id: str, entry: FoodEntry) -> None:
        rows = execute(
            self.client.table(_TABLE)
            .update(encode_food_entry(entry))
            .eq("id", entry_id)
        )
        if not rows:
            raise EntryNotFoundError(_TABLE, entry_id)

    def delete_entry(self, entry_id: str) -> None:
        rows = execute(self.client.table(_TABLE).delete().eq("id", entry_id))
        if not rows:
            raise EntryNotFoundError(_TABLE, entry_id)


def _decode_rows(rows: list[Row]) -> list[FoodEntry]:
    entries = []
    for row in rows:
        result = decode_food_entry(row)
        if isinstance(result, Fatal):
            _logger.warning(
                "Skipping undecodable food entry: id=%s error=%s",
                row.get("id"),
                result.error,
            )
            continue
        entries.append(result.value)
    return entries
