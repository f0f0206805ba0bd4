"""Food entry service."""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Protocol

from peak_performance.domain.errors import EntryNotFoundError
from peak_performance.domain.models import FoodEntry
from peak_performance.services.stats import StatsService
from peak_performance.services.summary import day_bounds

_logger = logging.getLogger(__name__)


class FoodEntryRepository(Protocol):
    """Persistence interface for food entries."""

    def create_entry(self, entry: FoodEntry) -> str:
        """Create an entry and return its assigned id."""

    def get_entry(self, entry_id: str) -> FoodEntry | None:
        """Return an entry by id."""

    def list_entries(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[FoodEntry]:
        """Return a user's entries, newest first, within ``[start, end)``."""

    def update_entry(self, entry_id: str, entry: FoodEntry) -> None:
        """Replace an entry."""

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry."""


@dataclass
class FoodEntryService:
    """Persists food entries and keeps consumed calories in step."""

    repository: FoodEntryRepository
    stats_service: StatsService

    def list_for_day(
        self, user_id: str, day: date, timezone_name: str
    ) -> list[FoodEntry]:
        """Return the entries logged on a local calendar day."""
        start, end = day_bounds(day, timezone_name)
        return self.repository.list_entries(user_id, start, end)

    def list_all(self, user_id: str) -> list[FoodEntry]:
        """Return every entry for a user."""
        return self.repository.list_entries(user_id)

    def get_entry(self, user_id: str, entry_id: str) -> FoodEntry:
        """Return one of the user's entries."""
        entry = self.repository.get_entry(entry_id)
        if entry is None or entry.user_id != user_id:
            raise EntryNotFoundError("food_entries", entry_id)
        return entry

    def add_entry(self, user_id: str, entry: FoodEntry) -> FoodEntry:
        """Store a new entry and add its calories to the user's total."""
        owned = replace(entry, user_id=user_id, id=None)
        entry_id = self.repository.create_entry(owned)
        created = replace(owned, id=entry_id)
        _logger.info(
            "Food entry added: user_id=%s entry_id=%s calories=%s",
            user_id,
            entry_id,
            created.calories,
        )
        self.stats_service.apply_calories_consumed(user_id, created.calories)
        return created

    def update_entry(self, user_id: str, entry_id: str, entry: FoodEntry) -> FoodEntry:
        """Replace an entry and apply the calorie difference, if any."""
        original = self.get_entry(user_id, entry_id)
        updated = replace(entry, user_id=user_id, id=entry_id)
        self.repository.update_entry(entry_id, updated)
        difference = updated.calories - original.calories
        if difference != 0:
            self.stats_service.apply_calories_consumed(user_id, difference)
        return updated

    def delete_entry(self, user_id: str, entry: FoodEntry) -> None:
        """Delete an entry and subtract its calories from the user's total."""
        self.remove_entry(entry)
        self.stats_service.apply_calories_consumed(user_id, -entry.calories)

    def remove_entry(self, entry: FoodEntry) -> None:
        """Delete an entry from the store without touching stats."""
        if entry.id is None:
            raise EntryNotFoundError("food_entries", "<unsaved>")
        _logger.info(
            "Deleting food entry: entry_id=%s calories=%s", entry.id, entry.calories
        )
        self.repository.delete_entry(entry.id)
