"""User stats service: transactional updates of cumulative counters."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol

from peak_performance.domain.documents import (
    DecodeResult,
    Document,
    Fatal,
    Recovered,
    decode_user_stats,
    encode_user_stats,
)
from peak_performance.domain.errors import StoreError, UndecodableDocumentError
from peak_performance.domain.models import UserStats

_logger = logging.getLogger(__name__)

StatsMutation = Callable[[Document | None], Document]

UPDATABLE_FIELDS = frozenset(
    {
        "daily_steps",
        "calories_burned",
        "calories_consumed",
        "active_minutes",
        "distance_walked",
        "water_intake",
        "bio",
        "photo_url",
    }
)


class UserStatsRepository(Protocol):
    """Persistence interface for ``users`` stats documents."""

    def get_document(self, user_id: str) -> Document | None:
        """Return the stats document, or None when the user has none."""

    def insert_document(self, user_id: str, document: Document) -> None:
        """Create the stats document for a user."""

    def merge_document(self, user_id: str, document: Document) -> None:
        """Write the given fields, preserving all others."""

    def run_transaction(self, user_id: str, mutation: StatsMutation) -> Document:
        """Atomically read, mutate and merge-write a stats document.

        The mutation may be invoked more than once when concurrent writers
        conflict. Returns the committed document.
        """


@dataclass
class StatsService:
    """Reads and mutates a user's cumulative stats."""

    repository: UserStatsRepository

    def get_stats(self, user_id: str) -> DecodeResult[UserStats] | None:
        """Return the decoded stats, or None when no document exists."""
        document = self.repository.get_document(user_id)
        if document is None:
            return None
        return decode_user_stats(document, user_id)

    def create_default_stats(self, user_id: str) -> UserStats:
        """Persist and return default stats for a new user."""
        stats = UserStats.defaults(user_id)
        self.repository.insert_document(user_id, encode_user_stats(stats))
        _logger.info("Created default user stats: user_id=%s", user_id)
        return stats

    def ensure_stats(self, user_id: str) -> UserStats:
        """Return the user's stats, creating defaults on first use."""
        result = self.get_stats(user_id)
        if result is None:
            return self.create_default_stats(user_id)
        return _unwrap(result, user_id)

    def save_stats(self, stats: UserStats) -> UserStats:
        """Merge-write stats and return the persisted version."""
        self.repository.merge_document(stats.user_id, encode_user_stats(stats))
        result = self.get_stats(stats.user_id)
        if result is None:
            raise StoreError("Updated stats document not found")
        return _unwrap(result, stats.user_id)

    def update_goals(self, user_id: str, **changes: int | float | None) -> UserStats:
        """Replace the given daily goals, leaving the others untouched."""

        def change(stats: UserStats) -> None:
            stats.daily_goal = stats.daily_goal.with_updates(**changes)

        return self._mutate(user_id, change)

    def update_field(self, user_id: str, field: str, value: object) -> UserStats:
        """Set a single stats field."""
        if field not in UPDATABLE_FIELDS:
            raise ValueError(f"Unknown stats field: {field}")

        def change(stats: UserStats) -> None:
            setattr(stats, field, value)

        return self._mutate(user_id, change)

    def apply_workout(
        self, user_id: str, calories_delta: int, minutes_delta: int
    ) -> UserStats:
        """Add a workout's calories and duration to the cumulative counters."""

        def change(stats: UserStats) -> None:
            stats.calories_burned += calories_delta
            stats.active_minutes += minutes_delta

        return self._mutate(user_id, change)

    def apply_calories_consumed(self, user_id: str, delta: int) -> UserStats:
        """Add a signed calorie delta to the consumed counter."""

        def change(stats: UserStats) -> None:
            stats.calories_consumed = (stats.calories_consumed or 0) + delta

        return self._mutate(user_id, change)

    def _mutate(self, user_id: str, change: Callable[[UserStats], None]) -> UserStats:
        def mutation(document: Document | None) -> Document:
            stats = _decode_for_update(document, user_id)
            change(stats)
            # replace() re-runs the constructor clamps.
            return encode_user_stats(replace(stats))

        committed = self.repository.run_transaction(user_id, mutation)
        return _unwrap(decode_user_stats(committed, user_id), user_id)


def _decode_for_update(document: Document | None, user_id: str) -> UserStats:
    result = decode_user_stats(document, user_id)
    if isinstance(result, Fatal):
        _logger.warning(
            "Replacing undecodable stats with defaults: user_id=%s error=%s",
            user_id,
            result.error,
        )
        return UserStats.defaults(user_id)
    if isinstance(result, Recovered):
        _logger.warning(
            "Recovered stats with defaults: user_id=%s cause=%s",
            user_id,
            result.cause,
        )
    return result.value


def _unwrap(result: DecodeResult[UserStats], user_id: str) -> UserStats:
    if isinstance(result, Fatal):
        raise UndecodableDocumentError(
            f"Error parsing user data for {user_id}: {result.error}"
        )
    if isinstance(result, Recovered):
        _logger.warning(
            "Recovered stats with defaults: user_id=%s cause=%s",
            user_id,
            result.cause,
        )
    return result.value
