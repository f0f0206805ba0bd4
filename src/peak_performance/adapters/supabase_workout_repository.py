"""Supabase repository for workouts."""

import logging
from dataclasses import dataclass

from supabase import Client

from peak_performance.adapters.supabase_query import Row, execute
from peak_performance.domain.documents import Fatal, decode_workout, encode_workout
from peak_performance.domain.errors import (
    EntryNotFoundError,
    StoreError,
    UndecodableDocumentError,
)
from peak_performance.domain.models import Workout
from peak_performance.services.workouts import WorkoutRepository

_logger = logging.getLogger(__name__)

_TABLE = "workouts"


@dataclass
class SupabaseWorkoutRepository(WorkoutRepository):
    """Supabase implementation for workout persistence.

    ``created_at`` is filled by a column default and never sent by writes.
    """

    client: Client

    def create_workout(self, workout: Workout) -> Workout:
        rows = execute(self.client.table(_TABLE).insert(encode_workout(workout)))
        if not rows:
            raise StoreError("Failed to create workout")
        return _decode(rows[0])

    def get_workout(self, workout_id: str) -> Workout | None:
        rows = execute(
            self.client.table(_TABLE).select("*").eq("id", workout_id).limit(1)
        )
        if not rows:
            return None
        return _decode(rows[0])

    def list_workouts(self, user_id: str) -> list[Workout]:
        rows = execute(
            self.client.table(_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("date", desc=True)
        )
        workouts = []
        for row in rows:
            result = decode_workout(row)
            if isinstance(result, Fatal):
                _logger.warning(
                    "Skipping undecodable workout: id=%s error=%s",
                    row.get("id"),
                    result.error,
                )
                continue
            workouts.append(result.value)
        return workouts

    def update_workout(self, workout_id: str, workout: Workout) -> None:
        rows = execute(
            self.client.table(_TABLE)
            .update(encode_workout(workout))
            .eq("id", workout_id)
        )
        if not rows:
            raise EntryNotFoundError(_TABLE, workout_id)

    def delete_workout(self, workout_id: str) -> None:
        rows = execute(self.client.table(_TABLE).delete().eq("id", workout_id))
        if not rows:
            raise EntryNotFoundError(_TABLE, workout_id)


def _decode(row: Row) -> Workout:
    result = decode_workout(row)
    if isinstance(result, Fatal):
        raise UndecodableDocumentError(result.error)
    return result.value
