"""Workout service."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from peak_performance.domain.errors import EntryNotFoundError
from peak_performance.domain.models import Workout
from peak_performance.services.stats import StatsService

_logger = logging.getLogger(__name__)


class WorkoutRepository(Protocol):
    """Persistence interface for workouts."""

    def create_workout(self, workout: Workout) -> Workout:
        """Create a workout and return it with its id and creation time."""

    def get_workout(self, workout_id: str) -> Workout | None:
        """Return a workout by id."""

    def list_workouts(self, user_id: str) -> list[Workout]:
        """Return a user's workouts, newest first."""

    def update_workout(self, workout_id: str, workout: Workout) -> None:
        """Replace a workout, keeping its creation time."""

    def delete_workout(self, workout_id: str) -> None:
        """Delete a workout."""


@dataclass
class WorkoutService:
    """Persists workouts and keeps burned calories and active minutes in step."""

    repository: WorkoutRepository
    stats_service: StatsService

    def list_workouts(self, user_id: str) -> list[Workout]:
        return self.repository.list_workouts(user_id)

    def add_workout(self, user_id: str, workout: Workout) -> Workout:
        """Store a workout and add it to the user's cumulative stats."""
        created = self.repository.create_workout(
            replace(workout, user_id=user_id, id=None, created_at=None)
        )
        _logger.info(
            "Workout added: user_id=%s workout_id=%s calories=%s duration=%s",
            user_id,
            created.id,
            created.calories,
            created.duration,
        )
        self.stats_service.apply_workout(user_id, created.calories, created.duration)
        return created

    def update_workout(
        self, user_id: str, workout_id: str, workout: Workout
    ) -> Workout:
        """Replace a workout and apply the calorie and duration differences."""
        original = self._owned(user_id, workout_id)
        updated = replace(
            workout, user_id=user_id, id=workout_id, created_at=original.created_at
        )
        self.repository.update_workout(workout_id, updated)
        calories_delta = updated.calories - original.calories
        minutes_delta = updated.duration - original.duration
        if calories_delta or minutes_delta:
            self.stats_service.apply_workout(user_id, calories_delta, minutes_delta)
        return updated

    def delete_workout(self, user_id: str, workout_id: str) -> Workout:
        """Delete a workout and remove it from the user's cumulative stats."""
        original = self._owned(user_id, workout_id)
        self.repository.delete_workout(workout_id)
        self.stats_service.apply_workout(
            user_id, -original.calories, -original.duration
        )
        return original

    def _owned(self, user_id: str, workout_id: str) -> Workout:
        workout = self.repository.get_workout(workout_id)
        if workout is None or workout.user_id != user_id:
            raise EntryNotFoundError("workouts", workout_id)
        return workout
