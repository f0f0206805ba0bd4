"""Per-user tracker session mirroring store data for display.

A session lives on one asyncio event loop. Blocking store calls run through
``run_blocking`` and resume on the loop before mirrored state is touched, so
two overlapping operations never interleave their writes. Every fetch takes a
generation token; a response whose token has been superseded by a newer
request for the same resource is discarded.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from zoneinfo import ZoneInfo

from peak_performance.domain.documents import Fatal, Recovered
from peak_performance.domain.errors import StoreError
from peak_performance.domain.models import FoodEntry, UserStats, Workout
from peak_performance.domain.nutrition import NutritionSummary
from peak_performance.services.food_entries import FoodEntryService
from peak_performance.services.notifications import NotificationService
from peak_performance.services.optimistic import OptimisticUpdate
from peak_performance.services.stats import StatsService
from peak_performance.services.summary import (
    DEFAULT_CALORIE_INTAKE_GOAL,
    summarize,
    today,
)
from peak_performance.services.workouts import WorkoutService

_logger = logging.getLogger(__name__)

RunBlocking = Callable[..., Awaitable[Any]]
Listener = Callable[["SessionSnapshot"], None]

_STATS = "user_stats"
_WORKOUTS = "workouts"
_FOOD_ENTRIES = "food_entries"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of a session's mirrored state."""

    user_id: str
    workouts: tuple[Workout, ...]
    food_entries: tuple[FoodEntry, ...]
    user_stats: UserStats | None
    nutrition_summary: NutritionSummary
    selected_day: date | None
    is_loading: bool
    error_message: str | None


@dataclass
class TrackerSession:
    """Mirror of a user's workouts, food entries, stats and summary."""

    user_id: str
    stats_service: StatsService
    food_entry_service: FoodEntryService
    workout_service: WorkoutService
    notification_service: NotificationService
    timezone_name: str = "UTC"
    default_calorie_goal: int = DEFAULT_CALORIE_INTAKE_GOAL
    run_blocking: RunBlocking = asyncio.to_thread

    workouts: list[Workout] = field(default_factory=list, init=False)
    food_entries: list[FoodEntry] = field(default_factory=list, init=False)
    user_stats: UserStats | None = field(default=None, init=False)
    nutrition_summary: NutritionSummary = field(
        default_factory=NutritionSummary, init=False
    )
    selected_day: date | None = field(default=None, init=False)
    error_message: str | None = field(default=None, init=False)
    _pending: int = field(default=0, init=False)
    _generations: dict[str, int] = field(default_factory=dict, init=False)
    _listeners: list[Listener] = field(default_factory=list, init=False)

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            user_id=self.user_id,
            workouts=tuple(self.workouts),
            food_entries=tuple(self.food_entries),
            user_stats=self.user_stats,
            nutrition_summary=self.nutrition_summary,
            selected_day=self.selected_day,
            is_loading=self.is_loading,
            error_message=self.error_message,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Stats

    async def fetch_user_stats(self) -> bool:
        """Load stats, creating defaults for a first-time user.

        Returns True when fresh stats were applied to the mirror.
        """
        token = self._begin(_STATS)
        try:
            result = await self._call(self.stats_service.get_stats, self.user_id)
            if result is None:
                stats = await self._call(
                    self.stats_service.create_default_stats, self.user_id
                )
            elif isinstance(result, Fatal):
                return self._fail(f"Error parsing user data: {result.error}")
            else:
                if isinstance(result, Recovered):
                    _logger.warning(
                        "Using default values for stats: user_id=%s cause=%s",
                        self.user_id,
                        result.cause,
                    )
                stats = result.value
        except StoreError as exc:
            return self._fail(f"Error fetching user stats: {exc}")
        if not self._is_current(_STATS, token):
            _logger.debug("Discarding stale stats response: user_id=%s", self.user_id)
            return False
        self._apply_stats(stats)
        return True

    async def update_user_stats(self, stats: UserStats) -> bool:
        """Merge-write stats and mirror the persisted result."""
        self._begin(_STATS)
        try:
            saved = await self._call(self.stats_service.save_stats, stats)
        except StoreError as exc:
            return self._fail(f"Error updating stats: {exc}")
        self._apply_stats(saved)
        return True

    async def update_goals(self, **changes: int | float | None) -> bool:
        """Change daily goals and mirror the result."""
        self._begin(_STATS)
        try:
            updated = await self._call(
                functools.partial(
                    self.stats_service.update_goals, self.user_id, **changes
                )
            )
        except StoreError as exc:
            return self._fail(f"Error updating goals: {exc}")
        self._apply_stats(updated)
        await self.notification_service.send(
            "Goals Updated", "Your fitness goals have been updated successfully!"
        )
        return True

    # Workouts

    async def fetch_workouts(self) -> bool:
        token = self._begin(_WORKOUTS)
        try:
            workouts = await self._call(
                self.workout_service.list_workouts, self.user_id
            )
        except StoreError as exc:
            return self._fail(f"Error fetching workouts: {exc}")
        if not self._is_current(_WORKOUTS, token):
            return False
        self.workouts = list(workouts)
        self._changed(clear_error=True)
        return True

    async def add_workout(self, workout: Workout) -> bool:
        try:
            created = await self._call(
                self.workout_service.add_workout, self.user_id, workout
            )
        except StoreError as exc:
            return self._fail(f"Error adding workout: {exc}")
        await self.notification_service.send(
            "Workout Added",
            f"Your {created.name} workout has been added successfully!",
        )
        await self._refresh_after_workout_change()
        return True

    async def update_workout(self, workout_id: str, workout: Workout) -> bool:
        try:
            updated = await self._call(
                self.workout_service.update_workout, self.user_id, workout_id, workout
            )
        except StoreError as exc:
            return self._fail(f"Error updating workout: {exc}")
        await self.notification_service.send(
            "Workout Updated",
            f"Your {updated.name} workout has been updated successfully!",
        )
        await self._refresh_after_workout_change()
        return True

    async def delete_workout(self, workout_id: str) -> bool:
        try:
            await self._call(
                self.workout_service.delete_workout, self.user_id, workout_id
            )
        except StoreError as exc:
            return self._fail(f"Error deleting workout: {exc}")
        await self.notification_service.send(
            "Workout Deleted", "Your workout has been deleted successfully."
        )
        await self._refresh_after_workout_change()
        return True

    # Food entries

    async def fetch_food_entries(self, day: date | None = None) -> bool:
        """Load the entries of a local day (today by default)."""
        selected = day or today(self.timezone_name)
        self.selected_day = selected
        token = self._begin(_FOOD_ENTRIES)
        try:
            entries = await self._call(
                self.food_entry_service.list_for_day,
                self.user_id,
                selected,
                self.timezone_name,
            )
        except StoreError as exc:
            return self._fail(f"Error fetching food entries: {exc}")
        if not self._is_current(_FOOD_ENTRIES, token):
            _logger.debug(
                "Discarding stale food entries response: user_id=%s", self.user_id
            )
            return False
        self._set_entries(list(entries))
        return True

    async def add_food_entry(self, entry: FoodEntry) -> bool:
        try:
            created = await self._call(
                self.food_entry_service.add_entry, self.user_id, entry
            )
        except StoreError as exc:
            return self._fail(f"Error adding food entry: {exc}")
        await self.notification_service.send(
            "Food Entry Added", f"Your {created.name} has been logged successfully!"
        )
        await self._refresh_after_entry_change(created)
        return True

    async def update_food_entry(self, entry_id: str, entry: FoodEntry) -> bool:
        try:
            updated = await self._call(
                self.food_entry_service.update_entry, self.user_id, entry_id, entry
            )
        except StoreError as exc:
            return self._fail(f"Error updating food entry: {exc}")
        await self.notification_service.send(
            "Food Entry Updated", f"Your {updated.name} has been updated successfully!"
        )
        await self._refresh_after_entry_change(updated)
        return True

    async def delete_food_entry(self, entry_id: str) -> bool:
        """Remove an entry immediately, rolling back if the store delete fails."""
        index = next(
            (i for i, entry in enumerate(self.food_entries) if entry.id == entry_id),
            None,
        )
        if index is None:
            _logger.warning("Food entry not found locally: entry_id=%s", entry_id)
            return False
        entry = self.food_entries[index]
        # Responses of fetches issued before the removal are stale from here on.
        self._begin(_FOOD_ENTRIES)
        preceding = [item.id for item in self.food_entries[:index]]
        update = OptimisticUpdate(
            snapshot=lambda: (preceding, entry),
            apply=lambda: self._remove_entry(index),
            restore=lambda saved: self._restore_entry(*saved),
        )
        try:
            await update.run(
                lambda: self._call(self.food_entry_service.remove_entry, entry)
            )
        except StoreError as exc:
            return self._fail(f"Error deleting food entry: {exc}")

        self._begin(_STATS)
        try:
            stats = await self._call(
                self.stats_service.apply_calories_consumed,
                self.user_id,
                -entry.calories,
            )
        except StoreError as exc:
            return self._fail(f"Error updating nutrition stats: {exc}")
        self._apply_stats(stats)
        await self.notification_service.send(
            "Food Entry Deleted", "Your food entry has been deleted successfully."
        )
        return True

    # Internals

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        self._pending += 1
        self._publish()
        try:
            return await self.run_blocking(func, *args)
        finally:
            self._pending -= 1
            self._publish()

    def _begin(self, resource: str) -> int:
        token = self._generations.get(resource, 0) + 1
        self._generations[resource] = token
        return token

    def _is_current(self, resource: str, token: int) -> bool:
        return self._generations.get(resource) == token

    def _fail(self, message: str) -> bool:
        _logger.error("%s: user_id=%s", message, self.user_id)
        self.error_message = message
        self._publish()
        return False

    async def _refresh_after_workout_change(self) -> None:
        await self.fetch_workouts()
        await self.fetch_user_stats()

    async def _refresh_after_entry_change(self, entry: FoodEntry) -> None:
        local_day = entry.date.astimezone(ZoneInfo(self.timezone_name)).date()
        await self.fetch_food_entries(local_day)
        await self.fetch_user_stats()

    def _apply_stats(self, stats: UserStats) -> None:
        self.user_stats = stats
        self._recompute_summary()
        self._changed(clear_error=True)

    def _set_entries(self, entries: list[FoodEntry]) -> None:
        self.food_entries = entries
        self._recompute_summary()
        self._changed(clear_error=True)

    def _remove_entry(self, index: int) -> None:
        del self.food_entries[index]
        self._recompute_summary()
        self._publish()

    def _restore_entry(self, preceding: list[str | None], entry: FoodEntry) -> None:
        """Put a removed entry back after its nearest surviving predecessor.

        Other deletes may have changed the list since the removal, so the
        position is found by id rather than by the original index.
        """
        if any(item.id == entry.id for item in self.food_entries):
            return
        current = [item.id for item in self.food_entries]
        index = 0
        for entry_id in reversed(preceding):
            if entry_id in current:
                index = current.index(entry_id) + 1
                break
        self.food_entries.insert(index, entry)
        self._recompute_summary()
        self._publish()

    def _recompute_summary(self) -> None:
        goal = (
            self.user_stats.daily_goal.calories_intake
            if self.user_stats is not None
            else self.default_calorie_goal
        )
        self.nutrition_summary = summarize(self.food_entries, goal)

    def _changed(self, clear_error: bool = False) -> None:
        if clear_error:
            self.error_message = None
        self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
