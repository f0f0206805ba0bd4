"""Shared test fixtures."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from peak_performance.config import Settings
from peak_performance.containers import AppContainer
from peak_performance.domain.documents import Document
from peak_performance.domain.errors import (
    EntryNotFoundError,
    StoreError,
    TransactionConflictError,
)
from peak_performance.domain.models import FoodEntry, MealType, Workout
from peak_performance.services.food_entries import (
    FoodEntryRepository,
    FoodEntryService,
)
from peak_performance.services.notifications import (
    Notification,
    NotificationService,
    Notifier,
)
from peak_performance.services.session import TrackerSession
from peak_performance.services.stats import (
    StatsMutation,
    StatsService,
    UserStatsRepository,
)
from peak_performance.services.workouts import WorkoutRepository, WorkoutService

USER_ID = "user-1"


@dataclass
class InMemoryUserStatsRepository(UserStatsRepository):
    """In-memory stats store with versioned compare-and-set transactions."""

    documents: dict[str, Document] = field(default_factory=dict)
    versions: dict[str, int] = field(default_factory=dict)
    max_attempts: int = 5
    read_barrier: threading.Barrier | None = None
    before_commit: Callable[[str], None] | None = None
    failure: StoreError | None = None
    transaction_calls: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get_document(self, user_id: str) -> Document | None:
        if self.failure is not None:
            raise self.failure
        document = self.documents.get(user_id)
        return dict(document) if document is not None else None

    def insert_document(self, user_id: str, document: Document) -> None:
        with self._lock:
            self.documents[user_id] = dict(document)
            self.versions[user_id] = 1

    def merge_document(self, user_id: str, document: Document) -> None:
        self.run_transaction(user_id, lambda _current: document)

    def run_transaction(self, user_id: str, mutation: StatsMutation) -> Document:
        self.transaction_calls += 1
        if self.failure is not None:
            raise self.failure
        for attempt in range(1, self.max_attempts + 1):
            with self._lock:
                current = self.documents.get(user_id)
                snapshot = dict(current) if current is not None else None
                version = self.versions.get(user_id, 0)
            if self.read_barrier is not None and attempt == 1:
                self.read_barrier.wait(timeout=5)
            written = mutation(snapshot)
            if self.before_commit is not None:
                self.before_commit(user_id)
            with self._lock:
                if self.versions.get(user_id, 0) != version:
                    continue
                merged = {**(self.documents.get(user_id) or {}), **written}
                self.documents[user_id] = merged
                self.versions[user_id] = version + 1
                return dict(merged)
        raise TransactionConflictError(user_id, self.max_attempts)


@dataclass
class InMemoryFoodEntryRepository(FoodEntryRepository):
    """In-memory food entry repository for tests."""

    entries: dict[str, FoodEntry] = field(default_factory=dict)
    fail_deletes: bool = False
    fail_creates: bool = False
    deleted: list[str] = field(default_factory=list)

    def create_entry(self, entry: FoodEntry) -> str:
        if self.fail_creates:
            raise StoreError("network unavailable")
        entry_id = str(uuid4())
        self.entries[entry_id] = replace(entry, id=entry_id)
        return entry_id

    def get_entry(self, entry_id: str) -> FoodEntry | None:
        return self.entries.get(entry_id)

    def list_entries(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[FoodEntry]:
        selected = [
            entry
            for entry in self.entries.values()
            if entry.user_id == user_id
            and (start is None or entry.date >= start)
            and (end is None or entry.date < end)
        ]
        return sorted(selected, key=lambda entry: entry.date, reverse=True)

    def update_entry(self, entry_id: str, entry: FoodEntry) -> None:
        if entry_id not in self.entries:
            raise EntryNotFoundError("food_entries", entry_id)
        self.entries[entry_id] = replace(entry, id=entry_id)

    def delete_entry(self, entry_id: str) -> None:
        if self.fail_deletes:
            raise StoreError("network unavailable")
        if self.entries.pop(entry_id, None) is None:
            raise EntryNotFoundError("food_entries", entry_id)
        self.deleted.append(entry_id)


@dataclass
class InMemoryWorkoutRepository(WorkoutRepository):
    """In-memory workout repository for tests."""

    workouts: dict[str, Workout] = field(default_factory=dict)

    def create_workout(self, workout: Workout) -> Workout:
        workout_id = str(uuid4())
        created = replace(workout, id=workout_id, created_at=datetime.now(tz=UTC))
        self.workouts[workout_id] = created
        return created

    def get_workout(self, workout_id: str) -> Workout | None:
        return self.workouts.get(workout_id)

    def list_workouts(self, user_id: str) -> list[Workout]:
        selected = [w for w in self.workouts.values() if w.user_id == user_id]
        return sorted(selected, key=lambda workout: workout.date, reverse=True)

    def update_workout(self, workout_id: str, workout: Workout) -> None:
        if workout_id not in self.workouts:
            raise EntryNotFoundError("workouts", workout_id)
        self.workouts[workout_id] = replace(
            workout, created_at=self.workouts[workout_id].created_at
        )

    def delete_workout(self, workout_id: str) -> None:
        if self.workouts.pop(workout_id, None) is None:
            raise EntryNotFoundError("workouts", workout_id)


@dataclass
class RecordingNotifier(Notifier):
    """Notifier that records delivered notifications."""

    sent: list[Notification] = field(default_factory=list)
    fail: bool = False

    async def send(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError("delivery failed")
        self.sent.append(notification)

    @property
    def titles(self) -> list[str]:
        return [notification.title for notification in self.sent]


def make_entry(  # noqa: PLR0913
    name: str = "Grilled Chicken Breast",
    calories: int = 165,
    protein: float = 31,
    carbs: float = 0,
    fat: float = 3.6,
    date: datetime | None = None,
    meal_type: MealType = MealType.LUNCH,
    user_id: str = USER_ID,
    entry_id: str | None = None,
) -> FoodEntry:
    return FoodEntry(
        id=entry_id,
        user_id=user_id,
        name=name,
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        date=date or datetime.now(tz=UTC),
        meal_type=meal_type,
        serving_size=100,
        serving_unit="g",
    )


def make_workout(
    name: str = "Morning Workout",
    calories: int = 300,
    duration: int = 45,
    date: datetime | None = None,
    user_id: str = USER_ID,
) -> Workout:
    return Workout(
        user_id=user_id,
        name=name,
        date=date or datetime.now(tz=UTC),
        duration=duration,
        calories=calories,
        is_completed=True,
    )


@dataclass
class Stores:
    """Bundle of in-memory stores and the services built on them."""

    stats_repository: InMemoryUserStatsRepository
    food_repository: InMemoryFoodEntryRepository
    workout_repository: InMemoryWorkoutRepository
    notifier: RecordingNotifier
    stats_service: StatsService
    food_entry_service: FoodEntryService
    workout_service: WorkoutService
    notification_service: NotificationService

    def session(self, **kwargs: object) -> TrackerSession:
        return TrackerSession(
            user_id=USER_ID,
            stats_service=self.stats_service,
            food_entry_service=self.food_entry_service,
            workout_service=self.workout_service,
            notification_service=self.notification_service,
            **kwargs,  # type: ignore[arg-type]
        )


@pytest.fixture
def stores() -> Stores:
    stats_repository = InMemoryUserStatsRepository()
    food_repository = InMemoryFoodEntryRepository()
    workout_repository = InMemoryWorkoutRepository()
    notifier = RecordingNotifier()
    stats_service = StatsService(stats_repository)
    return Stores(
        stats_repository=stats_repository,
        food_repository=food_repository,
        workout_repository=workout_repository,
        notifier=notifier,
        stats_service=stats_service,
        food_entry_service=FoodEntryService(food_repository, stats_service),
        workout_service=WorkoutService(workout_repository, stats_service),
        notification_service=NotificationService(notifier),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def container(settings: Settings, stores: Stores) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        stats_service=stores.stats_service,
        food_entry_service=stores.food_entry_service,
        workout_service=stores.workout_service,
        notification_service=stores.notification_service,
        close_resources=close_resources,
    )
