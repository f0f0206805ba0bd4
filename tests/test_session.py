"""Tests for the tracker session."""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import pytest

from peak_performance.domain.documents import encode_user_stats
from peak_performance.domain.errors import StoreError
from peak_performance.domain.models import DailyGoal, UserStats
from peak_performance.services.session import SessionSnapshot, TrackerSession
from peak_performance.services.summary import summarize
from tests.conftest import USER_ID, Stores, make_entry, make_workout

DAY = date(2024, 3, 1)
NOON = datetime(2024, 3, 1, 12, tzinfo=UTC)


class ManualRunner:
    """Blocking-call runner whose calls complete only when released."""

    def __init__(self) -> None:
        self.releases: list[asyncio.Event] = []

    async def __call__(self, func: Callable[..., Any], *args: Any) -> Any:
        release = asyncio.Event()
        self.releases.append(release)
        await release.wait()
        return func(*args)


def _seed_entries(stores: Stores, count: int = 3) -> list[str]:
    ids = []
    for index in range(count):
        created = stores.food_entry_service.add_entry(
            USER_ID,
            make_entry(
                name=f"Item {index}",
                calories=100 * (index + 1),
                date=NOON.replace(hour=8 + index),
            ),
        )
        assert created.id is not None
        ids.append(created.id)
    return ids


def test_fetch_user_stats_creates_defaults(stores: Stores) -> None:
    session = stores.session()

    assert asyncio.run(session.fetch_user_stats()) is True

    assert session.user_stats == UserStats.defaults(USER_ID)
    assert USER_ID in stores.stats_repository.documents
    assert session.error_message is None
    assert not session.is_loading


def test_fetch_user_stats_reports_undecodable_document(stores: Stores) -> None:
    document = encode_user_stats(UserStats.defaults(USER_ID))
    document["calories_burned"] = "lots"
    stores.stats_repository.insert_document(USER_ID, document)
    session = stores.session()

    assert asyncio.run(session.fetch_user_stats()) is False

    assert session.user_stats is None
    assert session.error_message is not None
    assert session.error_message.startswith("Error parsing user data")


def test_fetch_user_stats_reports_store_failure(stores: Stores) -> None:
    stores.stats_repository.failure = StoreError("offline")
    session = stores.session()

    assert asyncio.run(session.fetch_user_stats()) is False

    assert session.error_message == "Error fetching user stats: offline"


def test_summary_uses_stats_goal(stores: Stores) -> None:
    stores.stats_service.ensure_stats(USER_ID)
    stores.stats_service.update_goals(USER_ID, calories_intake=1500)
    _seed_entries(stores, count=1)
    session = stores.session()

    async def load() -> None:
        await session.fetch_user_stats()
        await session.fetch_food_entries(DAY)

    asyncio.run(load())

    assert session.nutrition_summary.total_calories == 100
    assert session.nutrition_summary.remaining_calories == 1400


def test_summary_falls_back_to_default_goal(stores: Stores) -> None:
    _seed_entries(stores, count=1)
    session = stores.session(default_calorie_goal=1800)

    asyncio.run(session.fetch_food_entries(DAY))

    assert session.nutrition_summary.remaining_calories == 1700


def test_delete_food_entry_rolls_back_on_store_failure(stores: Stores) -> None:
    ids = _seed_entries(stores)
    stores.food_repository.fail_deletes = True
    session = stores.session()
    views: list[SessionSnapshot] = []
    session.subscribe(views.append)

    async def scenario() -> bool:
        await session.fetch_user_stats()
        await session.fetch_food_entries(DAY)
        return await session.delete_food_entry(ids[1])

    before_ids: list[str | None] = []

    def remember_first_full_view(view: SessionSnapshot) -> None:
        if len(view.food_entries) == 3 and not before_ids:
            before_ids.extend(entry.id for entry in view.food_entries)

    session.subscribe(remember_first_full_view)

    assert asyncio.run(scenario()) is False

    assert [entry.id for entry in session.food_entries] == before_ids
    assert session.nutrition_summary == summarize(
        session.food_entries, DailyGoal().calories_intake
    )
    assert session.nutrition_summary.total_calories == 600
    assert any(len(view.food_entries) == 2 for view in views)
    assert session.error_message == "Error deleting food entry: network unavailable"
    stats = stores.stats_service.ensure_stats(USER_ID)
    assert stats.calories_consumed == 600
    assert stores.notifier.titles == []


def test_delete_food_entry_success(stores: Stores) -> None:
    ids = _seed_entries(stores)
    session = stores.session()

    async def scenario() -> bool:
        await session.fetch_user_stats()
        await session.fetch_food_entries(DAY)
        return await session.delete_food_entry(ids[1])

    assert asyncio.run(scenario()) is True

    assert ids[1] not in [entry.id for entry in session.food_entries]
    assert len(session.food_entries) == 2
    assert session.nutrition_summary.total_calories == 400
    assert session.user_stats is not None
    assert session.user_stats.calories_consumed == 400
    assert stores.notifier.titles == ["Food Entry Deleted"]


def test_delete_unknown_food_entry_is_ignored(stores: Stores) -> None:
    session = stores.session()

    assert asyncio.run(session.delete_food_entry("missing")) is False
    assert session.error_message is None


def test_stale_food_entry_fetch_is_discarded(stores: Stores) -> None:
    stores.food_entry_service.add_entry(USER_ID, make_entry(name="Day one", date=NOON))
    stores.food_entry_service.add_entry(
        USER_ID, make_entry(name="Day two", date=NOON.replace(day=2))
    )
    runner = ManualRunner()
    session = stores.session(run_blocking=runner)

    async def scenario() -> tuple[bool, bool]:
        first = asyncio.create_task(session.fetch_food_entries(DAY))
        await asyncio.sleep(0)
        second = asyncio.create_task(session.fetch_food_entries(date(2024, 3, 2)))
        await asyncio.sleep(0)
        runner.releases[1].set()
        second_applied = await second
        runner.releases[0].set()
        first_applied = await first
        return first_applied, second_applied

    first_applied, second_applied = asyncio.run(scenario())

    assert second_applied is True
    assert first_applied is False
    assert [entry.name for entry in session.food_entries] == ["Day two"]
    assert session.selected_day == date(2024, 3, 2)
    assert not session.is_loading


def test_add_food_entry_refreshes_day_and_stats(stores: Stores) -> None:
    session = stores.session()

    async def scenario() -> bool:
        await session.fetch_user_stats()
        return await session.add_food_entry(make_entry(calories=250, date=NOON))

    assert asyncio.run(scenario()) is True

    assert [entry.calories for entry in session.food_entries] == [250]
    assert session.selected_day == DAY
    assert session.user_stats is not None
    assert session.user_stats.calories_consumed == 250
    assert stores.notifier.titles == ["Food Entry Added"]


def test_add_food_entry_failure_leaves_mirror(stores: Stores) -> None:
    stores.food_repository.fail_creates = True
    session = stores.session()

    assert asyncio.run(session.add_food_entry(make_entry(date=NOON))) is False

    assert session.food_entries == []
    assert session.error_message == "Error adding food entry: network unavailable"
    assert stores.notifier.titles == []


def test_update_food_entry_refreshes(stores: Stores) -> None:
    ids = _seed_entries(stores, count=1)
    session = stores.session()
    changed = make_entry(name="Bigger portion", calories=180, date=NOON)

    assert asyncio.run(session.update_food_entry(ids[0], changed)) is True

    assert [entry.name for entry in session.food_entries] == ["Bigger portion"]
    assert session.user_stats is not None
    assert session.user_stats.calories_consumed == 180
    assert stores.notifier.titles == ["Food Entry Updated"]


def test_workout_lifecycle(stores: Stores) -> None:
    session = stores.session()

    async def add() -> bool:
        await session.fetch_user_stats()
        return await session.add_workout(make_workout(calories=300, duration=45))

    assert asyncio.run(add()) is True
    assert len(session.workouts) == 1
    assert session.user_stats is not None
    assert session.user_stats.calories_burned == 300
    workout_id = session.workouts[0].id
    assert workout_id is not None

    changed = make_workout(name="Evening Workout", calories=250, duration=50)
    assert asyncio.run(session.update_workout(workout_id, changed)) is True
    assert session.workouts[0].name == "Evening Workout"
    assert session.user_stats.calories_burned == 250

    assert asyncio.run(session.delete_workout(workout_id)) is True
    assert session.workouts == []
    assert session.user_stats.calories_burned == 0
    assert session.user_stats.active_minutes == 0
    assert stores.notifier.titles == [
        "Workout Added",
        "Workout Updated",
        "Workout Deleted",
    ]


def test_update_goals_notifies(stores: Stores) -> None:
    session = stores.session()

    assert asyncio.run(session.update_goals(steps=12000, water=None)) is True

    assert session.user_stats is not None
    assert session.user_stats.daily_goal.steps == 12000
    assert session.user_stats.daily_goal.water == 8
    assert stores.notifier.titles == ["Goals Updated"]


def test_update_user_stats(stores: Stores) -> None:
    session = stores.session()
    stats = UserStats(user_id=USER_ID, daily_steps=5000, bio="sprinter")

    assert asyncio.run(session.update_user_stats(stats)) is True

    assert session.user_stats is not None
    assert session.user_stats.daily_steps == 5000
    assert session.user_stats.bio == "sprinter"


def test_listeners_see_loading_and_can_unsubscribe(stores: Stores) -> None:
    session = stores.session()
    views: list[SessionSnapshot] = []
    unsubscribe = session.subscribe(views.append)

    asyncio.run(session.fetch_workouts())

    assert any(view.is_loading for view in views)
    assert views[-1].is_loading is False

    unsubscribe()
    seen = len(views)
    asyncio.run(session.fetch_workouts())
    assert len(views) == seen


def test_successful_fetch_clears_error(stores: Stores) -> None:
    stores.stats_repository.failure = StoreError("offline")
    session: TrackerSession = stores.session()
    asyncio.run(session.fetch_user_stats())
    assert session.error_message is not None

    stores.stats_repository.failure = None
    asyncio.run(session.fetch_user_stats())

    assert session.error_message is None


@pytest.mark.parametrize("release_order", [(0, 1), (1, 0)])
def test_overlapping_failed_deletes_restore_original_order(
    stores: Stores, release_order: tuple[int, int]
) -> None:
    _seed_entries(stores)
    stores.food_repository.fail_deletes = True
    session = stores.session()
    asyncio.run(session.fetch_food_entries(DAY))
    original = [entry.id for entry in session.food_entries]
    runner = ManualRunner()
    session.run_blocking = runner

    async def scenario() -> list[bool]:
        first = asyncio.create_task(session.delete_food_entry(str(original[0])))
        await asyncio.sleep(0)
        second = asyncio.create_task(session.delete_food_entry(str(original[2])))
        await asyncio.sleep(0)
        assert [entry.id for entry in session.food_entries] == [original[1]]
        tasks = [first, second]
        results = []
        for position in release_order:
            runner.releases[position].set()
            results.append(await tasks[position])
        return results

    assert asyncio.run(scenario()) == [False, False]

    assert [entry.id for entry in session.food_entries] == original
    assert session.nutrition_summary.total_calories == 600
