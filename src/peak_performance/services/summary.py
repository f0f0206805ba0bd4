"""Nutrition summary aggregation."""

from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from peak_performance.domain.models import FoodEntry
from peak_performance.domain.nutrition import NutritionSummary

DEFAULT_CALORIE_INTAKE_GOAL = 2000


def summarize(
    entries: Iterable[FoodEntry], calorie_goal: int = DEFAULT_CALORIE_INTAKE_GOAL
) -> NutritionSummary:
    """Fold food entries into a summary.

    The summary is always recomputed from the full entry set, so it cannot
    drift from the entries it describes.
    """
    calories = 0
    protein = 0.0
    carbs = 0.0
    fat = 0.0
    for entry in entries:
        calories += entry.calories
        protein += entry.protein
        carbs += entry.carbs
        fat += entry.fat
    return NutritionSummary(
        total_calories=calories,
        total_protein=protein,
        total_carbs=carbs,
        total_fat=fat,
        remaining_calories=max(0, calorie_goal - calories),
    )


def day_bounds(day: date, timezone_name: str) -> tuple[datetime, datetime]:
    """Return the UTC start and exclusive end of a local calendar day."""
    tz = ZoneInfo(timezone_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def today(timezone_name: str) -> date:
    """Return the current local date in a timezone."""
    return datetime.now(tz=ZoneInfo(timezone_name)).date()
