"""Codecs between domain models and stored documents.

Decoding never raises. Every decoder returns a tagged result so callers can
tell a clean read (``Ok``) from one that was healed with validated defaults
(``Recovered``) and one that could not be used at all (``Fatal``).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from peak_performance.domain.models import (
    DailyGoal,
    Exercise,
    ExerciseSet,
    FoodEntry,
    MealType,
    UserStats,
    Workout,
)

T = TypeVar("T")

Document = dict[str, object]


@dataclass(frozen=True)
class Ok(Generic[T]):
    """The document decoded cleanly."""

    value: T


@dataclass(frozen=True)
class Recovered(Generic[T]):
    """The document was unusable in part and defaults were substituted."""

    value: T
    cause: str


@dataclass(frozen=True)
class Fatal:
    """The document could not be decoded."""

    error: str


DecodeResult = Ok[T] | Recovered[T] | Fatal


class _FieldError(ValueError):
    pass


def decode_daily_goal(raw: object) -> Ok[DailyGoal] | Recovered[DailyGoal]:
    """Decode an embedded goal, falling back to the default goal."""
    if raw is None:
        return Recovered(DailyGoal(), "daily goal missing")
    if not isinstance(raw, Mapping):
        return Recovered(DailyGoal(), "daily goal is not a mapping")
    defaults = DailyGoal()
    try:
        goal = DailyGoal(
            steps=_int(raw, "steps", defaults.steps),
            calories=_int(raw, "calories", defaults.calories),
            calories_intake=_int(raw, "calories_intake", defaults.calories_intake),
            active_minutes=_int(raw, "active_minutes", defaults.active_minutes),
            water=_int(raw, "water", defaults.water),
            protein=_float(raw, "protein", defaults.protein),
            carbs=_float(raw, "carbs", defaults.carbs),
            fat=_float(raw, "fat", defaults.fat),
        )
    except _FieldError as exc:
        return Recovered(DailyGoal(), f"daily goal undecodable: {exc}")
    return Ok(goal)


def decode_user_stats(document: object, user_id: str) -> DecodeResult[UserStats]:
    """Decode a ``users`` document.

    A missing document heals to default stats. A malformed goal heals to the
    default goal. Malformed counters are fatal.
    """
    if document is None:
        return Recovered(UserStats.defaults(user_id), "stats document missing")
    if not isinstance(document, Mapping):
        return Fatal("stats document is not a mapping")
    try:
        counters = {
            "daily_steps": _int(document, "daily_steps", 0),
            "calories_burned": _int(document, "calories_burned", 0),
            "calories_consumed": _int(document, "calories_consumed", 0),
            "active_minutes": _int(document, "active_minutes", 0),
            "distance_walked": _float(document, "distance_walked", 0.0),
            "water_intake": _int(document, "water_intake", 0),
            "bio": _optional_str(document, "bio"),
            "photo_url": _optional_str(document, "photo_url"),
        }
    except _FieldError as exc:
        return Fatal(f"stats document undecodable: {exc}")

    goal_result = decode_daily_goal(document.get("daily_goal"))
    stats = UserStats(user_id=user_id, daily_goal=goal_result.value, **counters)
    if isinstance(goal_result, Recovered):
        return Recovered(stats, goal_result.cause)
    return Ok(stats)


def encode_daily_goal(goal: DailyGoal) -> Document:
    return {
        "steps": goal.steps,
        "calories": goal.calories,
        "calories_intake": goal.calories_intake,
        "active_minutes": goal.active_minutes,
        "water": goal.water,
        "protein": goal.protein,
        "carbs": goal.carbs,
        "fat": goal.fat,
    }


def encode_user_stats(stats: UserStats) -> Document:
    """Encode the stats fields only; other document fields are left alone."""
    return {
        "daily_steps": stats.daily_steps,
        "calories_burned": stats.calories_burned,
        "calories_consumed": stats.calories_consumed,
        "active_minutes": stats.active_minutes,
        "distance_walked": stats.distance_walked,
        "water_intake": stats.water_intake,
        "bio": stats.bio,
        "photo_url": stats.photo_url,
        "daily_goal": encode_daily_goal(stats.daily_goal),
    }


def decode_food_entry(document: Mapping[str, object]) -> DecodeResult[FoodEntry]:
    """Decode a ``food_entries`` document."""
    try:
        entry = FoodEntry(
            id=_optional_str(document, "id"),
            user_id=_required_str(document, "user_id"),
            name=_required_str(document, "name"),
            calories=_int(document, "calories"),
            protein=_float(document, "protein"),
            carbs=_float(document, "carbs"),
            fat=_float(document, "fat"),
            date=_datetime(document, "date"),
            meal_type=_meal_type(document.get("meal_type")),
            serving_size=_float(document, "serving_size"),
            serving_unit=_optional_str(document, "serving_unit") or "",
        )
    except _FieldError as exc:
        return Fatal(f"food entry undecodable: {exc}")
    return Ok(entry)


def encode_food_entry(entry: FoodEntry) -> Document:
    """Encode an entry without its id."""
    return {
        "user_id": entry.user_id,
        "name": entry.name,
        "calories": entry.calories,
        "protein": entry.protein,
        "carbs": entry.carbs,
        "fat": entry.fat,
        "date": entry.date.isoformat(),
        "meal_type": entry.meal_type.value,
        "serving_size": entry.serving_size,
        "serving_unit": entry.serving_unit,
    }


def decode_workout(document: Mapping[str, object]) -> DecodeResult[Workout]:
    """Decode a ``workouts`` document."""
    try:
        raw_exercises = document.get("exercises")
        exercises = (
            [_exercise(item) for item in _list(raw_exercises, "exercises")]
            if raw_exercises is not None
            else None
        )
        created_at = (
            _datetime(document, "created_at")
            if document.get("created_at") is not None
            else None
        )
        workout = Workout(
            id=_optional_str(document, "id"),
            user_id=_required_str(document, "user_id"),
            name=_required_str(document, "name"),
            date=_datetime(document, "date"),
            duration=_int(document, "duration"),
            calories=_int(document, "calories"),
            exercises=exercises,
            notes=_optional_str(document, "notes"),
            is_completed=bool(document.get("is_completed", False)),
            created_at=created_at,
        )
    except _FieldError as exc:
        return Fatal(f"workout undecodable: {exc}")
    return Ok(workout)


def encode_workout(workout: Workout) -> Document:
    """Encode a workout without its id or server-assigned creation time."""
    exercises = None
    if workout.exercises is not None:
        exercises = [
            {
                "id": exercise.id,
                "name": exercise.name,
                "category": exercise.category,
                "sets": [
                    {
                        "id": item.id,
                        "weight": item.weight,
                        "reps": item.reps,
                        "is_completed": item.is_completed,
                    }
                    for item in exercise.sets
                ],
            }
            for exercise in workout.exercises
        ]
    return {
        "user_id": workout.user_id,
        "name": workout.name,
        "date": workout.date.isoformat(),
        "duration": workout.duration,
        "calories": workout.calories,
        "exercises": exercises,
        "notes": workout.notes,
        "is_completed": workout.is_completed,
    }


def _exercise(raw: object) -> Exercise:
    if not isinstance(raw, Mapping):
        raise _FieldError("exercise is not a mapping")
    sets = []
    for item in _list(raw.get("sets", []), "sets"):
        if not isinstance(item, Mapping):
            raise _FieldError("exercise set is not a mapping")
        sets.append(
            ExerciseSet(
                id=_required_str(item, "id"),
                weight=_int(item, "weight"),
                reps=_int(item, "reps"),
                is_completed=bool(item.get("is_completed", False)),
            )
        )
    return Exercise(
        id=_required_str(raw, "id"),
        name=_required_str(raw, "name"),
        category=_required_str(raw, "category"),
        sets=sets,
    )


_MISSING = object()


def _int(document: Mapping[str, object], key: str, default: object = _MISSING) -> int:
    value = document.get(key)
    if value is None:
        if default is _MISSING:
            raise _FieldError(f"{key} is required")
        return default  # type: ignore[return-value]
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _FieldError(f"{key} must be a number")
    return int(value)


def _float(
    document: Mapping[str, object], key: str, default: object = _MISSING
) -> float:
    value = document.get(key)
    if value is None:
        if default is _MISSING:
            raise _FieldError(f"{key} is required")
        return default  # type: ignore[return-value]
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _FieldError(f"{key} must be a number")
    return float(value)


def _required_str(document: Mapping[str, object], key: str) -> str:
    value = document.get(key)
    if not isinstance(value, str):
        raise _FieldError(f"{key} must be a string")
    return value


def _optional_str(document: Mapping[str, object], key: str) -> str | None:
    value = document.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _FieldError(f"{key} must be a string")
    return value


def _datetime(document: Mapping[str, object], key: str) -> datetime:
    value = document.get(key)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as exc:
            raise _FieldError(f"{key} is not an ISO timestamp") from exc
    if not isinstance(value, datetime):
        raise _FieldError(f"{key} must be a timestamp")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _meal_type(value: object) -> MealType:
    try:
        return MealType(value)
    except ValueError as exc:
        raise _FieldError(f"unknown meal type {value!r}") from exc


def _list(value: object, key: str) -> list[object]:
    if not isinstance(value, list):
        raise _FieldError(f"{key} must be a list")
    return value
