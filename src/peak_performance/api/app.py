"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from peak_performance.api.schemas import (
    FoodEntryPayload,
    GoalsPayload,
    ReminderPayload,
    WorkoutPayload,
)
from peak_performance.app_logging import configure_logging
from peak_performance.containers import AppContainer
from peak_performance.domain.errors import EntryNotFoundError, StoreError
from peak_performance.domain.models import FoodEntry, UserStats, Workout
from peak_performance.domain.nutrition import NutritionSummary
from peak_performance.services.notifications import (
    DailyTrigger,
    Notification,
    NotificationService,
)
from peak_performance.services.summary import summarize, today

SECONDS_PER_MINUTE = 60


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    default_timezone = container.settings.default_timezone

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        reminders = asyncio.create_task(
            _run_reminders(
                app.state.container.notification_service, ZoneInfo(default_timezone)
            )
        )
        yield
        reminders.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminders
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(EntryNotFoundError)
    async def not_found(_request: Request, exc: EntryNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(StoreError)
    async def store_failure(_request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store request failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/users/{user_id}/stats")
    async def get_stats(user_id: str, request: Request) -> dict[str, object]:
        """Return the user's stats, creating defaults on first use."""
        state_container: AppContainer = request.app.state.container
        stats = state_container.stats_service.ensure_stats(user_id)
        return _format_stats(stats)

    @app.put("/users/{user_id}/stats/goals")
    async def update_goals(
        user_id: str, payload: GoalsPayload, request: Request
    ) -> dict[str, object]:
        """Replace the given daily goals."""
        state_container: AppContainer = request.app.state.container
        stats = state_container.stats_service.update_goals(
            user_id, **payload.model_dump()
        )
        await state_container.notification_service.send(
            "Goals Updated", "Your fitness goals have been updated successfully!"
        )
        return _format_stats(stats)

    @app.get("/users/{user_id}/workouts")
    async def list_workouts(user_id: str, request: Request) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        workouts = state_container.workout_service.list_workouts(user_id)
        return {"workouts": [_format_workout(workout) for workout in workouts]}

    @app.post("/users/{user_id}/workouts", status_code=status.HTTP_201_CREATED)
    async def add_workout(
        user_id: str, payload: WorkoutPayload, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        created = state_container.workout_service.add_workout(
            user_id, _workout_from_payload(user_id, payload, default_timezone)
        )
        await state_container.notification_service.send(
            "Workout Added",
            f"Your {created.name} workout has been added successfully!",
        )
        return _format_workout(created)

    @app.put("/users/{user_id}/workouts/{workout_id}")
    async def update_workout(
        user_id: str, workout_id: str, payload: WorkoutPayload, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        updated = state_container.workout_service.update_workout(
            user_id,
            workout_id,
            _workout_from_payload(user_id, payload, default_timezone),
        )
        await state_container.notification_service.send(
            "Workout Updated",
            f"Your {updated.name} workout has been updated successfully!",
        )
        return _format_workout(updated)

    @app.delete("/users/{user_id}/workouts/{workout_id}")
    async def delete_workout(
        user_id: str, workout_id: str, request: Request
    ) -> dict[str, str]:
        state_container: AppContainer = request.app.state.container
        state_container.workout_service.delete_workout(user_id, workout_id)
        await state_container.notification_service.send(
            "Workout Deleted", "Your workout has been deleted successfully."
        )
        return {"status": "deleted"}

    @app.get("/users/{user_id}/food-entries")
    async def list_food_entries(
        user_id: str,
        request: Request,
        day: date | None = None,
        timezone: str | None = None,
    ) -> dict[str, object]:
        """Return the entries of a local day (today by default)."""
        state_container: AppContainer = request.app.state.container
        timezone_name = _timezone_name(timezone, default_timezone)
        entries = state_container.food_entry_service.list_for_day(
            user_id, day or today(timezone_name), timezone_name
        )
        return {"food_entries": [_format_entry(entry) for entry in entries]}

    @app.post("/users/{user_id}/food-entries", status_code=status.HTTP_201_CREATED)
    async def add_food_entry(
        user_id: str, payload: FoodEntryPayload, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        created = state_container.food_entry_service.add_entry(
            user_id, _entry_from_payload(user_id, payload, default_timezone)
        )
        await state_container.notification_service.send(
            "Food Entry Added", f"Your {created.name} has been logged successfully!"
        )
        return _format_entry(created)

    @app.put("/users/{user_id}/food-entries/{entry_id}")
    async def update_food_entry(
        user_id: str, entry_id: str, payload: FoodEntryPayload, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        updated = state_container.food_entry_service.update_entry(
            user_id,
            entry_id,
            _entry_from_payload(user_id, payload, default_timezone),
        )
        await state_container.notification_service.send(
            "Food Entry Updated", f"Your {updated.name} has been updated successfully!"
        )
        return _format_entry(updated)

    @app.delete("/users/{user_id}/food-entries/{entry_id}")
    async def delete_food_entry(
        user_id: str, entry_id: str, request: Request
    ) -> dict[str, str]:
        state_container: AppContainer = request.app.state.container
        service = state_container.food_entry_service
        service.delete_entry(user_id, service.get_entry(user_id, entry_id))
        await state_container.notification_service.send(
            "Food Entry Deleted", "Your food entry has been deleted successfully."
        )
        return {"status": "deleted"}

    @app.get("/users/{user_id}/nutrition-summary")
    async def nutrition_summary(
        user_id: str,
        request: Request,
        day: date | None = None,
        timezone: str | None = None,
    ) -> dict[str, object]:
        """Return the summary of a local day's food entries."""
        state_container: AppContainer = request.app.state.container
        timezone_name = _timezone_name(timezone, default_timezone)
        selected = day or today(timezone_name)
        entries = state_container.food_entry_service.list_for_day(
            user_id, selected, timezone_name
        )
        stats = state_container.stats_service.ensure_stats(user_id)
        summary = summarize(entries, stats.daily_goal.calories_intake)
        return {"day": selected.isoformat(), **_format_summary(summary)}

    @app.put("/reminders/workout")
    async def schedule_reminder(
        payload: ReminderPayload, request: Request
    ) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        reminder = state_container.notification_service.schedule_workout_reminder(
            payload.hour, payload.minute
        )
        return _format_reminder(reminder)

    @app.delete("/reminders/workout")
    async def cancel_reminder(request: Request) -> dict[str, str]:
        state_container: AppContainer = request.app.state.container
        state_container.notification_service.cancel_workout_reminders()
        return {"status": "cancelled"}

    @app.get("/reminders")
    async def list_reminders(request: Request) -> dict[str, object]:
        state_container: AppContainer = request.app.state.container
        reminders = state_container.notification_service.pending_reminders()
        return {"reminders": [_format_reminder(reminder) for reminder in reminders]}

    return app


async def _run_reminders(service: NotificationService, zone: tzinfo) -> None:
    while True:
        now = datetime.now(tz=zone)
        await service.fire_due(now)
        await asyncio.sleep(SECONDS_PER_MINUTE - now.second)


def _timezone_name(requested: str | None, default: str) -> str:
    if not requested:
        return default
    try:
        ZoneInfo(requested)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown timezone: {requested}",
        ) from exc
    return requested


def _localize(moment: datetime, timezone_name: str) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=ZoneInfo(timezone_name))
    return moment


def _entry_from_payload(
    user_id: str, payload: FoodEntryPayload, timezone_name: str
) -> FoodEntry:
    return FoodEntry(
        user_id=user_id,
        name=payload.name,
        calories=payload.calories,
        protein=payload.protein,
        carbs=payload.carbs,
        fat=payload.fat,
        date=_localize(payload.date, timezone_name),
        meal_type=payload.meal_type,
        serving_size=payload.serving_size,
        serving_unit=payload.serving_unit,
    )


def _workout_from_payload(
    user_id: str, payload: WorkoutPayload, timezone_name: str
) -> Workout:
    exercises = (
        [exercise.to_domain() for exercise in payload.exercises]
        if payload.exercises is not None
        else None
    )
    return Workout(
        user_id=user_id,
        name=payload.name,
        date=_localize(payload.date, timezone_name),
        duration=payload.duration,
        calories=payload.calories,
        exercises=exercises,
        notes=payload.notes,
        is_completed=payload.is_completed,
    )


def _format_entry(entry: FoodEntry) -> dict[str, object]:
    return {
        "id": entry.id,
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


def _format_workout(workout: Workout) -> dict[str, object]:
    exercises = None
    if workout.exercises is not None:
        exercises = [
            {
                "id": exercise.id,
                "name": exercise.name,
                "category": exercise.category,
                "total_weight": exercise.total_weight,
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
        "id": workout.id,
        "user_id": workout.user_id,
        "name": workout.name,
        "date": workout.date.isoformat(),
        "duration": workout.duration,
        "formatted_duration": workout.formatted_duration,
        "calories": workout.calories,
        "exercises": exercises,
        "notes": workout.notes,
        "is_completed": workout.is_completed,
        "created_at": workout.created_at.isoformat() if workout.created_at else None,
    }


def _format_stats(stats: UserStats) -> dict[str, object]:
    goal = stats.daily_goal
    return {
        "user_id": stats.user_id,
        "daily_steps": stats.daily_steps,
        "calories_burned": stats.calories_burned,
        "calories_consumed": stats.calories_consumed or 0,
        "active_minutes": stats.active_minutes,
        "distance_walked": stats.distance_walked,
        "water_intake": stats.water_intake,
        "bio": stats.bio,
        "photo_url": stats.photo_url,
        "daily_goal": {
            "steps": goal.steps,
            "calories": goal.calories,
            "calories_intake": goal.calories_intake,
            "active_minutes": goal.active_minutes,
            "water": goal.water,
            "protein": goal.protein,
            "carbs": goal.carbs,
            "fat": goal.fat,
        },
        "progress": {
            "steps": stats.steps_progress,
            "calories": stats.calories_progress,
            "calories_intake": stats.calories_intake_progress,
        },
        "net_calories": stats.net_calories,
        "remaining_calories": stats.remaining_calories,
        "remaining_calories_intake": stats.remaining_calories_intake,
    }


def _format_summary(summary: NutritionSummary) -> dict[str, object]:
    return {
        "total_calories": summary.total_calories,
        "total_protein": summary.total_protein,
        "total_carbs": summary.total_carbs,
        "total_fat": summary.total_fat,
        "remaining_calories": summary.remaining_calories,
        "protein_percentage": summary.protein_percentage,
        "carbs_percentage": summary.carbs_percentage,
        "fat_percentage": summary.fat_percentage,
    }


def _format_reminder(reminder: Notification) -> dict[str, object]:
    trigger = reminder.trigger
    return {
        "identifier": reminder.identifier,
        "title": reminder.title,
        "body": reminder.body,
        "hour": trigger.hour if isinstance(trigger, DailyTrigger) else None,
        "minute": trigger.minute if isinstance(trigger, DailyTrigger) else None,
    }
