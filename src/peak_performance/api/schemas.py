"""Pydantic request models for the tracker API."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from peak_performance.domain.models import Exercise, ExerciseSet, MealType


def _new_id() -> str:
    return str(uuid4())


class ExerciseSetPayload(BaseModel):
    """One set of an exercise."""

    id: str = Field(default_factory=_new_id)
    weight: int
    reps: int
    is_completed: bool = False


class ExercisePayload(BaseModel):
    """Exercise performed during a workout."""

    id: str = Field(default_factory=_new_id)
    name: str
    category: str
    sets: list[ExerciseSetPayload] = Field(default_factory=list)

    def to_domain(self) -> Exercise:
        return Exercise(
            id=self.id,
            name=self.name,
            category=self.category,
            sets=[
                ExerciseSet(
                    id=item.id,
                    weight=item.weight,
                    reps=item.reps,
                    is_completed=item.is_completed,
                )
                for item in self.sets
            ],
        )


class WorkoutPayload(BaseModel):
    """Workout create/update body."""

    name: str
    date: datetime
    duration: int = Field(ge=0)
    calories: int = Field(ge=0)
    exercises: list[ExercisePayload] | None = None
    notes: str | None = None
    is_completed: bool = False


class FoodEntryPayload(BaseModel):
    """Food entry create/update body."""

    name: str
    calories: int
    protein: float
    carbs: float
    fat: float
    date: datetime
    meal_type: MealType
    serving_size: float
    serving_unit: str = "g"


class GoalsPayload(BaseModel):
    """Partial daily goal update."""

    steps: int | None = None
    calories: int | None = None
    calories_intake: int | None = None
    active_minutes: int | None = None
    water: int | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None


class ReminderPayload(BaseModel):
    """Daily workout reminder time."""

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
