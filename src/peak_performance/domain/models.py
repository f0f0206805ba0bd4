"""Domain models for workouts, food entries and user stats."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import uuid4

MIN_SERVING_SIZE = 0.1
DEFAULT_SERVING_UNIT = "g"


def _new_id() -> str:
    return str(uuid4())


class MealType(str, Enum):
    """Meal category of a food entry."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACK = "Snack"


@dataclass
class FoodEntry:
    """A logged food item with its macros.

    Nutrient quantities are clamped to zero and the serving size to a floor of
    0.1 whenever an entry is built, including when it is decoded from a stored
    document.
    """

    user_id: str
    name: str
    calories: int
    protein: float
    carbs: float
    fat: float
    date: datetime
    meal_type: MealType
    serving_size: float
    serving_unit: str = DEFAULT_SERVING_UNIT
    id: str | None = None

    def __post_init__(self) -> None:
        self.calories = max(0, int(self.calories))
        self.protein = max(0.0, float(self.protein))
        self.carbs = max(0.0, float(self.carbs))
        self.fat = max(0.0, float(self.fat))
        self.serving_size = max(MIN_SERVING_SIZE, float(self.serving_size))
        self.serving_unit = self.serving_unit or DEFAULT_SERVING_UNIT
        self.meal_type = MealType(self.meal_type)

    @property
    def calories_per_serving(self) -> float:
        """Calories per unit of serving size."""
        return _per_serving(self.calories, self.serving_size)

    @property
    def protein_per_serving(self) -> float:
        """Protein grams per unit of serving size."""
        return _per_serving(self.protein, self.serving_size)

    @property
    def carbs_per_serving(self) -> float:
        """Carb grams per unit of serving size."""
        return _per_serving(self.carbs, self.serving_size)

    @property
    def fat_per_serving(self) -> float:
        """Fat grams per unit of serving size."""
        return _per_serving(self.fat, self.serving_size)


@dataclass(frozen=True)
class ExerciseSet:
    """One set of an exercise."""

    weight: int
    reps: int
    is_completed: bool = False
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class Exercise:
    """An exercise performed during a workout."""

    name: str
    category: str
    sets: list[ExerciseSet] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    @property
    def total_weight(self) -> int:
        """Total lifted volume (weight times reps) across all sets."""
        return sum(item.weight * item.reps for item in self.sets)


@dataclass
class Workout:
    """A logged workout session."""

    user_id: str
    name: str
    date: datetime
    duration: int
    calories: int
    exercises: list[Exercise] | None = None
    notes: str | None = None
    is_completed: bool = False
    created_at: datetime | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        self.duration = max(0, int(self.duration))
        self.calories = max(0, int(self.calories))

    @property
    def formatted_duration(self) -> str:
        """Duration rendered as ``1h 5m`` or ``45m``."""
        hours, minutes = divmod(self.duration, 60)
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"


@dataclass
class DailyGoal:
    """Per-user daily targets used for progress ratios."""

    steps: int = 10000
    calories: int = 500
    calories_intake: int = 2000
    active_minutes: int = 30
    water: int = 8
    protein: float = 150.0
    carbs: float = 225.0
    fat: float = 67.0

    def __post_init__(self) -> None:
        # Ratio denominators never drop below 1.
        self.steps = max(1, int(self.steps))
        self.calories = max(1, int(self.calories))
        self.calories_intake = max(1, int(self.calories_intake))
        self.active_minutes = max(1, int(self.active_minutes))
        self.water = max(0, int(self.water))
        self.protein = max(0.0, float(self.protein))
        self.carbs = max(0.0, float(self.carbs))
        self.fat = max(0.0, float(self.fat))

    def with_updates(self, **changes: object) -> "DailyGoal":
        """Return a copy with the given goals replaced, ignoring ``None``."""
        return replace(
            self, **{key: value for key, value in changes.items() if value is not None}
        )


@dataclass
class UserStats:
    """Cumulative counters and goals for one user."""

    user_id: str
    daily_steps: int = 0
    calories_burned: int = 0
    calories_consumed: int | None = 0
    active_minutes: int = 0
    distance_walked: float = 0.0
    water_intake: int = 0
    bio: str | None = None
    photo_url: str | None = None
    daily_goal: DailyGoal = field(default_factory=DailyGoal)

    def __post_init__(self) -> None:
        self.daily_steps = max(0, int(self.daily_steps))
        self.calories_burned = max(0, int(self.calories_burned))
        if self.calories_consumed is not None:
            self.calories_consumed = max(0, int(self.calories_consumed))
        self.active_minutes = max(0, int(self.active_minutes))
        self.distance_walked = max(0.0, float(self.distance_walked))
        self.water_intake = max(0, int(self.water_intake))

    @classmethod
    def defaults(cls, user_id: str) -> "UserStats":
        """Fresh stats created on a user's first sign-in."""
        return cls(user_id=user_id, bio="")

    @property
    def steps_progress(self) -> float:
        return _progress(self.daily_steps, self.daily_goal.steps)

    @property
    def calories_progress(self) -> float:
        return _progress(self.calories_burned, self.daily_goal.calories)

    @property
    def calories_intake_progress(self) -> float:
        return _progress(self.calories_consumed or 0, self.daily_goal.calories_intake)

    @property
    def net_calories(self) -> int:
        return (self.calories_consumed or 0) - self.calories_burned

    @property
    def remaining_calories(self) -> int:
        """Calories still to burn today."""
        return max(0, self.daily_goal.calories - self.calories_burned)

    @property
    def remaining_calories_intake(self) -> int:
        """Calories still available to eat today."""
        return max(0, self.daily_goal.calories_intake - (self.calories_consumed or 0))


def _per_serving(value: float, serving_size: float) -> float:
    if serving_size <= 0:
        return 0.0
    return value / serving_size


def _progress(value: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return min(1.0, value / goal)
