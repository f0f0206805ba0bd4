"""Nutrition summary domain model."""

from dataclasses import dataclass

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


@dataclass(frozen=True)
class NutritionSummary:
    """Totals derived from one day's food entries. Never persisted."""

    total_calories: int = 0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0
    remaining_calories: int = 0

    @property
    def protein_percentage(self) -> float:
        return self._percentage(self.total_protein * PROTEIN_KCAL_PER_G)

    @property
    def carbs_percentage(self) -> float:
        return self._percentage(self.total_carbs * CARBS_KCAL_PER_G)

    @property
    def fat_percentage(self) -> float:
        return self._percentage(self.total_fat * FAT_KCAL_PER_G)

    @property
    def protein_calories(self) -> int:
        return int(self.total_protein * PROTEIN_KCAL_PER_G)

    @property
    def carbs_calories(self) -> int:
        return int(self.total_carbs * CARBS_KCAL_PER_G)

    @property
    def fat_calories(self) -> int:
        return int(self.total_fat * FAT_KCAL_PER_G)

    @property
    def formatted_protein(self) -> str:
        return f"{self.total_protein:.1f} g"

    @property
    def formatted_carbs(self) -> str:
        return f"{self.total_carbs:.1f} g"

    @property
    def formatted_fat(self) -> str:
        return f"{self.total_fat:.1f} g"

    def _percentage(self, macro_calories: float) -> float:
        if self.total_calories <= 0:
            return 0.0
        return min(100.0, macro_calories / self.total_calories * 100)
