"""Nutrition domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Macros:
    """Calories and macronutrient grams for an ingredient, meal or day."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    @classmethod
    def zero(cls) -> "Macros":
        return cls(0.0, 0.0, 0.0, 0.0)

    def __add__(self, other: "Macros") -> "Macros":
        return Macros(
            calories=self.calories + other.calories,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
        )


@dataclass(frozen=True)
class NutritionProfile:
    """Per-100g macro values resolved from the nutrition provider."""

    fdc_id: int
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


@dataclass(frozen=True)
class FoodCandidate:
    """One search hit from FoodData Central, in provider-ranked order."""

    fdc_id: int
    description: str
    score: float | None = None
    data_type: str | None = None


@dataclass(frozen=True)
class CacheEntry:
    """Cached profile keyed by normalized ingredient name."""

    ingredient_name: str
    profile: NutritionProfile
    updated_at: datetime


@dataclass(frozen=True)
class FlatNutrient:
    """Nutrient row in the abridged shape (`nutrientNumber`, `value`)."""

    number: str
    name: str
    value: float
    unit: str | None = None


@dataclass(frozen=True)
class NestedNutrient:
    """Nutrient row in the full shape (`nutrient.number`, `amount`)."""

    number: str
    name: str
    amount: float
    unit: str | None = None


NutrientRow = FlatNutrient | NestedNutrient
