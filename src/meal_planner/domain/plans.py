"""Domain models for generated weekly meal plans."""

from dataclasses import dataclass, field
from enum import StrEnum

from meal_planner.domain.nutrition import Macros


class IngredientCategory(StrEnum):
    """Grocery aisle for an ingredient."""

    PRODUCE = "produce"
    PROTEIN = "protein"
    DAIRY = "dairy"
    GRAINS = "grains"
    PANTRY = "pantry"
    FROZEN = "frozen"
    OTHER = "other"


class MealType(StrEnum):
    """Slot a meal occupies within a day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class IngredientRecord:
    """One line item within a meal.

    `amount` stays a string because it comes straight from the model output;
    the adjuster writes rescaled amounts back in the same form.
    """

    name: str
    amount: str
    unit: str
    category: IngredientCategory = IngredientCategory.OTHER
    macros: Macros | None = None


@dataclass(frozen=True)
class Meal:
    """A meal with its ingredients and aggregate macros."""

    name: str
    type: MealType
    prep_time_minutes: int | None
    ingredients: list[IngredientRecord]
    macros: Macros


@dataclass(frozen=True)
class DayPlan:
    """One day of a weekly plan."""

    day: str
    meals: list[Meal]
    daily_totals: Macros


@dataclass(frozen=True)
class WeeklyPlan:
    """Ordered list of day plans."""

    days: list[DayPlan] = field(default_factory=list)


@dataclass(frozen=True)
class UserTargets:
    """Daily macro targets for a user."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    def as_macros(self) -> Macros:
        return Macros(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )
