"""Macro arithmetic."""

from collections.abc import Iterable

from meal_planner.domain.nutrition import Macros, NutritionProfile


def scale_macros(profile: NutritionProfile, grams: float) -> Macros:
    """Scale a per-100g profile to `grams`.

    Calories round to whole numbers, grams of macronutrients to one decimal.
    """
    factor = grams / 100.0
    return Macros(
        calories=round(profile.calories * factor),
        protein_g=round(profile.protein_g * factor, 1),
        carbs_g=round(profile.carbs_g * factor, 1),
        fat_g=round(profile.fat_g * factor, 1),
    )


def sum_macros(items: Iterable[Macros]) -> Macros:
    total = Macros.zero()
    for item in items:
        total = total + item
    return total


def calorie_discrepancy(macros: Macros) -> float:
    """Return calories minus the 4/4/9 Atwater estimate."""
    atwater = macros.protein_g * 4 + macros.carbs_g * 4 + macros.fat_g * 9
    return macros.calories - atwater
