"""Nutrition reference block for plan-generation prompts."""

from collections.abc import Iterable

from meal_planner.domain.nutrition import CacheEntry


def build_nutrition_reference(entries: Iterable[CacheEntry]) -> str:
    """Render cached profiles as a prompt section, or "" when there are none."""
    lines = [
        f"- {entry.ingredient_name}: {entry.profile.calories:g} cal, "
        f"{entry.profile.protein_g:g}g protein, {entry.profile.carbs_g:g}g carbs, "
        f"{entry.profile.fat_g:g}g fat per 100 g"
        for entry in entries
    ]
    if not lines:
        return ""
    body = "\n".join(lines)
    return (
        "\n## NUTRITION REFERENCE (use these exact values)\n"
        "The following ingredients have validated nutrition data. "
        "Use these exact values when calculating macros:\n"
        f"{body}\n"
    )
