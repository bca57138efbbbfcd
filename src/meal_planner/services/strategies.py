"""Ordered fallback strategies for an ingredient's macro snapshot.

Strategies are tried in list order and the first non-None resolution wins:
a cache/provider lookup first, then the estimate the plan already carried.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from meal_planner.domain.nutrition import Macros, NutritionProfile
from meal_planner.domain.plans import IngredientRecord
from meal_planner.domain.units import Confidence
from meal_planner.services.macros import scale_macros
from meal_planner.services.normalizer import normalize_ingredient_name
from meal_planner.services.units import convert_to_grams

ProfileLookup = Callable[[str], Awaitable[NutritionProfile | None]]


class ResolutionSource(StrEnum):
    LOOKUP = "lookup"
    ESTIMATE = "estimate"


@dataclass(frozen=True)
class Resolution:
    """Macro snapshot for one ingredient and where it came from."""

    macros: Macros | None
    source: ResolutionSource
    confidence: Confidence | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is ResolutionSource.ESTIMATE


class MacroStrategy(Protocol):
    """One step of the fallback chain."""

    async def resolve(self, ingredient: IngredientRecord) -> Resolution | None:
        """Return a resolution, or None to defer to the next strategy."""


@dataclass
class ProfileLookupStrategy(MacroStrategy):
    """Scale a cached or freshly fetched per-100g profile."""

    lookup: ProfileLookup

    async def resolve(self, ingredient: IngredientRecord) -> Resolution | None:
        profile = await self.lookup(normalize_ingredient_name(ingredient.name))
        if profile is None:
            return None
        conversion = convert_to_grams(
            ingredient.amount, ingredient.unit, ingredient.name
        )
        return Resolution(
            macros=scale_macros(profile, conversion.grams),
            source=ResolutionSource.LOOKUP,
            confidence=conversion.confidence,
        )


@dataclass
class PriorEstimateStrategy(MacroStrategy):
    """Keep whatever estimate the ingredient already carried."""

    async def resolve(self, ingredient: IngredientRecord) -> Resolution | None:
        return Resolution(macros=ingredient.macros, source=ResolutionSource.ESTIMATE)


async def resolve_ingredient(
    strategies: list[MacroStrategy], ingredient: IngredientRecord
) -> Resolution:
    """Run the chain and return the first resolution."""
    for strategy in strategies:
        resolution = await strategy.resolve(ingredient)
        if resolution is not None:
            return resolution
    return Resolution(macros=ingredient.macros, source=ResolutionSource.ESTIMATE)
