"""Validate generated plans against FDC data and adjust portions to targets."""

import asyncio
import logging
from dataclasses import dataclass, field, replace

from meal_planner.domain.nutrition import Macros, NutritionProfile
from meal_planner.domain.plans import (
    DayPlan,
    IngredientRecord,
    Meal,
    UserTargets,
    WeeklyPlan,
)
from meal_planner.domain.units import Confidence
from meal_planner.domain.validation import (
    MACRO_CHANNELS,
    DayReport,
    DayState,
    LookupWarning,
    ValidationSummary,
    Variance,
)
from meal_planner.errors import ParseError
from meal_planner.services.cache import NutritionCache
from meal_planner.services.macros import calorie_discrepancy, sum_macros
from meal_planner.services.strategies import (
    MacroStrategy,
    PriorEstimateStrategy,
    ProfileLookupStrategy,
    Resolution,
    resolve_ingredient,
)
from meal_planner.services.units import format_amount, parse_amount

_logger = logging.getLogger(__name__)

MIN_SCALE_STEP = 0.5
MAX_SCALE_STEP = 2.0
ENERGY_MISMATCH_RATIO = 0.10

# (meal index, ingredient index) within a day.
_Position = tuple[int, int]


@dataclass
class _RequestLookup:
    """Request-scoped, deduplicated profile lookups.

    Each name is fetched at most once per request; concurrent callers await
    the same task. The semaphore bounds in-flight provider traffic, and the
    timeout applies to the provider call so a stale entry can still be served.
    """

    cache: NutritionCache
    semaphore: asyncio.Semaphore
    timeout_seconds: float
    _tasks: dict[str, "asyncio.Task[NutritionProfile | None]"] = field(
        default_factory=dict
    )

    async def __call__(self, name: str) -> NutritionProfile | None:
        task = self._tasks.get(name)
        if task is None:
            task = asyncio.ensure_future(self._lookup(name))
            self._tasks[name] = task
        return await task

    async def _lookup(self, name: str) -> NutritionProfile | None:
        async with self.semaphore:
            return await self.cache.get_or_fetch(
                name, timeout_seconds=self.timeout_seconds
            )


@dataclass
class _ComputedDay:
    day: DayPlan
    fallbacks: set[_Position]
    warnings: list[LookupWarning]
    energy_mismatches: list[str]
    low_confidence: list[str]


@dataclass
class PlanValidationService:
    """Recomputes plan macros from FDC data and scales portions to targets."""

    cache: NutritionCache
    tolerance: float = 0.05
    max_iterations: int = 4
    lookup_concurrency: int = 8
    lookup_timeout_seconds: float = 20.0

    async def validate_and_adjust(
        self, plan: WeeklyPlan, targets: UserTargets
    ) -> tuple[WeeklyPlan, ValidationSummary]:
        """Return the adjusted plan and an audit summary.

        Never raises for lookup failures: ingredients that cannot be resolved
        keep the estimate they arrived with and are listed as warnings.
        """
        lookup = _RequestLookup(
            cache=self.cache,
            semaphore=asyncio.Semaphore(self.lookup_concurrency),
            timeout_seconds=self.lookup_timeout_seconds,
        )
        strategies: list[MacroStrategy] = [
            ProfileLookupStrategy(lookup),
            PriorEstimateStrategy(),
        ]
        results = await asyncio.gather(
            *(self._process_day(day, targets, strategies) for day in plan.days)
        )
        summary = ValidationSummary()
        days: list[DayPlan] = []
        for day, report, warnings in results:
            days.append(day)
            summary.days.append(report)
            summary.warnings.extend(warnings)
        _logger.info(
            "Plan validated: days=%s within_tolerance=%s warnings=%s",
            len(days),
            summary.days_within_tolerance,
            len(summary.warnings),
        )
        return WeeklyPlan(days=days), summary

    async def _process_day(
        self, day: DayPlan, targets: UserTargets, strategies: list[MacroStrategy]
    ) -> tuple[DayPlan, DayReport, list[LookupWarning]]:
        target = targets.as_macros()
        states = [DayState.PENDING]
        computed = await _compute_day(day, strategies)
        states.append(DayState.COMPUTED)

        best = computed.day
        best_variance = Variance.between(best.daily_totals, target)
        report = DayReport(
            day=day.day,
            initial_totals=best.daily_totals,
            initial_variance=best_variance,
            final_totals=best.daily_totals,
            final_variance=best_variance,
            states=states,
            fallback_ingredients=[
                _ingredient_at(best, position).name
                for position in sorted(computed.fallbacks)
            ],
            energy_mismatches=computed.energy_mismatches,
            low_confidence_ingredients=computed.low_confidence,
        )

        for _ in range(self.max_iterations):
            if best_variance.within(self.tolerance):
                break
            states.append(DayState.NEEDS_ADJUSTMENT)
            factor = combined_scale_factor(best.daily_totals, target)
            if factor is None or not _has_rescalable(best, computed.fallbacks):
                break
            candidate = rescale_day(best, factor, skip=computed.fallbacks)
            states.append(DayState.ADJUSTED)
            report.iterations += 1
            report.scale_factors.append(factor)
            recomputed = await _compute_day(candidate, strategies)
            states.append(DayState.COMPUTED)
            variance = Variance.between(recomputed.day.daily_totals, target)
            if variance.max_abs() >= best_variance.max_abs():
                break
            best, best_variance = recomputed.day, variance

        report.within_tolerance = best_variance.within(self.tolerance)
        if report.within_tolerance:
            states.append(DayState.WITHIN_TOLERANCE)
        states.append(DayState.FINAL)
        report.final_totals = best.daily_totals
        report.final_variance = best_variance
        _logger.info(
            "Day %s: variance %.3f -> %.3f (worst %s) after %s adjustment(s)",
            day.day,
            report.initial_variance.max_abs(),
            best_variance.max_abs(),
            best_variance.worst_channel(),
            report.iterations,
        )
        return best, report, computed.warnings


async def _compute_day(day: DayPlan, strategies: list[MacroStrategy]) -> _ComputedDay:
    """Resolve every ingredient and recompute meal and day totals."""
    positions = [
        (meal_index, ingredient_index)
        for meal_index, meal in enumerate(day.meals)
        for ingredient_index in range(len(meal.ingredients))
    ]
    resolutions = await asyncio.gather(
        *(
            resolve_ingredient(strategies, _ingredient_at(day, position))
            for position in positions
        )
    )
    by_position: dict[_Position, Resolution] = dict(
        zip(positions, resolutions, strict=True)
    )

    fallbacks: set[_Position] = set()
    warnings: list[LookupWarning] = []
    meals: list[Meal] = []
    mismatches: list[str] = []
    low_confidence: list[str] = []
    for meal_index, meal in enumerate(day.meals):
        ingredients: list[IngredientRecord] = []
        for ingredient_index, ingredient in enumerate(meal.ingredients):
            resolution = by_position[(meal_index, ingredient_index)]
            if resolution.is_fallback:
                fallbacks.add((meal_index, ingredient_index))
                warnings.append(
                    LookupWarning(
                        day=day.day,
                        meal=meal.name,
                        ingredient=ingredient.name,
                        reason=(
                            "no nutrition data; kept original estimate"
                            if ingredient.macros is not None
                            else "no nutrition data and no estimate"
                        ),
                    )
                )
                ingredients.append(ingredient)
            else:
                if resolution.confidence is Confidence.LOW:
                    low_confidence.append(ingredient.name)
                ingredients.append(replace(ingredient, macros=resolution.macros))
        if ingredients:
            totals = sum_macros(item.macros or Macros.zero() for item in ingredients)
        else:
            totals = meal.macros
        if _energy_mismatch(totals):
            mismatches.append(meal.name)
        meals.append(replace(meal, ingredients=ingredients, macros=totals))

    return _ComputedDay(
        day=replace(
            day, meals=meals, daily_totals=sum_macros(meal.macros for meal in meals)
        ),
        fallbacks=fallbacks,
        warnings=warnings,
        energy_mismatches=mismatches,
        low_confidence=low_confidence,
    )


def combined_scale_factor(actual: Macros, target: Macros) -> float | None:
    """Return one factor for all channels minimising the largest deviation.

    With channel ratios r = actual / target, scaling by 2 / (r_min + r_max)
    centres the ratios on 1. Steps are clamped to [0.5, 2.0]. Returns None
    when there is nothing to scale.
    """
    ratios = [
        getattr(actual, channel) / getattr(target, channel)
        for channel in MACRO_CHANNELS
        if getattr(target, channel) > 0
    ]
    if not ratios or max(ratios) <= 0:
        return None
    factor = 2 / (min(ratios) + max(ratios))
    return min(MAX_SCALE_STEP, max(MIN_SCALE_STEP, factor))


def rescale_day(
    day: DayPlan, factor: float, skip: set[_Position] | None = None
) -> DayPlan:
    """Scale every parseable ingredient amount in the day by `factor`.

    Macro snapshots are left for the next recompute.
    """
    skipped = skip or set()
    meals: list[Meal] = []
    for meal_index, meal in enumerate(day.meals):
        ingredients = [
            ingredient
            if (meal_index, ingredient_index) in skipped
            else _rescale_ingredient(ingredient, factor)
            for ingredient_index, ingredient in enumerate(meal.ingredients)
        ]
        meals.append(replace(meal, ingredients=ingredients))
    return replace(day, meals=meals)


def _rescale_ingredient(
    ingredient: IngredientRecord, factor: float
) -> IngredientRecord:
    try:
        quantity = parse_amount(ingredient.amount)
    except ParseError:
        return ingredient
    return replace(ingredient, amount=format_amount(quantity * factor))


def _has_rescalable(day: DayPlan, fallbacks: set[_Position]) -> bool:
    return any(
        (meal_index, ingredient_index) not in fallbacks
        for meal_index, meal in enumerate(day.meals)
        for ingredient_index in range(len(meal.ingredients))
    )


def _ingredient_at(day: DayPlan, position: _Position) -> IngredientRecord:
    meal_index, ingredient_index = position
    return day.meals[meal_index].ingredients[ingredient_index]


def _energy_mismatch(macros: Macros) -> bool:
    if macros.calories <= 0:
        return False
    return abs(calorie_discrepancy(macros)) / macros.calories > ENERGY_MISMATCH_RATIO
