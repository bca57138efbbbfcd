"""Tests for plan validation and portion adjustment."""

import asyncio
from dataclasses import astuple
from datetime import UTC, datetime, timedelta

import pytest

from meal_planner.domain.nutrition import CacheEntry, Macros, NutritionProfile
from meal_planner.domain.plans import UserTargets, WeeklyPlan
from meal_planner.domain.validation import DayState, Variance
from meal_planner.services.cache import InMemoryIngredientStore
from meal_planner.services.validation import (
    PlanValidationService,
    combined_scale_factor,
    rescale_day,
)
from tests.conftest import (
    FailingFdcClient,
    FakeFdcClient,
    OddIdFdcClient,
    SlowFdcClient,
    day_plan,
    ingredient,
    make_cache,
)

TARGETS = UserTargets(calories=2000, protein_g=150, carbs_g=200, fat_g=70)

MIX_FOODS = {
    "protein oat mix": (170.0, 13.0, 18.0, 6.0),
    "rice bowl mix": (170.0, 13.0, 18.0, 6.0),
    "lean mix": (200.0, 15.0, 20.0, 9.0),
}


def _under_target_plan() -> WeeklyPlan:
    return WeeklyPlan(
        days=[
            day_plan(
                "monday",
                [
                    ("Overnight oats", [ingredient("Protein Oat Mix", "400")]),
                    ("Rice bowl", [ingredient("Rice Bowl Mix", "600")]),
                ],
            )
        ]
    )


def _amounts(plan: WeeklyPlan) -> list[str]:
    return [
        item.amount
        for day in plan.days
        for meal in day.meals
        for item in meal.ingredients
    ]


def test_under_target_day_is_scaled_into_tolerance(validation_factory) -> None:
    service = validation_factory(FakeFdcClient(foods=dict(MIX_FOODS)))

    plan, summary = asyncio.run(
        service.validate_and_adjust(_under_target_plan(), TARGETS)
    )

    report = summary.days[0]
    assert report.initial_totals == Macros(1700, 130, 180, 60)
    assert report.initial_variance.calories == pytest.approx(-0.15)
    assert not report.initial_variance.within(0.05)
    assert report.within_tolerance
    assert report.final_variance.within(0.05)
    assert report.iterations == 1
    assert report.scale_factors[0] == pytest.approx(2 / 1.75)
    assert _amounts(plan) == ["457.14", "685.71"]
    day = plan.days[0]
    assert astuple(day.daily_totals) == pytest.approx((1943, 148.5, 205.7, 68.5))
    assert day.meals[0].macros == day.meals[0].ingredients[0].macros
    assert report.states[0] == DayState.PENDING
    assert report.states[-2:] == [DayState.WITHIN_TOLERANCE, DayState.FINAL]
    assert summary.warnings == []


def test_second_pass_on_adjusted_plan_changes_nothing(validation_factory) -> None:
    service = validation_factory(FakeFdcClient(foods=dict(MIX_FOODS)))
    adjusted, _ = asyncio.run(
        service.validate_and_adjust(_under_target_plan(), TARGETS)
    )

    again, summary = asyncio.run(service.validate_and_adjust(adjusted, TARGETS))

    assert _amounts(again) == _amounts(adjusted)
    assert again.days[0].daily_totals == adjusted.days[0].daily_totals
    assert summary.days[0].iterations == 0
    assert summary.days[0].states == [
        DayState.PENDING,
        DayState.COMPUTED,
        DayState.WITHIN_TOLERANCE,
        DayState.FINAL,
    ]


def test_single_channel_overshoot_terminates_without_worsening(
    validation_factory,
) -> None:
    service = validation_factory(
        FakeFdcClient(foods=dict(MIX_FOODS)), max_iterations=3
    )
    plan = WeeklyPlan(
        days=[day_plan("tuesday", [("Bowl", [ingredient("Lean Mix", "1000")])])]
    )

    _, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    report = summary.days[0]
    assert report.initial_variance.fat_g == pytest.approx(20 / 70)
    assert report.initial_variance.calories == 0
    assert report.iterations <= 3
    assert abs(report.final_variance.fat_g) < abs(report.initial_variance.fat_g)
    assert report.final_variance.max_abs() <= report.initial_variance.max_abs()
    assert report.states[-1] == DayState.FINAL


def test_failing_provider_keeps_original_estimates() -> None:
    estimate_a = Macros(400, 35, 10, 22)
    estimate_b = Macros(300, 6, 60, 3)
    plan = WeeklyPlan(
        days=[
            day_plan(
                "wednesday",
                [
                    (
                        "Chicken and rice",
                        [
                            ingredient("chicken breast", "6", "oz", estimate_a),
                            ingredient("white rice", "1", "cup", estimate_b),
                        ],
                    )
                ],
            )
        ]
    )
    service = PlanValidationService(cache=make_cache(FailingFdcClient()))

    result, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    items = result.days[0].meals[0].ingredients
    assert [item.macros for item in items] == [estimate_a, estimate_b]
    assert _amounts(result) == ["6", "1"]
    assert astuple(result.days[0].meals[0].macros) == pytest.approx(
        astuple(estimate_a + estimate_b)
    )
    assert len(result.days) == 1
    assert len(summary.warnings) == 2
    assert summary.warnings[0].ingredient == "chicken breast"
    assert summary.days[0].fallback_ingredients == ["chicken breast", "white rice"]
    assert summary.days[0].iterations == 0
    assert not summary.days[0].within_tolerance


def test_meal_totals_mix_fresh_and_fallback_values(validation_factory) -> None:
    service = validation_factory(FakeFdcClient())
    estimate = Macros(90, 1, 2, 9)
    plan = WeeklyPlan(
        days=[
            day_plan(
                "thursday",
                [
                    (
                        "Rice plate",
                        [
                            ingredient("white rice", "100", "g"),
                            ingredient("mystery sauce", "2", "tbsp", estimate),
                        ],
                    )
                ],
            )
        ]
    )

    result, summary = asyncio.run(
        service.validate_and_adjust(
            plan, UserTargets(calories=455, protein_g=8.1, carbs_g=82, fat_g=9.7)
        )
    )

    meal = result.days[0].meals[0]
    assert meal.ingredients[0].macros == Macros(365, 7.1, 80.0, 0.7)
    assert meal.ingredients[1].macros == estimate
    assert astuple(meal.macros) == pytest.approx((455, 8.1, 82.0, 9.7))
    assert summary.days[0].within_tolerance
    assert summary.days[0].fallback_ingredients == ["mystery sauce"]
    assert summary.warnings[0].reason == "no nutrition data; kept original estimate"


def test_lookups_are_shared_across_days(validation_factory) -> None:
    client = FakeFdcClient()
    service = validation_factory(client)
    days = [
        day_plan(label, [("Rice", [ingredient("White Rice", "150", "g")])])
        for label in ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
    ]

    result, summary = asyncio.run(
        service.validate_and_adjust(WeeklyPlan(days=days), TARGETS)
    )

    assert client.search_calls == ["rice white long-grain raw"]
    assert len(client.food_calls) == 1
    assert [day.day for day in result.days] == [day.day for day in days]
    assert len(summary.days) == 7


def test_lookup_timeout_falls_back_to_estimate(validation_factory) -> None:
    service = validation_factory(
        SlowFdcClient(delay_seconds=1.0), lookup_timeout_seconds=0.05
    )
    estimate = Macros(143, 12.6, 0.7, 9.5)
    plan = WeeklyPlan(
        days=[
            day_plan("friday", [("Eggs", [ingredient("egg", "2", "large", estimate)])])
        ]
    )

    result, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    assert result.days[0].meals[0].ingredients[0].macros == estimate
    assert len(summary.warnings) == 1


def test_lookup_timeout_serves_stale_cache_entry() -> None:
    store = InMemoryIngredientStore()
    store.upsert(
        CacheEntry(
            "egg whole raw",
            NutritionProfile(
                fdc_id=171287, calories=150, protein_g=13, carbs_g=1, fat_g=10
            ),
            datetime.now(tz=UTC) - timedelta(days=91),
        )
    )
    service = PlanValidationService(
        cache=make_cache(SlowFdcClient(delay_seconds=1.0), store),
        lookup_timeout_seconds=0.05,
    )
    plan = WeeklyPlan(
        days=[
            day_plan(
                "friday",
                [("Eggs", [ingredient("egg", "2", "large", Macros(1, 1, 1, 1))])],
            )
        ]
    )

    result, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    assert result.days[0].meals[0].ingredients[0].macros == Macros(150, 13, 1, 10)
    assert summary.warnings == []
    assert summary.days[0].fallback_ingredients == []


def test_unexpected_detail_id_does_not_abort_validation(validation_factory) -> None:
    service = validation_factory(OddIdFdcClient())
    plan = WeeklyPlan(
        days=[day_plan("monday", [("Eggs", [ingredient("egg", "2", "large")])])]
    )

    result, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    assert result.days[0].meals[0].ingredients[0].macros == Macros(
        143, 12.6, 0.7, 9.5
    )
    assert summary.warnings == []


def test_unparseable_amount_uses_default_grams_and_is_not_rescaled(
    validation_factory,
) -> None:
    service = validation_factory(FakeFdcClient())
    plan = WeeklyPlan(
        days=[
            day_plan(
                "saturday",
                [
                    (
                        "Rice and chicken",
                        [
                            ingredient("white rice", "a handful", ""),
                            ingredient("chicken breast", "200", "g"),
                        ],
                    )
                ],
            )
        ]
    )

    result, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    items = result.days[0].meals[0].ingredients
    assert items[0].amount == "a handful"
    assert items[0].macros == Macros(365, 7.1, 80.0, 0.7)
    assert items[1].amount != "200"
    assert summary.days[0].low_confidence_ingredients == ["white rice"]
    assert summary.warnings == []


def test_energy_mismatch_is_reported() -> None:
    plan = WeeklyPlan(
        days=[
            day_plan(
                "sunday",
                [("Shake", [ingredient("shake", "1", "", Macros(900, 10, 10, 10))])],
            )
        ]
    )
    service = PlanValidationService(cache=make_cache(FailingFdcClient()))

    _, summary = asyncio.run(service.validate_and_adjust(plan, TARGETS))

    assert summary.days[0].energy_mismatches == ["Shake"]


def test_combined_scale_factor_centres_ratios() -> None:
    target = TARGETS.as_macros()

    factor = combined_scale_factor(Macros(1700, 130, 180, 60), target)

    assert factor == pytest.approx(2 / (0.85 + 0.9))
    assert combined_scale_factor(Macros.zero(), target) is None
    assert combined_scale_factor(Macros(100, 5, 5, 1), target) == 2.0


def test_rescale_day_skips_fallback_positions() -> None:
    day = day_plan(
        "monday",
        [("Meal", [ingredient("rice", "100"), ingredient("sauce", "2", "tbsp")])],
    )

    scaled = rescale_day(day, 1.5, skip={(0, 1)})

    assert [item.amount for item in scaled.meals[0].ingredients] == ["150", "2"]


def test_variance_between() -> None:
    variance = Variance.between(Macros(2100, 150, 180, 70), TARGETS.as_macros())

    assert variance.calories == pytest.approx(0.05)
    assert variance.carbs_g == pytest.approx(-0.1)
    assert variance.worst_channel() == "carbs_g"
    assert variance.max_abs() == pytest.approx(0.1)
