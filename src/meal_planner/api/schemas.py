"""Pydantic models for plan validation and ingredient lookup payloads."""

from pydantic import AliasChoices, BaseModel, Field, field_validator

from meal_planner.domain.nutrition import Macros, NutritionProfile
from meal_planner.domain.plans import (
    DayPlan,
    IngredientCategory,
    IngredientRecord,
    Meal,
    MealType,
    UserTargets,
    WeeklyPlan,
)
from meal_planner.domain.validation import DayReport, ValidationSummary, Variance


class MacrosModel(BaseModel):
    """Macro totals payload; accepts the generator's short keys too."""

    calories: float = 0.0
    protein_g: float = Field(
        default=0.0, validation_alias=AliasChoices("protein_g", "protein")
    )
    carbs_g: float = Field(
        default=0.0, validation_alias=AliasChoices("carbs_g", "carbs")
    )
    fat_g: float = Field(default=0.0, validation_alias=AliasChoices("fat_g", "fat"))

    def to_domain(self) -> Macros:
        return Macros(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )

    @classmethod
    def from_domain(cls, macros: Macros) -> "MacrosModel":
        return cls(
            calories=macros.calories,
            protein_g=macros.protein_g,
            carbs_g=macros.carbs_g,
            fat_g=macros.fat_g,
        )


class IngredientModel(BaseModel):
    """Ingredient line item payload."""

    name: str
    amount: str
    unit: str = ""
    category: IngredientCategory = IngredientCategory.OTHER
    macros: MacrosModel | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_text(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _unknown_category(cls, value: object) -> object:
        known = {category.value for category in IngredientCategory}
        if isinstance(value, str) and value.lower() in known:
            return value.lower()
        return IngredientCategory.OTHER

    def to_domain(self) -> IngredientRecord:
        return IngredientRecord(
            name=self.name,
            amount=self.amount,
            unit=self.unit,
            category=self.category,
            macros=self.macros.to_domain() if self.macros else None,
        )

    @classmethod
    def from_domain(cls, ingredient: IngredientRecord) -> "IngredientModel":
        return cls(
            name=ingredient.name,
            amount=ingredient.amount,
            unit=ingredient.unit,
            category=ingredient.category,
            macros=(
                MacrosModel.from_domain(ingredient.macros)
                if ingredient.macros
                else None
            ),
        )


class MealModel(BaseModel):
    """Meal payload."""

    name: str
    type: MealType
    prep_time_minutes: int | None = Field(
        default=None, validation_alias=AliasChoices("prep_time_minutes", "prep_time")
    )
    ingredients: list[IngredientModel] = Field(default_factory=list)
    macros: MacrosModel = Field(default_factory=MacrosModel)

    def to_domain(self) -> Meal:
        return Meal(
            name=self.name,
            type=self.type,
            prep_time_minutes=self.prep_time_minutes,
            ingredients=[ingredient.to_domain() for ingredient in self.ingredients],
            macros=self.macros.to_domain(),
        )

    @classmethod
    def from_domain(cls, meal: Meal) -> "MealModel":
        return cls(
            name=meal.name,
            type=meal.type,
            prep_time_minutes=meal.prep_time_minutes,
            ingredients=[
                IngredientModel.from_domain(item) for item in meal.ingredients
            ],
            macros=MacrosModel.from_domain(meal.macros),
        )


class DayPlanModel(BaseModel):
    """Day plan payload."""

    day: str
    meals: list[MealModel] = Field(default_factory=list)
    daily_totals: MacrosModel = Field(default_factory=MacrosModel)

    def to_domain(self) -> DayPlan:
        return DayPlan(
            day=self.day,
            meals=[meal.to_domain() for meal in self.meals],
            daily_totals=self.daily_totals.to_domain(),
        )

    @classmethod
    def from_domain(cls, day: DayPlan) -> "DayPlanModel":
        return cls(
            day=day.day,
            meals=[MealModel.from_domain(meal) for meal in day.meals],
            daily_totals=MacrosModel.from_domain(day.daily_totals),
        )


class TargetsModel(BaseModel):
    """Daily macro targets; all values must be positive."""

    calories: float = Field(gt=0)
    protein_g: float = Field(
        gt=0, validation_alias=AliasChoices("protein_g", "protein")
    )
    carbs_g: float = Field(gt=0, validation_alias=AliasChoices("carbs_g", "carbs"))
    fat_g: float = Field(gt=0, validation_alias=AliasChoices("fat_g", "fat"))

    def to_domain(self) -> UserTargets:
        return UserTargets(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )


class ValidatePlanRequest(BaseModel):
    """Body of a plan validation request."""

    days: list[DayPlanModel]
    targets: TargetsModel

    def to_plan(self) -> WeeklyPlan:
        return WeeklyPlan(days=[day.to_domain() for day in self.days])


class IngredientNutritionRequest(BaseModel):
    """Body of a single-ingredient nutrition lookup."""

    name: str = Field(min_length=1)
    amount: str = "100"
    unit: str = "g"

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_text(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


class ReferenceRequest(BaseModel):
    """Ingredient names to include in a nutrition reference block."""

    names: list[str] = Field(default_factory=list)


def profile_payload(profile: NutritionProfile) -> dict[str, object]:
    """Serialize a per-100g profile."""
    return {
        "fdc_id": profile.fdc_id,
        "calories_per_100g": profile.calories,
        "protein_per_100g": profile.protein_g,
        "carbs_per_100g": profile.carbs_g,
        "fat_per_100g": profile.fat_g,
    }


def variance_payload(variance: Variance) -> dict[str, float]:
    return {
        "calories": round(variance.calories, 4),
        "protein_g": round(variance.protein_g, 4),
        "carbs_g": round(variance.carbs_g, 4),
        "fat_g": round(variance.fat_g, 4),
    }


def day_report_payload(report: DayReport) -> dict[str, object]:
    return {
        "day": report.day,
        "iterations": report.iterations,
        "within_tolerance": report.within_tolerance,
        "initial_totals": MacrosModel.from_domain(report.initial_totals).model_dump(),
        "final_totals": MacrosModel.from_domain(report.final_totals).model_dump(),
        "initial_variance": variance_payload(report.initial_variance),
        "final_variance": variance_payload(report.final_variance),
        "scale_factors": [round(factor, 4) for factor in report.scale_factors],
        "states": [state.value for state in report.states],
        "fallback_ingredients": report.fallback_ingredients,
        "energy_mismatches": report.energy_mismatches,
        "low_confidence_ingredients": report.low_confidence_ingredients,
    }


def summary_payload(summary: ValidationSummary) -> dict[str, object]:
    """Serialize a validation summary."""
    return {
        "days_within_tolerance": summary.days_within_tolerance,
        "days": [day_report_payload(report) for report in summary.days],
        "warnings": [
            {
                "day": warning.day,
                "meal": warning.meal,
                "ingredient": warning.ingredient,
                "reason": warning.reason,
            }
            for warning in summary.warnings
        ],
    }
