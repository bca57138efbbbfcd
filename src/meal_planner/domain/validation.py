"""Validation summary models."""

from dataclasses import dataclass, field
from enum import StrEnum

from meal_planner.domain.nutrition import Macros

MACRO_CHANNELS = ("calories", "protein_g", "carbs_g", "fat_g")


class DayState(StrEnum):
    """Lifecycle of a day inside the adjustment loop."""

    PENDING = "pending"
    COMPUTED = "computed"
    WITHIN_TOLERANCE = "within_tolerance"
    NEEDS_ADJUSTMENT = "needs_adjustment"
    ADJUSTED = "adjusted"
    FINAL = "final"


@dataclass(frozen=True)
class Variance:
    """Relative deviation `(actual - target) / target` per macro channel."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    @classmethod
    def between(cls, actual: Macros, target: Macros) -> "Variance":
        return cls(
            **{
                channel: _relative(getattr(actual, channel), getattr(target, channel))
                for channel in MACRO_CHANNELS
            }
        )

    def max_abs(self) -> float:
        return max(abs(getattr(self, channel)) for channel in MACRO_CHANNELS)

    def worst_channel(self) -> str:
        return max(MACRO_CHANNELS, key=lambda channel: abs(getattr(self, channel)))

    def within(self, tolerance: float) -> bool:
        return self.max_abs() <= tolerance


@dataclass(frozen=True)
class LookupWarning:
    """An ingredient that kept its original estimate."""

    day: str
    meal: str
    ingredient: str
    reason: str


@dataclass
class DayReport:
    """Audit record for one day of the plan."""

    day: str
    initial_totals: Macros
    initial_variance: Variance
    final_totals: Macros
    final_variance: Variance
    iterations: int = 0
    within_tolerance: bool = False
    scale_factors: list[float] = field(default_factory=list)
    states: list[DayState] = field(default_factory=list)
    fallback_ingredients: list[str] = field(default_factory=list)
    energy_mismatches: list[str] = field(default_factory=list)
    low_confidence_ingredients: list[str] = field(default_factory=list)


@dataclass
class ValidationSummary:
    """Append-only audit output of a validation run."""

    days: list[DayReport] = field(default_factory=list)
    warnings: list[LookupWarning] = field(default_factory=list)

    @property
    def days_within_tolerance(self) -> int:
        return sum(1 for report in self.days if report.within_tolerance)


def _relative(actual: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return (actual - target) / target
