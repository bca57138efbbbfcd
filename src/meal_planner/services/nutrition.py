"""Nutrition provider integrating USDA FDC."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from meal_planner.adapters.fdc_client import FdcClient
from meal_planner.domain.nutrition import (
    FlatNutrient,
    FoodCandidate,
    NestedNutrient,
    NutrientRow,
    NutritionProfile,
)
from meal_planner.errors import NotFoundError, ProviderError
from meal_planner.services.normalizer import normalize_ingredient_name

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

_NUTRIENT_NUMBERS = {
    "calories": ("208", "957"),
    "protein_g": ("203",),
    "carbs_g": ("205",),
    "fat_g": ("204",),
}

_NUTRIENT_NAMES = {
    "calories": ("energy", "energy (atwater general factors)"),
    "protein_g": ("protein",),
    "carbs_g": ("carbohydrate, by difference", "carbohydrates"),
    "fat_g": ("total lipid (fat)", "total fat"),
}

# Some payloads only carry the numeric nutrient id.
_NUTRIENT_ID_TO_NUMBER = {
    1008: "208",
    2047: "957",
    1003: "203",
    1005: "205",
    1004: "204",
}


@dataclass
class NutritionService:
    """Searches FDC and resolves foods to per-100g macro profiles."""

    fdc_client: FdcClient
    page_size: int = 5
    data_types: list[str] | None = field(
        default_factory=lambda: ["SR Legacy", "Foundation"]
    )
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, query: str) -> list[FoodCandidate]:
        """Search FDC for a free-text ingredient name."""
        normalized = normalize_ingredient_name(query)
        payload = await self._call_with_retry(
            lambda: self.fdc_client.search_foods(
                normalized, page_size=self.page_size, data_types=self.data_types
            ),
            action=f"search:{normalized}",
        )
        foods = payload.get("foods")
        if not isinstance(foods, list):
            raise ProviderError(f"Unexpected search payload for {normalized!r}")
        candidates = [
            FoodCandidate(
                fdc_id=int(food["fdcId"]),
                description=str(food.get("description", "")),
                score=_to_float_or_none(food.get("score")),
                data_type=food.get("dataType"),
            )
            for food in foods
            if isinstance(food, dict) and isinstance(food.get("fdcId"), int)
        ]
        _logger.debug("FDC search query=%s results=%s", normalized, len(candidates))
        return candidates[: self.page_size]

    async def fetch_details(self, fdc_id: int) -> NutritionProfile:
        """Fetch a food and extract its per-100g macros."""
        payload = await self._call_with_retry(
            lambda: self.fdc_client.get_food(fdc_id),
            action=f"get_food:{fdc_id}",
        )
        raw_nutrients = payload.get("foodNutrients")
        if raw_nutrients is not None and not isinstance(raw_nutrients, list):
            raise ProviderError(f"Unexpected nutrient list for fdc_id={fdc_id}")
        rows = [
            row
            for row in (parse_nutrient_row(raw) for raw in raw_nutrients or [])
            if row is not None
        ]
        payload_id = payload.get("fdcId")
        resolved_id = payload_id if isinstance(payload_id, int) else fdc_id
        return extract_profile(resolved_id, rows)

    async def lookup(self, name: str) -> NutritionProfile:
        """Search for `name` and return the profile of the best match."""
        candidates = await self.search(name)
        best = select_best_match(candidates)
        if best is None:
            raise NotFoundError(f"No FDC results for {name!r}")
        return await self.fetch_details(best.fdc_id)

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                payload = await func()
            except Exception as exc:
                attempt += 1
                status_code = _status_code_from_exception(exc)
                _logger.warning(
                    "Nutrition %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code if status_code is not None else "n/a",
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise ProviderError(
                        f"FDC {action} failed: {exc}", status_code=status_code
                    ) from exc
                await asyncio.sleep(self.retry_delay_seconds)
                continue
            if not isinstance(payload, dict):
                raise ProviderError(f"FDC {action} returned a non-object payload")
            return payload


def select_best_match(candidates: list[FoodCandidate]) -> FoodCandidate | None:
    """Pick the provider's top-ranked candidate.

    This takes FDC's ranking as-is with no re-ranking, so a common name can
    resolve to a less common prepared dish.
    """
    return candidates[0] if candidates else None


def parse_nutrient_row(raw: object) -> NutrientRow | None:
    """Parse one raw FDC nutrient entry into a typed row."""
    if not isinstance(raw, dict):
        return None
    nested = raw.get("nutrient")
    if isinstance(nested, dict):
        return NestedNutrient(
            number=_nutrient_number(nested.get("number"), nested.get("id")),
            name=str(nested.get("name") or ""),
            amount=_to_float_or_none(raw.get("amount")) or 0.0,
            unit=nested.get("unitName"),
        )
    value = _to_float_or_none(raw.get("value"))
    if value is None:
        value = _to_float_or_none(raw.get("amount"))
    return FlatNutrient(
        number=_nutrient_number(raw.get("nutrientNumber"), raw.get("nutrientId")),
        name=str(raw.get("nutrientName") or ""),
        value=value or 0.0,
        unit=raw.get("unitName"),
    )


def extract_profile(fdc_id: int, rows: list[NutrientRow]) -> NutritionProfile:
    """Extract calories, protein, carbs and fat from parsed nutrient rows.

    Nutrient numbers are matched first, then known names. The first matching
    row wins; anything unmatched is 0.
    """
    values = {
        macro: _find_nutrient(rows, _NUTRIENT_NUMBERS[macro], _NUTRIENT_NAMES[macro])
        for macro in _NUTRIENT_NUMBERS
    }
    return NutritionProfile(fdc_id=fdc_id, **values)


def _find_nutrient(
    rows: list[NutrientRow], numbers: tuple[str, ...], names: tuple[str, ...]
) -> float:
    for row in rows:
        if isinstance(row.unit, str) and row.unit.lower() == "kj":
            continue
        value = row.value if isinstance(row, FlatNutrient) else row.amount
        if row.number in numbers:
            return value
        if row.name and row.name.lower() in names:
            return value
    return 0.0


def _nutrient_number(number: object, nutrient_id: object) -> str:
    if number is not None and str(number).strip():
        return str(number).strip()
    if isinstance(nutrient_id, int):
        return _NUTRIENT_ID_TO_NUMBER.get(nutrient_id, "")
    return ""


def _to_float_or_none(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _status_code_from_exception(exc: Exception) -> int | None:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None
