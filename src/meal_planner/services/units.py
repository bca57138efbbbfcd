"""Convert ingredient amounts to gram weights.

Nutrition data is per 100 g, so every ingredient amount has to become grams
before macros can be scaled. Conversion never fails: malformed input lowers
the confidence of the estimate instead.

Substring lookups in the item-weight and density tables try longer keys
first, falling back to table order for keys of equal length. "almond flour"
therefore wins over "flour", and "salmon fillets" over "salmon fillet".
"""

import re

from meal_planner.domain.units import Confidence, ConversionResult
from meal_planner.errors import ParseError

DEFAULT_GRAMS = 100.0

# Mass units convert exactly; volume units assume water density.
_MASS_UNITS: dict[str, float] = {
    "g": 1,
    "gram": 1,
    "grams": 1,
    "kg": 1000,
    "kilogram": 1000,
    "kilograms": 1000,
    "oz": 28.3495,
    "ounce": 28.3495,
    "ounces": 28.3495,
    "lb": 453.592,
    "lbs": 453.592,
    "pound": 453.592,
    "pounds": 453.592,
}

_VOLUME_UNITS: dict[str, float] = {
    "ml": 1,
    "milliliter": 1,
    "milliliters": 1,
    "l": 1000,
    "liter": 1000,
    "liters": 1000,
    "cup": 240,
    "cups": 240,
    "tbsp": 15,
    "tablespoon": 15,
    "tablespoons": 15,
    "tsp": 5,
    "teaspoon": 5,
    "teaspoons": 5,
    "fl oz": 29.5735,
    "fluid ounce": 29.5735,
    "fluid ounces": 29.5735,
}

# Specific gravity relative to water.
_DENSITY_MULTIPLIERS: dict[str, float] = {
    "water": 1,
    "milk": 1.03,
    "olive oil": 0.92,
    "oil": 0.92,
    "honey": 1.42,
    "maple syrup": 1.37,
    "flour": 0.53,
    "almond flour": 0.48,
    "coconut flour": 0.45,
    "protein powder": 0.4,
    "cocoa powder": 0.45,
    "sugar": 0.85,
    "brown sugar": 0.83,
    "rice": 0.75,
    "oats": 0.35,
    "rolled oats": 0.35,
    "quinoa": 0.73,
    "spinach": 0.25,
    "lettuce": 0.2,
    "kale": 0.25,
    "mixed greens": 0.22,
    "almonds": 0.6,
    "walnuts": 0.55,
    "peanut butter": 1.05,
    "almond butter": 1.05,
    "greek yogurt": 1.05,
    "yogurt": 1.03,
    "cottage cheese": 0.95,
    "cheese": 0.9,
    "butter": 0.91,
}

# Typical weight of one counted item, in grams.
_ITEM_WEIGHTS: dict[str, float] = {
    "egg": 50,
    "eggs": 50,
    "large egg": 50,
    "large eggs": 50,
    "banana": 118,
    "bananas": 118,
    "apple": 182,
    "apples": 182,
    "orange": 131,
    "oranges": 131,
    "avocado": 150,
    "avocados": 150,
    "chicken breast": 174,
    "chicken breasts": 174,
    "salmon fillet": 170,
    "salmon fillets": 170,
    "sweet potato": 130,
    "sweet potatoes": 130,
    "potato": 150,
    "potatoes": 150,
    "tomato": 123,
    "tomatoes": 123,
    "onion": 110,
    "onions": 110,
    "garlic": 3,
    "garlic clove": 3,
    "garlic cloves": 3,
    "clove": 3,
    "cloves": 3,
    "lemon": 58,
    "lemons": 58,
    "lime": 44,
    "limes": 44,
    "slice": 30,
    "slices": 30,
    "piece": 100,
    "pieces": 100,
}

_COUNTABLE_UNITS = frozenset(
    {
        "",
        "large",
        "medium",
        "small",
        "whole",
        "piece",
        "pieces",
        "slice",
        "slices",
        "clove",
        "cloves",
        "fillet",
        "fillets",
        "breast",
        "breasts",
        "thigh",
        "thighs",
    }
)

_UNICODE_FRACTIONS = {
    "½": 0.5,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "¼": 0.25,
    "¾": 0.75,
    "⅛": 0.125,
}

_MIXED_FRACTION = re.compile(r"^\s*(\d+)\s+(\d+)\s*/\s*(\d+)")
_FRACTION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")
_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))")


def _by_key_length(table: dict[str, float]) -> list[tuple[str, float]]:
    return sorted(table.items(), key=lambda item: len(item[0]), reverse=True)


_ITEM_WEIGHT_ORDER = _by_key_length(_ITEM_WEIGHTS)
_DENSITY_ORDER = _by_key_length(_DENSITY_MULTIPLIERS)


def parse_amount(raw: str) -> float:
    """Parse a recipe amount such as "2", "1.5", "1/2", "1 1/2" or "½".

    Like a lenient number parser, trailing text after the leading number is
    ignored ("2-3" parses as 2).
    """
    text = raw.strip()
    for symbol, value in _UNICODE_FRACTIONS.items():
        if symbol in text:
            whole = text.split(symbol, 1)[0].strip()
            return (float(whole) if whole.isdigit() else 0.0) + value
    mixed = _MIXED_FRACTION.match(text)
    if mixed:
        whole, numerator, denominator = (float(part) for part in mixed.groups())
        if denominator:
            return whole + numerator / denominator
    fraction = _FRACTION.match(text)
    if fraction:
        numerator, denominator = (float(part) for part in fraction.groups())
        if denominator:
            return numerator / denominator
    number = _LEADING_NUMBER.match(text)
    if number:
        return float(number.group(1))
    raise ParseError(f"Unparseable amount: {raw!r}")


def convert_to_grams(amount: str, unit: str, ingredient_name: str) -> ConversionResult:
    """Convert an ingredient amount to grams with a confidence tag."""
    try:
        quantity = parse_amount(amount)
    except ParseError:
        return ConversionResult(grams=DEFAULT_GRAMS, confidence=Confidence.LOW)

    normalized_unit = unit.lower().strip()
    ingredient = ingredient_name.lower().strip()

    if _is_countable(normalized_unit):
        item_weight = item_weight_for(ingredient)
        if item_weight is not None:
            return ConversionResult(quantity * item_weight, Confidence.HIGH)

    mass_factor = _MASS_UNITS.get(normalized_unit)
    if mass_factor:
        return ConversionResult(quantity * mass_factor, Confidence.HIGH)

    volume_factor = _VOLUME_UNITS.get(normalized_unit)
    if volume_factor:
        density = density_for(ingredient)
        confidence = Confidence.HIGH if density != 1 else Confidence.MEDIUM
        return ConversionResult(quantity * volume_factor * density, confidence)

    item_weight = item_weight_for(ingredient)
    if item_weight is not None:
        return ConversionResult(quantity * item_weight, Confidence.MEDIUM)

    return ConversionResult(quantity * DEFAULT_GRAMS, Confidence.LOW)


def item_weight_for(ingredient: str) -> float | None:
    """Return the per-item weight for a counted ingredient, if known."""
    return _lookup(ingredient, _ITEM_WEIGHTS, _ITEM_WEIGHT_ORDER)


def density_for(ingredient: str) -> float:
    """Return the density multiplier for an ingredient (1.0 means water)."""
    density = _lookup(ingredient, _DENSITY_MULTIPLIERS, _DENSITY_ORDER)
    return 1.0 if density is None else density


def format_amount(value: float) -> str:
    """Render an amount compactly: up to two decimals, no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def _is_countable(unit: str) -> bool:
    return unit in _COUNTABLE_UNITS or _LEADING_NUMBER.match(unit) is not None


def _lookup(
    ingredient: str, table: dict[str, float], ordered: list[tuple[str, float]]
) -> float | None:
    exact = table.get(ingredient)
    if exact:
        return exact
    if not ingredient:
        return None
    for key, value in ordered:
        if key in ingredient or ingredient in key:
            return value
    return None
