"""Ingredient name normalization for FoodData Central searches."""

# Recipe terms mapped to descriptions that rank well in SR Legacy/Foundation.
_SYNONYMS: dict[str, str] = {
    "chicken breast": "chicken broilers breast meat raw",
    "ground beef": "beef ground raw",
    "ground turkey": "turkey ground raw",
    "salmon": "salmon atlantic raw",
    "salmon fillet": "salmon atlantic raw",
    "brown rice": "rice brown long-grain raw",
    "white rice": "rice white long-grain raw",
    "sweet potato": "sweet potato raw",
    "broccoli": "broccoli raw",
    "spinach": "spinach raw",
    "olive oil": "oil olive salad or cooking",
    "coconut oil": "oil coconut",
    "greek yogurt": "yogurt greek plain",
    "egg": "egg whole raw",
    "eggs": "egg whole raw",
    "oats": "oats regular or quick",
    "rolled oats": "oats regular or quick",
    "almond butter": "almond butter plain",
    "peanut butter": "peanut butter smooth",
    "banana": "banana raw",
    "apple": "apple raw",
    "avocado": "avocado raw",
    "almonds": "almonds raw",
    "walnuts": "walnuts raw",
}


def normalize_ingredient_name(raw_name: str) -> str:
    """Return the search-friendly form of a free-text ingredient name."""
    cleaned = raw_name.lower().strip()
    return _SYNONYMS.get(cleaned, cleaned)


def cache_key(raw_name: str) -> str:
    """Return the cache key for an ingredient name."""
    return raw_name.lower().strip()
