"""Supabase implementation of the ingredient nutrition cache store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from meal_planner.domain.nutrition import CacheEntry, NutritionProfile
from meal_planner.errors import CacheWriteError
from meal_planner.services.cache import IngredientStore


@dataclass
class SupabaseIngredientRepository(IngredientStore):
    """Supabase-backed store for cached USDA ingredient data."""

    client: Client
    table_name: str = "usda_ingredients"

    def get(self, ingredient_name: str) -> CacheEntry | None:
        """Return the cached row for a normalized name, if present."""
        response = (
            self.client.table(self.table_name)
            .select("*")
            .eq("ingredient_name", ingredient_name)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def upsert(self, entry: CacheEntry) -> None:
        """Insert or overwrite the row for the entry's name."""
        response = (
            self.client.table(self.table_name)
            .upsert(
                {
                    "ingredient_name": entry.ingredient_name,
                    "fdc_id": entry.profile.fdc_id,
                    "calories_per_100g": entry.profile.calories,
                    "protein_per_100g": entry.profile.protein_g,
                    "carbs_per_100g": entry.profile.carbs_g,
                    "fat_per_100g": entry.profile.fat_g,
                    "updated_at": entry.updated_at.isoformat(),
                },
                on_conflict="ingredient_name",
            )
            .execute()
        )
        if not response.data:
            raise CacheWriteError(f"Failed to cache {entry.ingredient_name}")


def _parse_entry(row: dict[str, object]) -> CacheEntry:
    """Parse a cache row into a domain model."""
    updated_raw = row.get("updated_at")
    updated_at = (
        datetime.fromisoformat(updated_raw)
        if isinstance(updated_raw, str) and updated_raw
        else datetime.fromtimestamp(0, tz=UTC)
    )
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=UTC)
    return CacheEntry(
        ingredient_name=str(row["ingredient_name"]),
        profile=NutritionProfile(
            fdc_id=int(row.get("fdc_id", 0)),
            calories=float(row.get("calories_per_100g", 0.0)),
            protein_g=float(row.get("protein_per_100g", 0.0)),
            carbs_g=float(row.get("carbs_per_100g", 0.0)),
            fat_g=float(row.get("fat_per_100g", 0.0)),
        ),
        updated_at=updated_at,
    )
