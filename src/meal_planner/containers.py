"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_planner.adapters.fdc_client import HttpxFdcClient
from meal_planner.adapters.supabase_ingredient_repository import (
    SupabaseIngredientRepository,
)
from meal_planner.config import Settings, parse_data_types
from meal_planner.services.cache import NutritionCache
from meal_planner.services.nutrition import NutritionService
from meal_planner.services.validation import PlanValidationService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    nutrition_service: NutritionService
    nutrition_cache: NutritionCache
    validation_service: PlanValidationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    ingredient_repository = SupabaseIngredientRepository(
        supabase_client, table_name=resolved_settings.cache_table
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
        timeout_seconds=resolved_settings.fdc_timeout_seconds,
    )
    nutrition_service = NutritionService(
        fdc_client=fdc_client,
        page_size=resolved_settings.fdc_page_size,
        data_types=parse_data_types(resolved_settings.fdc_data_types),
        retry_attempts=resolved_settings.fdc_retry_attempts,
    )
    nutrition_cache = NutritionCache(
        store=ingredient_repository,
        provider=nutrition_service,
        max_age_days=resolved_settings.cache_max_age_days,
    )
    validation_service = PlanValidationService(
        cache=nutrition_cache,
        tolerance=resolved_settings.macro_tolerance,
        max_iterations=resolved_settings.max_adjust_iterations,
        lookup_concurrency=resolved_settings.lookup_concurrency,
        lookup_timeout_seconds=resolved_settings.lookup_timeout_seconds,
    )

    async def close_resources() -> None:
        await fdc_client.close()

    return AppContainer(
        settings=resolved_settings,
        nutrition_service=nutrition_service,
        nutrition_cache=nutrition_cache,
        validation_service=validation_service,
        close_resources=close_resources,
    )
