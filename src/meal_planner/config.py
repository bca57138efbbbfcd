"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    fdc_api_key: str
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    fdc_page_size: int = 5
    fdc_data_types: str | None = "SR Legacy,Foundation"
    fdc_timeout_seconds: float = 15.0
    fdc_retry_attempts: int = 1
    cache_max_age_days: int = 90
    cache_table: str = "usda_ingredients"
    macro_tolerance: float = 0.05
    max_adjust_iterations: int = 4
    lookup_concurrency: int = 8
    lookup_timeout_seconds: float = 20.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_data_types(raw: str | None) -> list[str] | None:
    """Parse the comma-separated FDC data type filter from env."""
    if raw is None:
        return None
    types = [chunk.strip() for chunk in raw.split(",")]
    return [value for value in types if value] or None
