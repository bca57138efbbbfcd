"""Persistent per-ingredient nutrition cache.

Concurrent lookups for the same name are not coordinated: each may call the
provider and upsert, and the last write wins. Entries are only ever
overwritten, never deleted.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from meal_planner.domain.nutrition import CacheEntry, NutritionProfile
from meal_planner.errors import NotFoundError, ProviderError
from meal_planner.services.normalizer import cache_key

_logger = logging.getLogger(__name__)


class IngredientStore(Protocol):
    """Key-value store for cache entries keyed by normalized name."""

    def get(self, ingredient_name: str) -> CacheEntry | None:
        """Return the stored entry for a name, if any."""

    def upsert(self, entry: CacheEntry) -> None:
        """Insert or overwrite the entry for its name."""


class NutritionProvider(Protocol):
    """Source of per-100g profiles for cache misses."""

    async def lookup(self, name: str) -> NutritionProfile:
        """Resolve a name to a profile or raise ProviderError."""


@dataclass
class InMemoryIngredientStore(IngredientStore):
    """Dictionary-backed store for tests and local runs."""

    entries: dict[str, CacheEntry] = field(default_factory=dict)

    def get(self, ingredient_name: str) -> CacheEntry | None:
        return self.entries.get(ingredient_name)

    def upsert(self, entry: CacheEntry) -> None:
        self.entries[entry.ingredient_name] = entry


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class NutritionCache:
    """Cache-first access to ingredient nutrition profiles."""

    store: IngredientStore
    provider: NutritionProvider
    max_age_days: int = 90
    serve_stale_on_error: bool = True
    clock: Callable[[], datetime] = _utcnow

    async def get_or_fetch(
        self, name: str, timeout_seconds: float | None = None
    ) -> NutritionProfile | None:
        """Return a fresh cached profile, or fetch and cache one.

        Returns None when the provider has no usable result or does not answer
        within `timeout_seconds`. When `serve_stale_on_error` is set and a
        stale entry exists, that entry is returned instead. This follows the
        unrefreshed-cache fallback, which ranks ahead of the plan's own
        estimate; set the flag to False to return None as a plain miss does.
        """
        key = cache_key(name)
        cached = self.peek(key)
        if cached is not None and not self.is_stale(cached):
            _logger.debug("Nutrition cache hit: %s", key)
            return cached.profile

        _logger.debug("Nutrition cache %s: %s", "stale" if cached else "miss", key)
        profile = await self._fetch(key, timeout_seconds)
        if profile is None:
            if cached is not None and self.serve_stale_on_error:
                return cached.profile
            return None
        self._write(
            CacheEntry(ingredient_name=key, profile=profile, updated_at=self.clock())
        )
        return profile

    async def refresh(self, name: str) -> NutritionProfile | None:
        """Fetch from the provider regardless of cache age."""
        key = cache_key(name)
        profile = await self._fetch(key)
        if profile is not None:
            self._write(
                CacheEntry(
                    ingredient_name=key, profile=profile, updated_at=self.clock()
                )
            )
        return profile

    def peek(self, name: str) -> CacheEntry | None:
        """Return the stored entry without touching the provider."""
        key = cache_key(name)
        try:
            return self.store.get(key)
        except Exception:
            _logger.exception("Nutrition cache read failed: %s", key)
            return None

    def is_stale(self, entry: CacheEntry) -> bool:
        """Return True when an entry is older than the max age."""
        return self.clock() - entry.updated_at >= timedelta(days=self.max_age_days)

    async def _fetch(
        self, key: str, timeout_seconds: float | None = None
    ) -> NutritionProfile | None:
        try:
            return await asyncio.wait_for(
                self.provider.lookup(key), timeout=timeout_seconds
            )
        except TimeoutError:
            _logger.warning("Nutrition lookup timed out: %s", key)
        except NotFoundError:
            _logger.warning("No nutrition data found for: %s", key)
        except ProviderError as exc:
            _logger.warning("Nutrition lookup failed for %s: %s", key, exc)
        return None

    def _write(self, entry: CacheEntry) -> None:
        try:
            self.store.upsert(entry)
        except Exception as exc:
            _logger.warning("Failed to cache %s: %s", entry.ingredient_name, exc)
            return
        _logger.info("Cached nutrition data for: %s", entry.ingredient_name)
