"""Error types raised inside the nutrition reconciliation core.

None of these reach API callers: every one is converted to a fallback
(default gram weight, retained estimate, unrefreshed cache) at the layer
that catches it.
"""


class MealPlannerError(Exception):
    """Base class for meal planner errors."""


class ProviderError(MealPlannerError):
    """The nutrition provider was unreachable or returned an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ProviderError):
    """The nutrition provider returned zero candidates for a query."""


class ParseError(MealPlannerError):
    """An ingredient amount could not be parsed as a number."""


class CacheWriteError(MealPlannerError):
    """Persisting a freshly fetched profile to the cache store failed."""
