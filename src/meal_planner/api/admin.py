"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_planner.api.schemas import profile_payload
from meal_planner.services.normalizer import normalize_ingredient_name

if TYPE_CHECKING:
    from meal_planner.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/ingredients/{name}", dependencies=[Depends(require_admin)])
async def cached_ingredient(name: str, request: Request) -> dict[str, object]:
    """Return the raw cache entry for an ingredient."""
    container: AppContainer = request.app.state.container
    cache = container.nutrition_cache
    entry = cache.peek(normalize_ingredient_name(name))
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {
        "ingredient_name": entry.ingredient_name,
        "profile": profile_payload(entry.profile),
        "updated_at": entry.updated_at.isoformat(),
        "stale": cache.is_stale(entry),
    }


@router.post("/ingredients/{name}/refresh", dependencies=[Depends(require_admin)])
async def refresh_ingredient(name: str, request: Request) -> dict[str, object]:
    """Force a provider fetch and overwrite the cache entry."""
    container: AppContainer = request.app.state.container
    normalized = normalize_ingredient_name(name)
    profile = await container.nutrition_cache.refresh(normalized)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Provider returned no data for {normalized!r}",
        )
    return {"ingredient_name": normalized, "profile": profile_payload(profile)}
