"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from meal_planner.api.admin import router as admin_router
from meal_planner.api.schemas import (
    DayPlanModel,
    IngredientNutritionRequest,
    ReferenceRequest,
    ValidatePlanRequest,
    profile_payload,
    summary_payload,
)
from meal_planner.app_logging import configure_logging
from meal_planner.containers import AppContainer
from meal_planner.services.macros import scale_macros
from meal_planner.services.normalizer import normalize_ingredient_name
from meal_planner.services.reference import build_nutrition_reference
from meal_planner.services.units import convert_to_grams


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/plans/validate")
    async def validate_plan(
        body: ValidatePlanRequest, request: Request
    ) -> dict[str, object]:
        """Recompute plan macros from FDC data and adjust portions to targets."""
        state_container: AppContainer = request.app.state.container
        plan, summary = await state_container.validation_service.validate_and_adjust(
            body.to_plan(), body.targets.to_domain()
        )
        if summary.warnings:
            logger.info(
                "Plan validation kept %s original estimate(s)", len(summary.warnings)
            )
        return {
            "days": [DayPlanModel.from_domain(day).model_dump() for day in plan.days],
            "validation_summary": summary_payload(summary),
        }

    @app.post("/ingredients/nutrition")
    async def ingredient_nutrition(
        body: IngredientNutritionRequest, request: Request
    ) -> dict[str, object]:
        """Return per-100g data and scaled macros for one ingredient."""
        state_container: AppContainer = request.app.state.container
        normalized = normalize_ingredient_name(body.name)
        profile = await state_container.nutrition_cache.get_or_fetch(normalized)
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No nutrition data for {body.name!r}",
            )
        conversion = convert_to_grams(body.amount, body.unit, body.name)
        macros = scale_macros(profile, conversion.grams)
        return {
            "name": body.name,
            "normalized_name": normalized,
            "profile": profile_payload(profile),
            "grams": round(conversion.grams, 1),
            "confidence": conversion.confidence.value,
            "macros": {
                "calories": macros.calories,
                "protein_g": macros.protein_g,
                "carbs_g": macros.carbs_g,
                "fat_g": macros.fat_g,
            },
        }

    @app.post("/ingredients/reference")
    async def nutrition_reference(
        body: ReferenceRequest, request: Request
    ) -> dict[str, str]:
        """Build the prompt reference block from fresh cached entries."""
        state_container: AppContainer = request.app.state.container
        cache = state_container.nutrition_cache
        entries = []
        for name in body.names:
            entry = cache.peek(normalize_ingredient_name(name))
            if entry is not None and not cache.is_stale(entry):
                entries.append(entry)
        return {"reference": build_nutrition_reference(entries)}

    return app
