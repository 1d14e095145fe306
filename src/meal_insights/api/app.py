"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from meal_insights.api.admin import router as admin_router
from meal_insights.api.models import (
    AnalyzeMealBody,
    DuplicateMealBody,
    FeedbackBody,
    SaveMealBody,
    UpdateMealBody,
)
from meal_insights.app_logging import configure_logging
from meal_insights.containers import AppContainer
from meal_insights.domain.errors import (
    MealInsightsError,
    NotFoundError,
    UpstreamAnalysisError,
    ValidationError,
)
from meal_insights.domain.meals import AnalysisRequest
from meal_insights.services.nutrition import NutritionService


async def require_owner(x_user_id: str | None = Header(default=None)) -> str:
    """Return the calling owner's id from the request headers."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return x_user_id.strip()


def _service(request: Request) -> NutritionService:
    container: AppContainer = request.app.state.container
    return container.nutrition_service


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
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

    @app.exception_handler(MealInsightsError)
    async def handle_meal_error(
        request: Request, exc: MealInsightsError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/meals")
    async def list_meals(
        request: Request,
        offset: int = 0,
        limit: int = 100,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Return the caller's meals, newest first."""
        meals = _service(request).get_user_meals(owner_id, offset, limit)
        return {"meals": meals}

    @app.post("/meals/analyze")
    async def analyze_meal(
        body: AnalyzeMealBody,
        request: Request,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Analyze a meal photo without saving it."""
        result = await _service(request).analyze_meal(
            owner_id,
            AnalysisRequest(
                image_base64=body.image_base64,
                language=body.language,
                update_text=body.update_text,
                edited_ingredients=body.edited_ingredients,
                meal_type=body.meal_type,
                meal_period=body.meal_period,
            ),
        )
        return {
            "success": True,
            "data": result.as_payload(),
            "confidence": result.confidence,
        }

    @app.post("/meals", status_code=status.HTTP_201_CREATED)
    async def save_meal(
        body: SaveMealBody,
        request: Request,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Persist an analyzed meal."""
        meal = _service(request).save_meal(owner_id, body.meal, body.image_base64)
        return {"meal": meal}

    @app.get("/meals/stats/range")
    async def range_statistics(
        request: Request,
        start_date: str,
        end_date: str,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Return range totals, averages and the daily breakdown."""
        statistics = _service(request).get_range_statistics(
            owner_id, start_date, end_date
        )
        return statistics.as_payload()

    @app.get("/meals/stats/daily")
    async def daily_statistics(
        request: Request,
        date: str,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Return core macro totals for one day."""
        stats = _service(request).get_daily_stats(owner_id, date)
        return {
            "calories": stats.calories,
            "protein": stats.protein,
            "carbs": stats.carbs,
            "fat": stats.fat,
            "fiber": stats.fiber,
            "sugar": stats.sugar,
            "meal_count": stats.meal_count,
        }

    @app.put("/meals/{meal_id}")
    async def update_meal(
        meal_id: int,
        body: UpdateMealBody,
        request: Request,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Re-analyze a meal with correction text."""
        meal = await _service(request).update_meal(
            owner_id, meal_id, body.update_text, body.language
        )
        return {"meal": meal}

    @app.post("/meals/{meal_id}/feedback")
    async def meal_feedback(
        meal_id: int,
        body: FeedbackBody,
        request: Request,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Record ratings for a meal."""
        feedback = body.model_dump(by_alias=True, exclude_none=True)
        return _service(request).save_meal_feedback(owner_id, meal_id, feedback)

    @app.post("/meals/{meal_id}/favorite")
    async def toggle_favorite(
        meal_id: int,
        request: Request,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Flip a meal's favorite flag."""
        return _service(request).toggle_meal_favorite(owner_id, meal_id)

    @app.post("/meals/{meal_id}/duplicate", status_code=status.HTTP_201_CREATED)
    async def duplicate_meal(
        meal_id: int,
        request: Request,
        body: DuplicateMealBody | None = None,
        owner_id: str = Depends(require_owner),
    ) -> dict[str, object]:
        """Copy a meal, optionally onto another date."""
        new_date = body.new_date if body else None
        meal = _service(request).duplicate_meal(owner_id, meal_id, new_date)
        return {"meal": meal}

    return app


def _status_for(exc: MealInsightsError) -> int:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, UpstreamAnalysisError):
        if exc.timed_out:
            return status.HTTP_504_GATEWAY_TIMEOUT
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR
