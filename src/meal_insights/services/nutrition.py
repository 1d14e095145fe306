"""Meal list, statistics and mutation service with owner-scoped caching."""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from meal_insights.domain.errors import NotFoundError, ValidationError
from meal_insights.domain.meals import (
    AnalysisRequest,
    AnalysisResult,
    ClientMeal,
    MealFilter,
    StoredMeal,
)
from meal_insights.domain.nutrients import TRACKED_NUTRIENTS
from meal_insights.domain.stats import DailyStats, RangeStatistics
from meal_insights.services.analysis import MealAnalysisService, map_meal_fields
from meal_insights.services.cache import Cache, CacheKey, TTLCache
from meal_insights.services.normalizer import (
    parse_additives,
    parse_ingredients,
    to_client_view,
)
from meal_insights.services.stats import StatsAggregator, day_bounds, parse_iso_date

_MEALS_NAMESPACE = "meals"
_RANGE_NAMESPACE = "range_stats"
_DAILY_NAMESPACE = "daily_stats"

_DUPLICATED_FIELDS = (
    "image_url",
    "meal_name",
    "meal_period",
    "allergens_json",
    "vitamins_json",
    "micronutrients_json",
    "food_category",
    "processing_level",
    "cooking_method",
    "health_risk_notes",
)

_logger = logging.getLogger(__name__)


class MealRepository(Protocol):
    """Persistence interface for meals."""

    def find_meals(self, meal_filter: MealFilter) -> list[StoredMeal]:
        """Return meals matching the filter."""

    def create_meal(self, fields: dict[str, object]) -> StoredMeal:
        """Insert a meal and return the stored row."""

    def update_meal(self, meal_id: int, fields: dict[str, object]) -> StoredMeal:
        """Update a meal and return the stored row."""

    def find_one_meal(self, meal_id: int, owner_id: str) -> StoredMeal | None:
        """Return the owner's meal by id, if present."""


class ImageClient(Protocol):
    """Interface for downloading remotely stored meal images."""

    async def download(self, url: str) -> bytes:
        """Return the image bytes at a URL."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class NutritionService:
    """Serves meals and statistics, invalidating caches on every mutation."""

    repository: MealRepository
    analysis_service: MealAnalysisService
    meals_cache: Cache = field(default_factory=TTLCache)
    stats_cache: Cache = field(default_factory=TTLCache)
    image_client: ImageClient | None = None
    aggregator: StatsAggregator = field(default_factory=StatsAggregator)
    clock: Callable[[], datetime] = _utc_now

    def get_user_meals(
        self, owner_id: str, offset: int = 0, limit: int = 100
    ) -> list[ClientMeal]:
        """Return the owner's meals, newest first."""
        if offset < 0 or limit <= 0:
            raise ValidationError("offset must be >= 0 and limit must be > 0")
        key = CacheKey(_MEALS_NAMESPACE, owner_id, (offset, limit))
        cached = self.meals_cache.get(key)
        if isinstance(cached, tuple):
            _logger.debug("Meals cache hit for owner=%s", owner_id)
            return list(cached)

        rows = self.repository.find_meals(
            MealFilter(owner_id=owner_id, offset=offset, limit=limit)
        )
        meals = [to_client_view(row) for row in rows]
        self.meals_cache.set(key, tuple(meals))
        _logger.info("Loaded %s meals for owner=%s", len(meals), owner_id)
        return meals

    def get_range_statistics(
        self, owner_id: str, start_date: str, end_date: str
    ) -> RangeStatistics:
        """Return totals, averages and a daily breakdown for a date range."""
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        if end < start:
            raise ValidationError("end_date must not be before start_date")
        key = CacheKey(_RANGE_NAMESPACE, owner_id, (start, end))
        cached = self.stats_cache.get(key)
        if isinstance(cached, RangeStatistics):
            _logger.debug("Range stats cache hit for owner=%s", owner_id)
            return cached

        lower, upper = day_bounds(start, end)
        rows = self.repository.find_meals(
            MealFilter(
                owner_id=owner_id,
                created_from=lower,
                created_to=upper,
                newest_first=False,
            )
        )
        statistics = self.aggregator.range_statistics(rows, start, end)
        self.stats_cache.set(key, statistics)
        return statistics

    def get_daily_stats(self, owner_id: str, day: str) -> DailyStats:
        """Return core macro totals for one day."""
        target = parse_iso_date(day)
        key = CacheKey(_DAILY_NAMESPACE, owner_id, (target,))
        cached = self.stats_cache.get(key)
        if isinstance(cached, DailyStats):
            return cached

        lower, upper = day_bounds(target, target)
        rows = self.repository.find_meals(
            MealFilter(owner_id=owner_id, created_from=lower, created_to=upper)
        )
        stats = self.aggregator.daily_statistics(rows, target)
        self.stats_cache.set(key, stats)
        return stats

    async def analyze_meal(
        self, owner_id: str, request: AnalysisRequest
    ) -> AnalysisResult:
        """Run the analysis pipeline without persisting anything."""
        return await self.analysis_service.analyze(owner_id, request)

    def save_meal(
        self,
        owner_id: str,
        meal_data: dict[str, object],
        image_base64: str | None = None,
    ) -> ClientMeal:
        """Persist an analyzed meal."""
        meal_type = meal_data.get("mealType")
        fields = map_meal_fields(
            meal_data,
            owner_id,
            image_base64,
            str(meal_type) if meal_type else None,
            now=self.clock(),
        )
        stored = self.repository.create_meal(fields)
        self._invalidate(owner_id)
        _logger.info("Saved meal %s for owner=%s", stored.get("meal_id"), owner_id)
        return to_client_view(stored)

    async def update_meal(
        self,
        owner_id: str,
        meal_id: int,
        update_text: str,
        language: str = "english",
    ) -> ClientMeal:
        """Re-analyze a stored meal with correction text and persist it."""
        existing = self._require_meal(owner_id, meal_id)
        image_base64 = await self._stored_image_base64(existing)
        meal_period = str(existing.get("meal_period") or "other")
        result = await self.analysis_service.analyze(
            owner_id,
            AnalysisRequest(
                image_base64=image_base64,
                language=language,
                update_text=update_text,
                edited_ingredients=parse_ingredients(existing.get("ingredients")),
                meal_period=meal_period,
            ),
        )
        fields = map_meal_fields(
            result.as_payload(), owner_id, image_base64, meal_period, now=self.clock()
        )
        fields.pop("created_at", None)
        fields["additives_json"] = parse_additives(existing.get("additives_json"))
        fields["updated_at"] = self.clock().isoformat()
        updated = self.repository.update_meal(meal_id, fields)
        self._invalidate(owner_id)
        _logger.info("Updated meal %s for owner=%s", meal_id, owner_id)
        return to_client_view(updated)

    def save_meal_feedback(
        self, owner_id: str, meal_id: int, feedback: dict[str, object]
    ) -> dict[str, object]:
        """Merge rating feedback into the meal's additives attachment."""
        meal = self._require_meal(owner_id, meal_id)
        additives = parse_additives(meal.get("additives_json"))
        existing_feedback = parse_additives(additives.get("feedback"))
        additives["feedback"] = {
            **existing_feedback,
            **feedback,
            "updatedAt": self.clock().isoformat(),
        }
        self.repository.update_meal(meal_id, {"additives_json": additives})
        self._invalidate(owner_id)
        return {"meal_id": meal_id, "feedback": feedback}

    def toggle_meal_favorite(self, owner_id: str, meal_id: int) -> dict[str, object]:
        """Flip the favorite flag stored in the additives attachment."""
        meal = self._require_meal(owner_id, meal_id)
        additives = parse_additives(meal.get("additives_json"))
        is_favorite = not bool(additives.get("isFavorite"))
        additives["isFavorite"] = is_favorite
        additives["favoriteUpdatedAt"] = self.clock().isoformat()
        self.repository.update_meal(meal_id, {"additives_json": additives})
        self._invalidate(owner_id)
        return {"meal_id": meal_id, "isFavorite": is_favorite}

    def duplicate_meal(
        self, owner_id: str, meal_id: int, new_date: str | None = None
    ) -> ClientMeal:
        """Copy a meal into a new record created at the given date or now."""
        original = self._require_meal(owner_id, meal_id)
        now = self.clock()
        created_at = _duplicate_timestamp(new_date, now)
        fields: dict[str, object] = {
            "user_id": owner_id,
            "upload_time": now.isoformat(),
            "analysis_status": "COMPLETED",
            "created_at": created_at.isoformat(),
            "additives_json": {},
            "ingredients": parse_ingredients(original.get("ingredients")),
        }
        for name in _DUPLICATED_FIELDS:
            fields[name] = original.get(name)
        for nutrient in TRACKED_NUTRIENTS:
            fields[nutrient.value] = original.get(nutrient.value)
        duplicated = self.repository.create_meal(fields)
        self._invalidate(owner_id)
        _logger.info("Duplicated meal %s for owner=%s", meal_id, owner_id)
        return to_client_view(duplicated)

    def clear_all_caches(self) -> None:
        """Drop every cached meal list and statistic."""
        self.meals_cache.clear()
        self.stats_cache.clear()
        _logger.info("All nutrition caches cleared")

    def _require_meal(self, owner_id: str, meal_id: int) -> StoredMeal:
        meal = self.repository.find_one_meal(meal_id, owner_id)
        if meal is None:
            raise NotFoundError(f"Meal {meal_id} not found")
        return meal

    def _invalidate(self, owner_id: str) -> None:
        cleared = self.meals_cache.invalidate_owner(owner_id)
        cleared += self.stats_cache.invalidate_owner(owner_id)
        _logger.debug("Invalidated %s cache entries for owner=%s", cleared, owner_id)

    async def _stored_image_base64(self, meal: StoredMeal) -> str:
        image_url = str(meal.get("image_url") or "")
        if image_url.startswith("data:image/"):
            _, _, image_url = image_url.partition(",")
        elif image_url.startswith(("http://", "https://")):
            if self.image_client is None:
                raise ValidationError("No image data found for this meal")
            image_bytes = await self.image_client.download(image_url)
            image_url = base64.b64encode(image_bytes).decode("utf-8")
        if not image_url:
            raise ValidationError("No image data found for this meal")
        return image_url


def _duplicate_timestamp(new_date: str | None, now: datetime) -> datetime:
    if not new_date:
        return now
    try:
        parsed = datetime.fromisoformat(new_date.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {new_date!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
