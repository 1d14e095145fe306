"""Meal photo analysis using an AI estimator."""

import asyncio
import base64
import binascii
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from meal_insights.domain.analysis import MealAnalysis
from meal_insights.domain.errors import UpstreamAnalysisError, ValidationError
from meal_insights.domain.meals import AnalysisRequest, AnalysisResult
from meal_insights.domain.nutrients import Nutrient
from meal_insights.services.normalizer import normalize_ingredient

MEAL_PERIODS = frozenset(
    {
        "breakfast",
        "lunch",
        "dinner",
        "snack",
        "morning_snack",
        "afternoon_snack",
        "late_night",
        "other",
    }
)
DEFAULT_CONFIDENCE = 75
_PERIODS_BY_HOUR = ((5, 12, "breakfast"), (12, 18, "lunch"), (18, 22, "dinner"))

_DATA_URL_PREFIX = re.compile(r"^data:.*base64,")
_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

_logger = logging.getLogger(__name__)


def _number_schema() -> dict[str, object]:
    return {"anyOf": [{"type": "number", "minimum": 0}, {"type": "null"}]}


def _text_schema() -> dict[str, object]:
    return {"anyOf": [{"type": "string"}, {"type": "null"}]}


_INGREDIENT_FIELDS = (
    "calories",
    "protein_g",
    "carbs_g",
    "fats_g",
    "fiber_g",
    "sugar_g",
    "sodium_mg",
)
_MEAL_NUMBER_FIELDS = (
    *_INGREDIENT_FIELDS,
    "saturated_fats_g",
    "cholesterol_mg",
    "serving_size_g",
    "confidence",
)
_MEAL_TEXT_FIELDS = ("cooking_method", "food_category", "health_notes")

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        **{name: _number_schema() for name in _MEAL_NUMBER_FIELDS},
        **{name: _text_schema() for name in _MEAL_TEXT_FIELDS},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    **{name: _number_schema() for name in _INGREDIENT_FIELDS},
                },
                "required": ["name", *_INGREDIENT_FIELDS],
                "additionalProperties": False,
            },
        },
    },
    "required": [
        "name",
        *_MEAL_NUMBER_FIELDS,
        *_MEAL_TEXT_FIELDS,
        "ingredients",
    ],
    "additionalProperties": False,
}


class MealAnalyzer(Protocol):
    """Interface for the AI nutrient estimator."""

    async def analyze(
        self,
        image_bytes: bytes,
        language: str,
        hint_text: str | None = None,
        hint_ingredients: list[dict[str, object]] | None = None,
    ) -> dict[str, object]:
        """Return a raw nutrient record for the meal in the image."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MealAnalysisService:
    """Validates photos, runs the analyzer and maps its output."""

    analyzer: MealAnalyzer
    timeout_seconds: float = 60.0
    clock: Callable[[], datetime] = _utc_now

    async def analyze(self, owner_id: str, request: AnalysisRequest) -> AnalysisResult:
        """Analyze a meal photo and return store-ready fields."""
        clean_base64 = clean_image_base64(request.image_base64)
        image_bytes = decode_image(clean_base64)
        meal_period = resolve_meal_period(
            request.meal_type or request.meal_period, self.clock()
        )
        _logger.info(
            "Analyzing meal for owner=%s period=%s hint=%s edited_ingredients=%s",
            owner_id,
            meal_period,
            bool(request.update_text),
            len(request.edited_ingredients),
        )
        analysis = await self._call_analyzer(image_bytes, request)

        ingredients = [
            normalize_ingredient(item, index)
            for index, item in enumerate(analysis.get("ingredients") or [])
        ]
        meal = map_meal_fields(analysis, owner_id, clean_base64, meal_period)
        meal["ingredients"] = ingredients
        if not str(meal.get("meal_name") or "").strip():
            meal["meal_name"] = analysis.get("name") or "Analyzed Meal"
        if not meal.get("calories") and not ingredients:
            raise ValidationError(
                "Analysis failed to identify any nutritional content. "
                "Please try a clearer image."
            )
        confidence = analysis.get("confidence") or DEFAULT_CONFIDENCE
        recommendations = (
            analysis.get("health_notes")
            or analysis.get("recommendations")
            or "Meal analysis completed successfully."
        )
        return AnalysisResult(
            meal=meal,
            ingredients=ingredients,
            confidence=confidence,
            recommendations=str(recommendations),
        )

    async def _call_analyzer(
        self, image_bytes: bytes, request: AnalysisRequest
    ) -> dict[str, object]:
        try:
            raw = await asyncio.wait_for(
                self.analyzer.analyze(
                    image_bytes,
                    request.language,
                    hint_text=request.update_text,
                    hint_ingredients=request.edited_ingredients or None,
                ),
                timeout=self.timeout_seconds,
            )
            analysis = MealAnalysis.model_validate(raw)
        except TimeoutError as exc:
            _logger.warning(
                "Meal analysis timed out after %s seconds", self.timeout_seconds
            )
            raise UpstreamAnalysisError.timeout() from exc
        except Exception as exc:
            if _is_timeout(exc):
                _logger.warning("Meal analysis timed out: %s", exc)
                raise UpstreamAnalysisError.timeout() from exc
            _logger.exception("Meal analysis failed")
            raise UpstreamAnalysisError.failure() from exc
        return analysis.model_dump(exclude_none=True)


def _is_timeout(exc: Exception) -> bool:
    message = str(exc).lower()
    return "timeout" in message or "timed out" in message


def clean_image_base64(image_base64: str | None) -> str:
    """Strip a data URL prefix and validate the base64 alphabet."""
    if not image_base64 or not image_base64.strip():
        raise ValidationError("Image data is required")
    cleaned = _DATA_URL_PREFIX.sub("", image_base64.strip())
    if not cleaned or not _BASE64_PATTERN.match(cleaned):
        raise ValidationError("Invalid base64 image format")
    return cleaned


def decode_image(clean_base64: str) -> bytes:
    try:
        return base64.b64decode(clean_base64, validate=True)
    except binascii.Error as exc:
        raise ValidationError("Invalid base64 image format") from exc


def resolve_meal_period(requested: str | None, now: datetime) -> str:
    """Return a known meal period, inferring one from the hour if unset."""
    if not requested:
        requested = next(
            (
                period
                for start, end, period in _PERIODS_BY_HOUR
                if start <= now.hour < end
            ),
            "other",
        )
    return requested if requested in MEAL_PERIODS else "other"


def map_meal_fields(
    meal_data: Mapping[str, object],
    owner_id: str,
    image_base64: str | None = None,
    meal_period: str | None = None,
    *,
    now: datetime | None = None,
) -> dict[str, object]:
    """Map an analysis or client payload onto stored meal columns."""
    timestamp = now or datetime.now(tz=UTC)
    ingredients = meal_data.get("ingredients")
    fields: dict[str, object] = {
        "user_id": owner_id,
        "image_url": (
            f"data:image/jpeg;base64,{image_base64}" if image_base64 else None
        ),
        "upload_time": timestamp.isoformat(),
        "analysis_status": "COMPLETED",
        "meal_name": meal_data.get("meal_name")
        or meal_data.get("name")
        or "Unknown Meal",
        "calories": meal_data.get("calories") or 0,
        "protein_g": meal_data.get("protein_g") or meal_data.get("protein") or 0,
        "carbs_g": meal_data.get("carbs_g") or meal_data.get("carbs") or 0,
        "fats_g": meal_data.get("fats_g") or meal_data.get("fat") or 0,
        "fiber_g": meal_data.get("fiber_g") or meal_data.get("fiber") or 0,
        "sugar_g": meal_data.get("sugar_g") or meal_data.get("sugar") or 0,
        "sodium_mg": meal_data.get("sodium_mg") or meal_data.get("sodium") or 0,
    }
    for nutrient in (
        Nutrient.SATURATED_FATS,
        Nutrient.POLYUNSATURATED_FATS,
        Nutrient.MONOUNSATURATED_FATS,
        Nutrient.OMEGA_3,
        Nutrient.OMEGA_6,
        Nutrient.SOLUBLE_FIBER,
        Nutrient.INSOLUBLE_FIBER,
        Nutrient.CHOLESTEROL,
        Nutrient.ALCOHOL,
        Nutrient.CAFFEINE,
        Nutrient.LIQUIDS,
        Nutrient.SERVING_SIZE,
        Nutrient.GLYCEMIC_INDEX,
        Nutrient.INSULIN_INDEX,
    ):
        fields[nutrient.value] = meal_data.get(nutrient.value) or 0
    for blob in (
        "allergens_json",
        "vitamins_json",
        "micronutrients_json",
        "additives_json",
    ):
        fields[blob] = meal_data.get(blob) or {}
    for text in (
        "food_category",
        "processing_level",
        "cooking_method",
        "health_risk_notes",
    ):
        fields[text] = meal_data.get(text) or ""
    fields["confidence"] = meal_data.get("confidence") or DEFAULT_CONFIDENCE
    fields["ingredients"] = ingredients if isinstance(ingredients, list) else []
    fields["created_at"] = timestamp.isoformat()
    fields["meal_period"] = (
        meal_period
        or meal_data.get("mealPeriod")
        or meal_data.get("meal_period")
        or "other"
    )
    return fields
