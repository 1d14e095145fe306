"""Read-model normalization for stored meals."""

import json
import logging
from collections.abc import Mapping

from meal_insights.domain.meals import ClientMeal
from meal_insights.domain.nutrients import (
    CORE_NUTRIENTS,
    SHORT_NAMES,
    TRACKED_NUTRIENTS,
    Nutrient,
)
from meal_insights.services.resolver import resolve

_logger = logging.getLogger(__name__)

_RATINGS = (
    ("tasteRating", "taste_rating"),
    ("satietyRating", "satiety_rating"),
    ("energyRating", "energy_rating"),
    ("heavinessRating", "heaviness_rating"),
)

_INGREDIENT_EXTRA_FIELDS = (
    Nutrient.CHOLESTEROL,
    Nutrient.SATURATED_FATS,
    Nutrient.POLYUNSATURATED_FATS,
    Nutrient.MONOUNSATURATED_FATS,
    Nutrient.OMEGA_3,
    Nutrient.OMEGA_6,
    Nutrient.SOLUBLE_FIBER,
    Nutrient.INSOLUBLE_FIBER,
    Nutrient.ALCOHOL,
    Nutrient.CAFFEINE,
    Nutrient.SERVING_SIZE,
)


def parse_ingredients(raw: object) -> list[dict[str, object]]:
    """Return ingredient mappings from list or JSON text storage."""
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            _logger.debug("Ignoring malformed ingredients payload")
            return []
    if not isinstance(raw, list):
        return []
    return [dict(item) for item in raw if isinstance(item, Mapping)]


def parse_additives(raw: object) -> dict[str, object]:
    """Return the additives attachment as a mapping."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            _logger.debug("Ignoring malformed additives payload")
            return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    return {}


def normalize_ingredient(raw: object, index: int) -> dict[str, object]:
    """Convert an analyzer ingredient entry to the stored ingredient shape."""
    if isinstance(raw, str):
        return {
            "name": raw,
            "calories": 0,
            "protein": 0,
            "carbs": 0,
            "fat": 0,
            "fiber": 0,
            "sugar": 0,
            "sodium_mg": 0,
        }
    item = dict(raw) if isinstance(raw, Mapping) else {}
    ingredient: dict[str, object] = {
        "name": item.get("name") or f"Item {index + 1}",
        "calories": _number(item.get("calories")),
        "protein": _number(item.get("protein_g") or item.get("protein")),
        "carbs": _number(item.get("carbs_g") or item.get("carbs")),
        "fat": _number(item.get("fats_g") or item.get("fat")),
        "fiber": _number(item.get("fiber_g")),
        "sugar": _number(item.get("sugar_g")),
        "sodium_mg": _number(item.get("sodium_mg")),
    }
    for nutrient in _INGREDIENT_EXTRA_FIELDS:
        ingredient[nutrient.value] = _number(item.get(nutrient.value))
    ingredient["glycemic_index"] = item.get("glycemic_index") or None
    ingredient["insulin_index"] = item.get("insulin_index") or None
    for blob in ("vitamins_json", "micronutrients_json", "allergens_json"):
        ingredient[blob] = item.get(blob) or {}
    return ingredient


def meal_totals(
    meal: Mapping[str, object],
    ingredients: list[dict[str, object]] | None = None,
) -> dict[Nutrient, int]:
    """Compute core nutrient totals for a meal.

    Ingredient sums take precedence; a nutrient whose ingredient sum is zero
    falls back to the meal-level value.
    """
    if ingredients is None:
        ingredients = parse_ingredients(meal.get("ingredients"))
    meal_level = {nutrient: resolve(meal, nutrient) for nutrient in CORE_NUTRIENTS}
    if not ingredients:
        return meal_level
    totals: dict[Nutrient, int] = {}
    for nutrient in CORE_NUTRIENTS:
        ingredient_sum = sum(resolve(item, nutrient) for item in ingredients)
        totals[nutrient] = ingredient_sum or meal_level[nutrient]
    return totals


def to_client_view(stored: Mapping[str, object]) -> ClientMeal:
    """Build the dual-keyed client representation of a stored meal."""
    additives = parse_additives(stored.get("additives_json"))
    feedback = parse_additives(additives.get("feedback"))
    meal_id = stored.get("meal_id")
    meal_period = stored.get("meal_period") or "other"
    is_favorite = bool(additives.get("isFavorite") or False)

    view: ClientMeal = {
        "meal_id": meal_id,
        "id": str(meal_id) if meal_id is not None else None,
        "user_id": stored.get("user_id"),
        "userId": stored.get("user_id"),
        "meal_name": stored.get("meal_name"),
        "name": stored.get("meal_name") or "Unknown Meal",
        "description": stored.get("meal_name"),
        "image_url": stored.get("image_url"),
        "imageUrl": stored.get("image_url"),
        "upload_time": stored.get("upload_time"),
        "uploadTime": stored.get("upload_time"),
        "analysis_status": stored.get("analysis_status"),
        "analysisStatus": stored.get("analysis_status"),
        "created_at": stored.get("created_at"),
        "createdAt": stored.get("created_at"),
        "meal_period": meal_period,
        "mealPeriod": meal_period,
    }
    for nutrient in TRACKED_NUTRIENTS:
        view[nutrient.value] = stored.get(nutrient.value)
    for nutrient, short in SHORT_NAMES.items():
        view[short] = stored.get(nutrient.value) or 0
    view["fats"] = view["fat"]
    ingredients = parse_ingredients(stored.get("ingredients"))
    view["ingredients"] = ingredients
    for nutrient, total in meal_totals(stored, ingredients).items():
        label = SHORT_NAMES.get(nutrient, nutrient.value)
        view[f"total_{label}"] = total
        view[f"total{label.capitalize()}"] = total
    view["isFavorite"] = is_favorite
    view["is_favorite"] = is_favorite
    for camel, snake in _RATINGS:
        rating = feedback.get(camel) or 0
        view[camel] = rating
        view[snake] = rating
    return view


def _number(value: object) -> float:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int | float):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0
    return 0
