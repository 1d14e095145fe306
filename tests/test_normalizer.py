"""Tests for meal read-model normalization."""

import json

from meal_insights.domain.nutrients import Nutrient
from meal_insights.services.normalizer import (
    meal_totals,
    normalize_ingredient,
    parse_additives,
    parse_ingredients,
    to_client_view,
)


def test_meal_totals_sum_ingredients_across_aliases() -> None:
    meal = {
        "protein_g": 0,
        "ingredients": [
            {"name": "rice", "protein_g": 4},
            {"name": "egg", "protein": 6},
        ],
    }

    totals = meal_totals(meal)

    assert totals[Nutrient.PROTEIN] == 10


def test_meal_totals_fall_back_to_meal_level_values() -> None:
    meal = {
        "calories": 400,
        "protein_g": 20,
        "ingredients": json.dumps([{"name": "salad", "protein_g": 3}]),
    }

    totals = meal_totals(meal)

    assert totals[Nutrient.CALORIES] == 400
    assert totals[Nutrient.PROTEIN] == 3


def test_meal_totals_without_ingredients_use_meal_values() -> None:
    totals = meal_totals({"calories": 320.5, "fat": 11})

    assert totals[Nutrient.CALORIES] == 321
    assert totals[Nutrient.FATS] == 11
    assert totals[Nutrient.SODIUM] == 0


def test_parse_ingredients_handles_bad_payloads() -> None:
    assert parse_ingredients("{not json") == []
    assert parse_ingredients("") == []
    assert parse_ingredients({"name": "rice"}) == []
    assert parse_ingredients([{"name": "rice"}, "egg", 3]) == [{"name": "rice"}]


def test_parse_additives_handles_text_and_garbage() -> None:
    assert parse_additives('{"isFavorite": true}') == {"isFavorite": True}
    assert parse_additives("oops") == {}
    assert parse_additives(None) == {}


def test_normalize_ingredient_from_plain_name() -> None:
    ingredient = normalize_ingredient("tomato", 0)

    assert ingredient["name"] == "tomato"
    assert ingredient["calories"] == 0
    assert ingredient["protein"] == 0


def test_normalize_ingredient_maps_fields() -> None:
    ingredient = normalize_ingredient(
        {"protein_g": 6, "fat": 2.5, "sodium_mg": "40", "glycemic_index": 0}, 1
    )

    assert ingredient["name"] == "Item 2"
    assert ingredient["protein"] == 6
    assert ingredient["fat"] == 2.5
    assert ingredient["sodium_mg"] == 40.0
    assert ingredient["glycemic_index"] is None
    assert ingredient["vitamins_json"] == {}


def test_client_view_is_dual_keyed() -> None:
    stored = {
        "meal_id": 7,
        "user_id": "user-1",
        "meal_name": "Oatmeal",
        "calories": 310,
        "protein_g": 12,
        "fats_g": 6,
        "created_at": "2024-05-01T08:00:00+00:00",
        "ingredients": '[{"name": "oats"}]',
        "additives_json": json.dumps(
            {"isFavorite": True, "feedback": {"tasteRating": 4}}
        ),
        "meal_period": None,
    }

    view = to_client_view(stored)

    assert view["id"] == "7"
    assert view["userId"] == "user-1"
    assert view["name"] == "Oatmeal"
    assert view["protein"] == 12
    assert view["fat"] == 6
    assert view["fats"] == 6
    assert view["carbs"] == 0
    assert view["ingredients"] == [{"name": "oats"}]
    assert view["isFavorite"] is True
    assert view["is_favorite"] is True
    assert view["tasteRating"] == 4
    assert view["taste_rating"] == 4
    assert view["satietyRating"] == 0
    assert view["mealPeriod"] == "other"
    assert view["createdAt"] == stored["created_at"]
    assert view["total_calories"] == 310
    assert view["totalCalories"] == 310
    assert view["totalProtein"] == 12
    assert view["total_fat"] == 6


def test_client_view_totals_sum_ingredients() -> None:
    view = to_client_view(
        {
            "protein_g": 0,
            "calories": 420,
            "ingredients": [
                {"name": "rice", "protein_g": 4},
                {"name": "egg", "protein": 6},
            ],
        }
    )

    assert view["totalProtein"] == 10
    assert view["total_protein"] == 10
    assert view["protein"] == 0
    assert view["total_calories"] == 420
