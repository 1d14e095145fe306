"""Models for AI meal analysis results."""

from pydantic import BaseModel, ConfigDict, Field


class AnalyzedIngredient(BaseModel):
    """Single ingredient estimated by the analyzer."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fats_g: float | None = None
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None


class MealAnalysis(BaseModel):
    """Structured nutrient record returned by the analyzer."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    meal_name: str | None = None
    calories: float = Field(default=0.0, ge=0.0)
    protein_g: float | None = None
    carbs_g: float | None = None
    fats_g: float | None = None
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None
    saturated_fats_g: float | None = None
    cholesterol_mg: float | None = None
    serving_size_g: float | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=100.0)
    cooking_method: str | None = None
    food_category: str | None = None
    health_notes: str | None = None
    recommendations: str | None = None
    ingredients: list[AnalyzedIngredient | str] = Field(default_factory=list)
