"""Request bodies accepted by the meals API."""

from pydantic import BaseModel, ConfigDict, Field


class AnalyzeMealBody(BaseModel):
    """Photo analysis request."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(alias="imageBase64")
    language: str = "english"
    update_text: str | None = Field(default=None, alias="updateText")
    edited_ingredients: list[dict[str, object]] = Field(
        default_factory=list, alias="editedIngredients"
    )
    meal_type: str | None = Field(default=None, alias="mealType")
    meal_period: str | None = Field(default=None, alias="mealPeriod")


class SaveMealBody(BaseModel):
    """Analyzed meal to persist."""

    model_config = ConfigDict(populate_by_name=True)

    meal: dict[str, object]
    image_base64: str | None = Field(default=None, alias="imageBase64")


class UpdateMealBody(BaseModel):
    """Correction text for re-analyzing a meal."""

    model_config = ConfigDict(populate_by_name=True)

    update_text: str = Field(alias="updateText", min_length=1)
    language: str = "english"


class FeedbackBody(BaseModel):
    """Ratings recorded for a meal."""

    model_config = ConfigDict(extra="allow")

    taste_rating: int | None = Field(default=None, alias="tasteRating", ge=0, le=5)
    satiety_rating: int | None = Field(
        default=None, alias="satietyRating", ge=0, le=5
    )
    energy_rating: int | None = Field(default=None, alias="energyRating", ge=0, le=5)
    heaviness_rating: int | None = Field(
        default=None, alias="heavinessRating", ge=0, le=5
    )


class DuplicateMealBody(BaseModel):
    """Target date for a duplicated meal."""

    model_config = ConfigDict(populate_by_name=True)

    new_date: str | None = Field(default=None, alias="newDate")
