"""Domain models for meal logging."""

from dataclasses import dataclass, field
from datetime import datetime

StoredMeal = dict[str, object]
ClientMeal = dict[str, object]


@dataclass(frozen=True)
class MealFilter:
    """Query filter passed to the meal store."""

    owner_id: str
    created_from: datetime | None = None
    created_to: datetime | None = None
    offset: int = 0
    limit: int | None = None
    newest_first: bool = True


@dataclass(frozen=True)
class AnalysisRequest:
    """Input for analyzing a meal photo."""

    image_base64: str
    language: str = "english"
    update_text: str | None = None
    edited_ingredients: list[dict[str, object]] = field(default_factory=list)
    meal_type: str | None = None
    meal_period: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """Mapped meal fields produced by an analysis run."""

    meal: dict[str, object]
    ingredients: list[dict[str, object]]
    confidence: float
    recommendations: str

    def as_payload(self) -> dict[str, object]:
        """Return the meal fields merged with analysis extras."""
        return {
            **self.meal,
            "ingredients": self.ingredients,
            "healthScore": str(self.confidence),
            "recommendations": self.recommendations,
            "confidence": self.confidence,
        }
