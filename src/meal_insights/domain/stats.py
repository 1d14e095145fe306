"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import date

from meal_insights.domain.nutrients import Nutrient


@dataclass(frozen=True)
class DailyBreakdown:
    """Meals created on one UTC calendar day and their totals."""

    day: date
    meals: list[dict[str, object]]
    totals: dict[Nutrient, float]

    def as_payload(self) -> dict[str, object]:
        return {
            "date": self.day.isoformat(),
            "meals": self.meals,
            **{f"total_{field}": value for field, value in self.totals.items()},
        }


@dataclass(frozen=True)
class RangeStatistics:
    """Totals and per-day averages over a date range."""

    start_date: date
    end_date: date
    total_days: int
    total_meals: int
    totals: dict[Nutrient, float]
    averages: dict[Nutrient, float]
    daily_breakdown: list[DailyBreakdown]

    def as_payload(self) -> dict[str, object]:
        """Flatten into the client response shape."""
        payload: dict[str, object] = {
            "totalDays": self.total_days,
            "totalMeals": self.total_meals,
        }
        for field, value in self.totals.items():
            payload[f"total_{field}"] = value
        for field, value in self.averages.items():
            payload[f"average_{field}"] = value
        payload["dailyBreakdown"] = [
            entry.as_payload() for entry in self.daily_breakdown
        ]
        payload["dateRange"] = {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }
        return payload


@dataclass(frozen=True)
class DailyStats:
    """Core macro totals for a single day."""

    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    sugar: float
    meal_count: int
