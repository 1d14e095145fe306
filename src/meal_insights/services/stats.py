"""Nutrition statistics over meal collections."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time

from meal_insights.domain.errors import ValidationError
from meal_insights.domain.nutrients import TRACKED_NUTRIENTS, Nutrient
from meal_insights.domain.stats import DailyBreakdown, DailyStats, RangeStatistics
from meal_insights.services.resolver import resolve_value

_SUMMARY_FIELDS = ("meal_id", "user_id", "meal_name")
_DAY_END = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class StatsAggregator:
    """Computes range and daily nutrition statistics."""

    tracked: tuple[Nutrient, ...] = TRACKED_NUTRIENTS

    def range_statistics(
        self,
        meals: Iterable[Mapping[str, object]],
        start_date: date | str,
        end_date: date | str,
    ) -> RangeStatistics:
        """Aggregate meals created within the inclusive UTC date range."""
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        lower, upper = day_bounds(start, end)

        by_day: dict[date, list[Mapping[str, object]]] = {}
        for meal in meals:
            created_at = parse_timestamp(meal.get("created_at"))
            if created_at is None or not lower <= created_at <= upper:
                continue
            by_day.setdefault(created_at.date(), []).append(meal)

        total_meals = sum(len(day_meals) for day_meals in by_day.values())
        total_days = len(by_day)
        totals = dict.fromkeys(self.tracked, 0.0)
        breakdown: list[DailyBreakdown] = []
        for day in sorted(by_day):
            day_meals = by_day[day]
            day_totals = self._sum_fields(day_meals)
            for nutrient, value in day_totals.items():
                totals[nutrient] += value
            breakdown.append(
                DailyBreakdown(
                    day=day,
                    meals=[_summarize(meal) for meal in day_meals],
                    totals={key: round(val, 2) for key, val in day_totals.items()},
                )
            )

        averages = {
            nutrient: (value / total_days if total_days else 0.0)
            for nutrient, value in totals.items()
        }
        return RangeStatistics(
            start_date=start,
            end_date=end,
            total_days=total_days,
            total_meals=total_meals,
            totals={key: round(val, 2) for key, val in totals.items()},
            averages={key: round(val, 2) for key, val in averages.items()},
            daily_breakdown=breakdown,
        )

    def daily_statistics(
        self, meals: Iterable[Mapping[str, object]], day: date | str
    ) -> DailyStats:
        """Sum core macros for meals created on the given UTC day."""
        target = parse_iso_date(day)
        selected = [
            meal
            for meal in meals
            if (created_at := parse_timestamp(meal.get("created_at"))) is not None
            and created_at.date() == target
        ]
        totals = self._sum_fields(selected)
        return DailyStats(
            calories=totals.get(Nutrient.CALORIES, 0.0),
            protein=totals.get(Nutrient.PROTEIN, 0.0),
            carbs=totals.get(Nutrient.CARBS, 0.0),
            fat=totals.get(Nutrient.FATS, 0.0),
            fiber=totals.get(Nutrient.FIBER, 0.0),
            sugar=totals.get(Nutrient.SUGAR, 0.0),
            meal_count=len(selected),
        )

    def _sum_fields(self, meals: list[Mapping[str, object]]) -> dict[Nutrient, float]:
        totals = dict.fromkeys(self.tracked, 0.0)
        for meal in meals:
            for nutrient in self.tracked:
                totals[nutrient] += resolve_value(meal, nutrient)
        return totals


def parse_iso_date(value: date | str) -> date:
    """Parse an ISO date or datetime into its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Return UTC bounds from start-of-day to the last millisecond of end."""
    lower = datetime.combine(start, time.min, tzinfo=UTC)
    upper = datetime.combine(end, _DAY_END, tzinfo=UTC)
    return lower, upper


def parse_timestamp(value: object) -> datetime | None:
    """Return a UTC datetime for a stored timestamp, if parsable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _summarize(meal: Mapping[str, object]) -> dict[str, object]:
    summary = {name: meal.get(name) for name in _SUMMARY_FIELDS}
    for nutrient in TRACKED_NUTRIENTS:
        summary[nutrient.value] = meal.get(nutrient.value)
    summary["created_at"] = meal.get("created_at")
    summary["upload_time"] = meal.get("upload_time")
    return summary
