"""Nutrient value resolution across legacy and alternate field names."""

import math
import re
from collections.abc import Mapping

from meal_insights.domain.nutrients import ALIAS_GROUPS, Nutrient, as_nutrient

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


def resolve(record: Mapping[str, object] | None, nutrient: Nutrient | str) -> int:
    """Return a nutrient value from the first matching alias, rounded."""
    return round_half_up(resolve_value(record, nutrient))


def resolve_value(
    record: Mapping[str, object] | None, nutrient: Nutrient | str
) -> float:
    """Return the unrounded nutrient value from the first matching alias.

    Candidates are tried group by group: the canonical name and its
    unit-stripped spellings, then the short name. Within a group, numbers
    count only when positive, so a stored zero is indistinguishable from a
    missing field, while numeric strings are parsed and stop the group even
    at zero. A group that yields zero falls through to the next one.
    Unresolved fields resolve to 0.
    """
    if not record:
        return 0.0
    for group in ALIAS_GROUPS[as_nutrient(nutrient)]:
        value = _group_value(record, group)
        if value:
            return value
    return 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return math.floor(value + 0.5)


def _group_value(record: Mapping[str, object], group: tuple[str, ...]) -> float:
    for candidate in group:
        value = _candidate_value(record.get(candidate))
        if value is not None:
            return value
    return 0.0


def _candidate_value(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        if math.isfinite(value) and value > 0:
            return value
        return None
    if isinstance(value, str):
        return _parse_leading_number(value)
    return None


def _parse_leading_number(text: str) -> float | None:
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return None
    parsed = float(match.group(0))
    return parsed if math.isfinite(parsed) else None
