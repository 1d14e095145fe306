"""Closed nutrient schema and alias priority table."""

from enum import StrEnum


class Nutrient(StrEnum):
    """Canonical nutrient fields stored on meals and ingredients."""

    CALORIES = "calories"
    PROTEIN = "protein_g"
    CARBS = "carbs_g"
    FATS = "fats_g"
    SATURATED_FATS = "saturated_fats_g"
    POLYUNSATURATED_FATS = "polyunsaturated_fats_g"
    MONOUNSATURATED_FATS = "monounsaturated_fats_g"
    OMEGA_3 = "omega_3_g"
    OMEGA_6 = "omega_6_g"
    FIBER = "fiber_g"
    SOLUBLE_FIBER = "soluble_fiber_g"
    INSOLUBLE_FIBER = "insoluble_fiber_g"
    SUGAR = "sugar_g"
    CHOLESTEROL = "cholesterol_mg"
    SODIUM = "sodium_mg"
    ALCOHOL = "alcohol_g"
    CAFFEINE = "caffeine_mg"
    LIQUIDS = "liquids_ml"
    SERVING_SIZE = "serving_size_g"
    GLYCEMIC_INDEX = "glycemic_index"
    INSULIN_INDEX = "insulin_index"
    CONFIDENCE = "confidence"


TRACKED_NUTRIENTS: tuple[Nutrient, ...] = tuple(Nutrient)

CORE_NUTRIENTS: tuple[Nutrient, ...] = (
    Nutrient.CALORIES,
    Nutrient.PROTEIN,
    Nutrient.CARBS,
    Nutrient.FATS,
    Nutrient.FIBER,
    Nutrient.SUGAR,
    Nutrient.SODIUM,
)

SHORT_NAMES: dict[Nutrient, str] = {
    Nutrient.PROTEIN: "protein",
    Nutrient.CARBS: "carbs",
    Nutrient.FATS: "fat",
    Nutrient.FIBER: "fiber",
    Nutrient.SUGAR: "sugar",
    Nutrient.SODIUM: "sodium",
}

# Unit suffixes stripped from a field name, in priority order.
_UNIT_SUFFIXES = ("_g", "_mg", "g", "mg")


def candidate_fields(field_name: str) -> tuple[str, ...]:
    """Return the exact name followed by its unit-stripped spellings."""
    variants = [field_name]
    variants.extend(field_name.removesuffix(suffix) for suffix in _UNIT_SUFFIXES)
    return tuple(dict.fromkeys(variant for variant in variants if variant))


def _build_alias_groups() -> dict[Nutrient, tuple[tuple[str, ...], ...]]:
    table: dict[Nutrient, tuple[tuple[str, ...], ...]] = {}
    for nutrient in Nutrient:
        groups = [candidate_fields(nutrient.value)]
        short = SHORT_NAMES.get(nutrient)
        if short:
            groups.append(candidate_fields(short))
        table[nutrient] = tuple(groups)
    return table


# Candidate groups per nutrient: canonical spellings, then short-name spellings.
# A group that resolves to zero hands over to the next group.
ALIAS_GROUPS: dict[Nutrient, tuple[tuple[str, ...], ...]] = _build_alias_groups()


def as_nutrient(value: "Nutrient | str") -> Nutrient:
    """Map a canonical or short nutrient name to its enum member."""
    if isinstance(value, Nutrient):
        return value
    try:
        return Nutrient(value)
    except ValueError:
        pass
    for nutrient, short in SHORT_NAMES.items():
        if short == value:
            return nutrient
    raise ValueError(f"Unknown nutrient field: {value}")
