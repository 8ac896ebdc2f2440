"""
Field Validator — display-width text limits and numeric ranges for quantity items.

Every editable cell on the quantity sheet is gated here before it can be saved.

Text limits are counted in display width, not characters:
    half-width (hankaku) = 1  — ASCII, half-width katakana
    full-width (zenkaku) = 2  — kana, kanji, full-width latin, symbols, emoji
so a 25 full-width / 50 half-width field takes 25 kanji or 50 ASCII letters.

User-input problems never raise. Results are dicts:
    {"is_valid": True}
    {"is_valid": False, "error": "..."}
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


# Text fields: zenkaku = full-width chars, hankaku = max display width (always 2 x zenkaku)
FIELD_CONSTRAINTS = {
    "major_category": {"zenkaku": 25, "hankaku": 50},
    "middle_category": {"zenkaku": 25, "hankaku": 50},
    "minor_category": {"zenkaku": 25, "hankaku": 50},
    "custom_category": {"zenkaku": 25, "hankaku": 50},
    "work_type": {"zenkaku": 8, "hankaku": 16},
    "name": {"zenkaku": 25, "hankaku": 50},
    "specification": {"zenkaku": 25, "hankaku": 50},
    "unit": {"zenkaku": 3, "hankaku": 6},
    "calculation_method": {"zenkaku": 25, "hankaku": 50},
    "remarks": {"zenkaku": 25, "hankaku": 50},
}

# Numeric fields — inclusive bounds
NUMERIC_FIELD_RANGES = {
    "adjustment_factor": {"min": -9.99, "max": 9.99},
    "rounding_unit": {"min": 0.01, "max": 999.99},
    "quantity": {"min": -999999.99, "max": 9999999.99},
}

# Area/volume and pitch measurement fields, blank allowed
DIMENSION_RANGE = {"min": 0.01, "max": 9999999.99}

NUMERIC_FIELD_DEFAULTS = {
    "adjustment_factor": 1.0,
    "rounding_unit": 0.01,
    "quantity": 0,
}

FIELD_LABELS = {
    "major_category": "major category",
    "middle_category": "middle category",
    "minor_category": "minor category",
    "custom_category": "custom category",
    "work_type": "work type",
    "name": "name",
    "specification": "specification",
    "unit": "unit",
    "calculation_method": "calculation method",
    "remarks": "remarks",
    "adjustment_factor": "adjustment factor",
    "rounding_unit": "rounding unit",
    "quantity": "quantity",
    "dimension": "dimension",
}

VALIDATION_PROBLEM_TYPE = "https://architrack.example.com/problems/field-validation-error"


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _constraint(field_name: str) -> dict:
    if field_name not in FIELD_CONSTRAINTS:
        raise ValueError(
            f"No text constraint for field: {field_name}. "
            f"Available: {list(FIELD_CONSTRAINTS.keys())}"
        )
    return FIELD_CONSTRAINTS[field_name]


def _numeric_range(field_name: str) -> dict:
    if field_name not in NUMERIC_FIELD_RANGES:
        raise ValueError(
            f"No numeric range for field: {field_name}. "
            f"Available: {list(NUMERIC_FIELD_RANGES.keys())}"
        )
    return NUMERIC_FIELD_RANGES[field_name]


# --- Text width ---

def _char_width(char: str) -> int:
    code_point = ord(char)
    if code_point <= 0x7F:
        return 1
    if 0xFF61 <= code_point <= 0xFF9F:  # half-width katakana
        return 1
    return 2


def calculate_string_width(value: str) -> int:
    """Display width of a string. Iterates code points, so an emoji counts once (width 2)."""
    return sum(_char_width(char) for char in value)


def validate_text_length(value: str, field_name: str) -> dict:
    """Valid while the display width fits the field's half-width limit. Empty is always valid."""
    constraint = _constraint(field_name)
    if calculate_string_width(value) <= constraint["hankaku"]:
        return {"is_valid": True}
    label = FIELD_LABELS.get(field_name, field_name)
    return {
        "is_valid": False,
        "error": (
            f"{label} must be within {constraint['zenkaku']} full-width / "
            f"{constraint['hankaku']} half-width characters"
        ),
    }


def get_remaining_width(value: str, field_name: str) -> int:
    """Half-width characters left before the limit. Negative once over it."""
    return _constraint(field_name)["hankaku"] - calculate_string_width(value)


# --- Numeric ranges ---

def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else repr(bound)


def _range_error(label: str, bounds: dict) -> str:
    return (
        f"{label} must be between {_format_bound(bounds['min'])} "
        f"and {_format_bound(bounds['max'])}"
    )


def validate_numeric_range(value: float, field_name: str) -> dict:
    """Inclusive bounds check against NUMERIC_FIELD_RANGES."""
    bounds = _numeric_range(field_name)
    if bounds["min"] <= value <= bounds["max"]:
        return {"is_valid": True}
    return {
        "is_valid": False,
        "error": _range_error(FIELD_LABELS.get(field_name, field_name), bounds),
    }


def validate_dimension_field(value: Optional[float]) -> dict:
    """Measurement inputs (width, pitch length, ...). Blank is valid — not every one is required."""
    if value is None:
        return {"is_valid": True}
    if DIMENSION_RANGE["min"] <= value <= DIMENSION_RANGE["max"]:
        return {"is_valid": True}
    return {"is_valid": False, "error": _range_error("dimension", DIMENSION_RANGE)}


# --- Whole item ---

def validate_quantity_item_fields(item: dict) -> dict:
    """
    Run every text-length and numeric-range check over one line item.

    Returns {field_name: error_message} for the failing fields only.
    Blank text and non-numeric values are skipped — whether a field is
    required is the caller's concern, not a field-rule violation.
    """
    errors = {}

    for field_name in FIELD_CONSTRAINTS:
        value = item.get(field_name)
        if not value:
            continue
        result = validate_text_length(value, field_name)
        if not result["is_valid"]:
            errors[field_name] = result["error"]

    for field_name in NUMERIC_FIELD_RANGES:
        value = item.get(field_name)
        if not _is_number(value):
            continue
        result = validate_numeric_range(value, field_name)
        if not result["is_valid"]:
            errors[field_name] = result["error"]

    return errors


def create_validation_error_response(errors: dict, item: Optional[dict] = None) -> dict:
    """
    Problem-details body (RFC 7807) for a save rejected by field rules.

    errors: output of validate_quantity_item_fields
    item: the rejected item, to echo back the offending values
    """
    item = item or {}
    field_errors = []
    for field_name, message in errors.items():
        entry = {"field": field_name, "message": message}
        if item.get(field_name) is not None:
            entry["value"] = item[field_name]
        field_errors.append(entry)

    return {
        "type": VALIDATION_PROBLEM_TYPE,
        "title": "Field Validation Error",
        "status": 400,
        "detail": "Field specification violation: " + "; ".join(errors.values()),
        "code": "FIELD_VALIDATION_ERROR",
        "field_errors": field_errors,
    }


# --- Defaults for blank numeric cells ---

def apply_adjustment_factor_default(value: Optional[float]) -> float:
    """Blank adjustment factor -> 1.00"""
    if value is None:
        return NUMERIC_FIELD_DEFAULTS["adjustment_factor"]
    return value


def apply_rounding_unit_default(value: Optional[float]) -> float:
    """Blank or 0 rounding unit -> 0.01"""
    if value is None or value == 0:
        return NUMERIC_FIELD_DEFAULTS["rounding_unit"]
    return value


def apply_quantity_default(value: Optional[float]) -> float:
    """Blank quantity -> 0"""
    if value is None:
        return NUMERIC_FIELD_DEFAULTS["quantity"]
    return value


# --- Display formatting ---

def format_decimal2(value: float) -> str:
    """
    Two fixed decimals: 1 -> '1.00', 1.999 -> '2.00', -1.5 -> '-1.50'.

    Rounds the exact binary value half away from zero, so 0.125 -> '0.13'
    while 1.005 (stored as 1.00499...) -> '1.00'. NaN and infinities are
    rendered as-is ('nan', 'inf').
    """
    if not math.isfinite(value):
        return str(value)
    quantized = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{quantized:.2f}"


def format_conditional_decimal2(value: Optional[float]) -> str:
    """Measurement cells: blank stays blank, numbers get two decimals."""
    if value is None:
        return ""
    return format_decimal2(value)
