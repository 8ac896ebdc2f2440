"""
Quantity calculation engine.

Pure Python math. No I/O, no shared state.
Turns the raw inputs of one quantity line item into its final quantity:

    raw value  ->  x adjustment factor  ->  round UP to the rounding unit

Three calculation methods produce the raw value:
    STANDARD     — the quantity typed by the user
    AREA_VOLUME  — product of whichever of width / depth / height / weight are filled in
    PITCH        — number of repeat units along a range, optionally x length x weight

Params are plain dicts keyed by snake_case field names, the same shape the
line item carries. Every calculation also renders a formula string so the
quantity on the sheet can be traced back to its inputs.
"""

import enum
import math
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_EVEN
from typing import Optional


class CalculationMethod(str, enum.Enum):
    STANDARD = "STANDARD"
    AREA_VOLUME = "AREA_VOLUME"
    PITCH = "PITCH"


DEFAULT_ADJUSTMENT_FACTOR = 1.0
DEFAULT_ROUNDING_UNIT = 0.01
DEFAULT_CALCULATION_METHOD = CalculationMethod.STANDARD

AREA_VOLUME_FIELDS = ("width", "depth", "height", "weight")
PITCH_REQUIRED_FIELDS = ("range_length", "end_length1", "end_length2", "pitch_length")
PITCH_OPTIONAL_FIELDS = ("length", "weight")

# Labels used in validation messages
PITCH_FIELD_LABELS = {
    "range_length": "range length",
    "end_length1": "end length 1",
    "end_length2": "end length 2",
    "pitch_length": "pitch length",
}

# Step counts are worked out in Decimal from each number's shortest repr, so
# 0.07 / 0.01 is exactly 7. Quotients within this absolute distance of a whole
# number still snap to it: 3.3000000000000003 / 0.01 is 330 steps, not 331.
_STEP_TOLERANCE = Decimal("1e-9")

PITCH_LENGTH_ERROR = "pitch length must be greater than 0"
ROUNDING_UNIT_ERROR = "rounding unit must be greater than 0"


class CalculationError(ValueError):
    """Raised when the engine is called with inputs validation should have rejected."""


# --- Number helpers ---

def is_valid_number(value) -> bool:
    """True only for finite int/float values. Strings, None, bools, NaN and inf are rejected."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def format_number(value) -> str:
    """Render a number the way the sheet shows it: 50.0 -> '50', 1.5 -> '1.5'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def _present_values(params: dict, fields: tuple) -> list:
    """Values of the given fields that are finite numbers, in field order."""
    return [params.get(f) for f in fields if is_valid_number(params.get(f))]


def _number_or_zero(params: dict, field: str) -> float:
    value = params.get(field)
    return value if is_valid_number(value) else 0


def _to_decimal(value) -> Decimal:
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def _snap(quotient: Decimal, rounding: str) -> int:
    nearest = quotient.to_integral_value(rounding=ROUND_HALF_EVEN)
    if abs(quotient - nearest) <= _STEP_TOLERANCE:
        return int(nearest)
    return int(quotient.to_integral_value(rounding=rounding))


def _snap_floor(quotient: Decimal) -> int:
    return _snap(quotient, ROUND_FLOOR)


def _snap_ceil(quotient: Decimal) -> int:
    return _snap(quotient, ROUND_CEILING)


# --- Calculation methods ---

def calculate_area_volume(params: dict) -> float:
    """
    Area/volume calculation.

    Multiplies only the fields that were filled in; blanks are ignored, not
    treated as zero. No fields filled in returns 0.
    """
    values = _present_values(params, AREA_VOLUME_FIELDS)
    if not values:
        return 0
    return math.prod(values)


def _pitch_count(params: dict) -> int:
    """
    count = floor((range - end1 - end2) / pitch) + 1, minimum 1.
    Assumes pitch_length > 0.
    """
    effective = (
        _to_decimal(_number_or_zero(params, "range_length"))
        - _to_decimal(_number_or_zero(params, "end_length1"))
        - _to_decimal(_number_or_zero(params, "end_length2"))
    )
    if effective <= 0:
        return 1
    pitch_length = _to_decimal(params["pitch_length"])
    return max(1, _snap_floor(effective / pitch_length) + 1)


def calculate_pitch(params: dict) -> float:
    """
    Pitch calculation.

    count  = floor((range_length - end_length1 - end_length2) / pitch_length) + 1
    result = count x length x weight   (length / weight only when filled in)

    Raises CalculationError if pitch_length is missing or <= 0.
    """
    pitch_length = _number_or_zero(params, "pitch_length")
    if pitch_length <= 0:
        raise CalculationError(PITCH_LENGTH_ERROR)

    result = _pitch_count(params)
    for value in _present_values(params, PITCH_OPTIONAL_FIELDS):
        result = result * value
    return result


def apply_adjustment_factor(value: float, factor: float) -> float:
    """Multiply by the adjustment factor. Zero and negative factors pass through."""
    return value * factor


def apply_rounding(value: float, unit: float) -> float:
    """
    Round UP to the next multiple of unit. Exact multiples stay as they are.

    The multiple is built in Decimal, so 1001 steps of 0.01 come back as
    10.01, not 10.010000000000002.
    Raises CalculationError if unit <= 0.
    """
    if not is_valid_number(unit) or unit <= 0:
        raise CalculationError(ROUNDING_UNIT_ERROR)

    unit_decimal = _to_decimal(unit)
    steps = _snap_ceil(_to_decimal(value) / unit_decimal)
    return float(steps * unit_decimal)


# --- Formulas ---

def generate_area_volume_formula(params: dict) -> str:
    """'10 x 5 = 50' for the filled-in fields, '0' when none are filled in."""
    values = _present_values(params, AREA_VOLUME_FIELDS)
    if not values:
        return "0"
    parts = " x ".join(format_number(v) for v in values)
    return f"{parts} = {format_number(calculate_area_volume(params))}"


def generate_pitch_formula(params: dict) -> str:
    """
    'floor((10 - 1 - 1) / 1) + 1 = 9 x 2 x 3 = 54'

    Display only — never raises. An invalid pitch length renders the count
    as 1 and the result as 0.
    """
    def operand(field):
        value = params.get(field)
        return format_number(value) if is_valid_number(value) else "0"

    pitch_length = _number_or_zero(params, "pitch_length")
    count = _pitch_count(params) if pitch_length > 0 else 1

    formula = (
        f"floor(({operand('range_length')} - {operand('end_length1')} - "
        f"{operand('end_length2')}) / {operand('pitch_length')}) + 1 = {count}"
    )
    for value in _present_values(params, PITCH_OPTIONAL_FIELDS):
        formula += f" x {format_number(value)}"

    try:
        formula += f" = {format_number(calculate_pitch(params))}"
    except CalculationError:
        formula += " = 0"
    return formula


def _standard_raw_value(calc_input: dict) -> float:
    quantity = calc_input.get("quantity")
    return quantity if quantity is not None else 0


# Method -> (raw value, formula)
_METHODS = {
    CalculationMethod.STANDARD: (
        _standard_raw_value,
        lambda calc_input: format_number(_standard_raw_value(calc_input)),
    ),
    CalculationMethod.AREA_VOLUME: (
        lambda calc_input: calculate_area_volume(calc_input.get("params") or {}),
        lambda calc_input: generate_area_volume_formula(calc_input.get("params") or {}),
    ),
    CalculationMethod.PITCH: (
        lambda calc_input: calculate_pitch(calc_input.get("params") or {}),
        lambda calc_input: generate_pitch_formula(calc_input.get("params") or {}),
    ),
}


def _resolve_method(method) -> Optional[CalculationMethod]:
    try:
        return CalculationMethod(method)
    except ValueError:
        return None


def calculate(calc_input: dict) -> dict:
    """
    Run the full pipeline for one line item.

    calc_input keys: method, params, quantity (STANDARD only),
    adjustment_factor, rounding_unit.

    Returns a CalculationResult dict:
        {raw_value, adjusted_value, final_value, formula}
    """
    method = _resolve_method(calc_input.get("method"))
    if method is None:
        raw_value, formula = 0, "0"
    else:
        raw_fn, formula_fn = _METHODS[method]
        raw_value = raw_fn(calc_input)
        formula = formula_fn(calc_input)

    factor = calc_input.get("adjustment_factor", DEFAULT_ADJUSTMENT_FACTOR)
    unit = calc_input.get("rounding_unit", DEFAULT_ROUNDING_UNIT)

    adjusted_value = apply_adjustment_factor(raw_value, factor)
    final_value = apply_rounding(adjusted_value, unit)

    return {
        "raw_value": raw_value,
        "adjusted_value": adjusted_value,
        "final_value": final_value,
        "formula": formula,
    }


# ============================================================
# Input validation. Never raises, returns ValidationResult dicts
# ============================================================

def _result(errors: list, warnings: list) -> dict:
    return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def _parse_required_number(value, label: str):
    """
    Shared required + numeric check for the single-value validators.
    Returns (number, errors).
    """
    if value is None or value == "":
        return None, [f"{label} is required"]
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None, [f"{label} must be numeric"]
    if not is_valid_number(value):
        return None, [f"{label} must be numeric"]
    return value, []


def validate_standard_quantity(value) -> dict:
    """Required and numeric. Negative quantities only warn — the UI asks to confirm."""
    number, errors = _parse_required_number(value, "quantity")
    if errors:
        return _result(errors, [])
    warnings = []
    if number < 0:
        warnings.append("negative quantity entered, continue?")
    return _result([], warnings)


def validate_adjustment_factor(value) -> dict:
    """Required and numeric. A factor of 0 or below only warns."""
    number, errors = _parse_required_number(value, "adjustment factor")
    if errors:
        return _result(errors, [])
    warnings = []
    if number <= 0:
        warnings.append("adjustment factor is 0 or less, continue?")
    return _result([], warnings)


def validate_rounding_unit(value) -> dict:
    """Required, numeric and strictly positive — rounding to a unit <= 0 is impossible."""
    number, errors = _parse_required_number(value, "rounding unit")
    if errors:
        return _result(errors, [])
    if number <= 0:
        return _result(["rounding unit must be positive"], [])
    return _result([], [])


def validate_area_volume_params(params: dict) -> dict:
    """At least one of width / depth / height / weight must be filled in (0 counts)."""
    if not _present_values(params, AREA_VOLUME_FIELDS):
        return _result(["enter at least one value"], [])
    return _result([], [])


def validate_pitch_params(params: dict) -> dict:
    """
    One error per missing required field, so the UI can flag all of them at
    once. A filled-in pitch length <= 0 adds its own error. length and weight
    are optional and never produce errors.
    """
    errors = []
    for field in PITCH_REQUIRED_FIELDS:
        if not is_valid_number(params.get(field)):
            errors.append(f"{PITCH_FIELD_LABELS[field]} is required")

    pitch_length = params.get("pitch_length")
    if is_valid_number(pitch_length) and pitch_length <= 0:
        errors.append(PITCH_LENGTH_ERROR)

    return _result(errors, [])


def validate_calculation_input(calc_input: dict) -> dict:
    """
    Everything that has to pass before calculate() is safe to call:
    the method-specific inputs, the adjustment factor and the rounding unit.
    Errors and warnings from each check are concatenated.
    """
    errors, warnings = [], []
    method = _resolve_method(calc_input.get("method"))
    params = calc_input.get("params") or {}

    checks = []
    if method == CalculationMethod.STANDARD:
        checks.append(validate_standard_quantity(calc_input.get("quantity")))
    elif method == CalculationMethod.AREA_VOLUME:
        checks.append(validate_area_volume_params(params))
    elif method == CalculationMethod.PITCH:
        checks.append(validate_pitch_params(params))
    else:
        errors.append(f"unknown calculation method: {calc_input.get('method')}")

    checks.append(validate_adjustment_factor(calc_input.get("adjustment_factor")))
    checks.append(validate_rounding_unit(calc_input.get("rounding_unit")))

    for check in checks:
        errors.extend(check["errors"])
        warnings.extend(check["warnings"])
    return _result(errors, warnings)
