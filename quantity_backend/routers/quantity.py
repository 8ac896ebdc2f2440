"""
Quantity API — calculation and field-rule checks for quantity table line items.

POST /api/quantity/calculate          — Validate inputs, run the calculation engine
POST /api/quantity/items/validate     — Field-rule errors for one item (inline display)
POST /api/quantity/items/verify       — Save-time check, 400 problem details on violation
POST /api/quantity/text-width         — Display width / remaining width for a text cell
GET  /api/quantity/field-constraints  — Limits the UI needs to render counters and hints
"""

import logging

from fastapi import APIRouter, HTTPException

from .. import schemas
from ..calculators.calculation_engine import (
    CalculationError,
    calculate,
    validate_calculation_input,
)
from ..field_validator import (
    DIMENSION_RANGE,
    FIELD_CONSTRAINTS,
    NUMERIC_FIELD_DEFAULTS,
    NUMERIC_FIELD_RANGES,
    calculate_string_width,
    create_validation_error_response,
    get_remaining_width,
    validate_quantity_item_fields,
    validate_text_length,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quantity", tags=["quantity"])


@router.post("/calculate", response_model=schemas.CalculationResponse)
def calculate_quantity(request: schemas.CalculationRequest):
    """
    Run the full calculation for one line item.

    Inputs are validated first so the engine's raising paths (pitch length or
    rounding unit <= 0) are never reached. Warnings (negative quantity,
    factor <= 0) do not block; they are returned for the UI to confirm.
    """
    calc_input = request.model_dump()
    validation = validate_calculation_input(calc_input)
    if not validation["is_valid"]:
        logger.info("Rejected %s calculation: %s", request.method.value, validation["errors"])
        raise HTTPException(
            status_code=422,
            detail={"errors": validation["errors"], "warnings": validation["warnings"]},
        )

    try:
        result = calculate(calc_input)
    except CalculationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {**result, "warnings": validation["warnings"]}


@router.post("/items/validate", response_model=schemas.FieldValidationResponse)
def validate_item(item: schemas.QuantityItemFields):
    """Field-rule errors keyed by field. Fields that pass are left out."""
    field_errors = validate_quantity_item_fields(item.model_dump())
    return {"is_valid": not field_errors, "field_errors": field_errors}


@router.post("/items/verify")
def verify_item(item: schemas.QuantityItemFields):
    """Save-time re-check of every field rule. Rejects the save with problem details."""
    item_data = item.model_dump()
    field_errors = validate_quantity_item_fields(item_data)
    if field_errors:
        logger.info("Item failed field-rule check: %s", sorted(field_errors))
        raise HTTPException(
            status_code=400,
            detail=create_validation_error_response(field_errors, item_data),
        )
    return {"is_valid": True}


@router.post("/text-width", response_model=schemas.TextWidthResponse)
def text_width(request: schemas.TextWidthRequest):
    if request.field_name not in FIELD_CONSTRAINTS:
        raise HTTPException(status_code=404, detail=f"Unknown text field: {request.field_name}")
    result = validate_text_length(request.value, request.field_name)
    return {
        "width": calculate_string_width(request.value),
        "remaining": get_remaining_width(request.value, request.field_name),
        "is_valid": result["is_valid"],
        "error": result.get("error"),
    }


@router.get("/field-constraints")
def field_constraints():
    return {
        "text": FIELD_CONSTRAINTS,
        "numeric": NUMERIC_FIELD_RANGES,
        "dimension": DIMENSION_RANGE,
        "defaults": NUMERIC_FIELD_DEFAULTS,
    }
