from pydantic import BaseModel
from typing import Optional, List, Dict
from .calculators.calculation_engine import (
    CalculationMethod,
    DEFAULT_ADJUSTMENT_FACTOR,
    DEFAULT_ROUNDING_UNIT,
    DEFAULT_CALCULATION_METHOD,
)


class CalculationParams(BaseModel):
    # Area/volume
    width: Optional[float] = None
    depth: Optional[float] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    # Pitch (weight is shared with area/volume)
    range_length: Optional[float] = None
    end_length1: Optional[float] = None
    end_length2: Optional[float] = None
    pitch_length: Optional[float] = None
    length: Optional[float] = None


class CalculationRequest(BaseModel):
    method: CalculationMethod = DEFAULT_CALCULATION_METHOD
    params: CalculationParams = CalculationParams()
    quantity: Optional[float] = None
    adjustment_factor: Optional[float] = DEFAULT_ADJUSTMENT_FACTOR
    rounding_unit: Optional[float] = DEFAULT_ROUNDING_UNIT


class CalculationResponse(BaseModel):
    raw_value: float
    adjusted_value: float
    final_value: float
    formula: str
    warnings: List[str] = []


class QuantityItemFields(BaseModel):
    major_category: Optional[str] = None
    middle_category: Optional[str] = None
    minor_category: Optional[str] = None
    custom_category: Optional[str] = None
    work_type: Optional[str] = None
    name: Optional[str] = None
    specification: Optional[str] = None
    unit: Optional[str] = None
    calculation_method: Optional[str] = None
    remarks: Optional[str] = None
    adjustment_factor: Optional[float] = None
    rounding_unit: Optional[float] = None
    quantity: Optional[float] = None


class FieldValidationResponse(BaseModel):
    is_valid: bool
    field_errors: Dict[str, str] = {}


class TextWidthRequest(BaseModel):
    value: str
    field_name: str


class TextWidthResponse(BaseModel):
    width: int
    remaining: int
    is_valid: bool
    error: Optional[str] = None
