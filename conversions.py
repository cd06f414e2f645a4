"""
PediCalc: Unit Conversion & Number Parsing
==========================================
Pure helpers shared by the Validation Engine, the Dosage Engine and the
secondary calculators. Everything here is side-effect free.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from constants import UNIT_FACTORS
from models import AgeUnit, WeightUnit, HeightUnit

# Whole field must be one number: "22,7" or "12kg" is rejected, never truncated
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

@dataclass(frozen=True)
class ParsedNumber:
    """Tagged parse result: either ok + value, or an error message."""
    ok: bool
    value: Optional[float] = None
    error: Optional[str] = None
    decimals: int = 0

def count_decimals(value: float) -> int:
    """Decimal places of the shortest repr (1.50 -> 1, 12.0 -> 0, 0.0005 -> 4)."""
    exponent = Decimal(repr(value)).normalize().as_tuple().exponent
    return max(0, -exponent)

def parse_number(raw: Optional[str], field_name: str) -> ParsedNumber:
    """
    The single parse-and-validate step per form field.
    Never raises and never returns NaN.
    """
    label = field_name.capitalize()
    if raw is None or str(raw).strip() == "":
        return ParsedNumber(ok=False, error=f"{label} is required")

    text = str(raw).strip()
    match = _NUMBER.fullmatch(text)
    if not match:
        if re.fullmatch(r"[+-]?\d+,\d+", text):
            return ParsedNumber(ok=False, error=f"{label} must use a decimal point, not a comma")
        return ParsedNumber(ok=False, error=f"{label} must be a valid number")

    value = float(match.group(0))
    if not math.isfinite(value):
        return ParsedNumber(ok=False, error=f"{label} must be a valid number")

    return ParsedNumber(ok=True, value=value, decimals=count_decimals(value))

# --- Core conversions (used by validation + dosing) ---

def convert_age_to_months(age: float, unit: Union[AgeUnit, str]) -> float:
    unit = AgeUnit(unit)
    if unit == AgeUnit.YEARS:
        return age * UNIT_FACTORS.MONTHS_PER_YEAR
    if unit == AgeUnit.DAYS:
        return age / UNIT_FACTORS.DAYS_PER_MONTH
    return age

def convert_weight_to_kg(weight: float, unit: Union[WeightUnit, str]) -> float:
    if WeightUnit(unit) == WeightUnit.LBS:
        return weight * UNIT_FACTORS.LBS_TO_KG
    return weight

# Calculator screens call it by this name
convert_to_kg = convert_weight_to_kg

def convert_height_to_cm(height: float, unit: Union[HeightUnit, str]) -> float:
    if HeightUnit(unit) == HeightUnit.INCHES:
        return height * UNIT_FACTORS.INCHES_TO_CM
    return height

# --- Display conversions ---

def kg_to_lbs(kg: float) -> float:
    return kg * UNIT_FACTORS.KG_TO_LBS

def lbs_to_kg(lbs: float) -> float:
    return lbs * UNIT_FACTORS.LBS_TO_KG

def cm_to_inches(cm: float) -> float:
    return cm * UNIT_FACTORS.CM_TO_INCHES

def inches_to_cm(inches: float) -> float:
    return inches * UNIT_FACTORS.INCHES_TO_CM

def cm_to_feet_inches(cm: float) -> tuple:
    """(feet, remaining inches) for height display."""
    feet = math.floor(cm * UNIT_FACTORS.CM_TO_FEET)
    inches = round((cm * UNIT_FACTORS.CM_TO_INCHES) % 12)
    return feet, inches

def celsius_to_fahrenheit(c: float) -> float:
    return (c * 9 / 5) + 32

def fahrenheit_to_celsius(f: float) -> float:
    return (f - 32) * 5 / 9
