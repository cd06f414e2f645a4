# calculators.py
"""
Secondary bedside calculators: BMI, BSA, maintenance fluids, emergency drugs.
Same conventions as the dose engine - raw strings in, None when inputs are unusable.
"""

import math
from typing import List, Optional, Union

from constants import HEIGHT_LIMITS
from conversions import parse_number, convert_to_kg, convert_height_to_cm
from models import BMIResult, BSAResult, FluidResult, EmergencyDrug, WeightUnit, HeightUnit

def _positive(raw, name: str) -> Optional[float]:
    parsed = parse_number(raw, name)
    if not parsed.ok or parsed.value <= 0:
        return None
    return parsed.value

def _height_cm(raw, unit) -> Optional[float]:
    h = _positive(raw, "height")
    if h is None:
        return None
    height_cm = convert_height_to_cm(h, unit)
    if not (HEIGHT_LIMITS.ABSOLUTE_MIN <= height_cm <= HEIGHT_LIMITS.ABSOLUTE_MAX):
        return None
    return height_cm

def calculate_pediatric_bmi(weight: str, weight_unit: Union[WeightUnit, str],
                            height: str, height_unit: Union[HeightUnit, str] = HeightUnit.CM) -> Optional[BMIResult]:
    w = _positive(weight, "weight")
    height_cm = _height_cm(height, height_unit)
    if w is None or height_cm is None:
        return None

    weight_kg = convert_to_kg(w, weight_unit)
    height_m = height_cm / 100
    bmi = weight_kg / (height_m * height_m)

    # Simplified bands; no age/sex percentile tables here
    if bmi < 5:
        category, color = "Underweight", "yellow"
    elif bmi < 85:
        category, color = "Normal weight", "green"
    elif bmi < 95:
        category, color = "Overweight", "yellow"
    else:
        category, color = "Obese", "red"

    return BMIResult(bmi=round(bmi, 1), category=category, color=color)

def calculate_bsa(weight: str, weight_unit: Union[WeightUnit, str],
                  height: str, height_unit: Union[HeightUnit, str] = HeightUnit.CM) -> Optional[BSAResult]:
    """Body Surface Area (m²), Mosteller: sqrt(height_cm * weight_kg / 3600)"""
    w = _positive(weight, "weight")
    height_cm = _height_cm(height, height_unit)
    if w is None or height_cm is None:
        return None

    weight_kg = convert_to_kg(w, weight_unit)
    bsa = math.sqrt((height_cm * weight_kg) / 3600)
    return BSAResult(bsa=round(bsa, 2), method="Mosteller formula")

def calculate_fluid_requirements(weight: str, weight_unit: Union[WeightUnit, str]) -> Optional[FluidResult]:
    """
    Holliday-Segar maintenance (mL/day):
    100 mL/kg for the first 10 kg, 50 mL/kg for the next 10, 20 mL/kg after.
    """
    w = _positive(weight, "weight")
    if w is None:
        return None

    weight_kg = convert_to_kg(w, weight_unit)
    if weight_kg <= 10:
        maintenance = weight_kg * 100
    elif weight_kg <= 20:
        maintenance = 1000 + (weight_kg - 10) * 50
    else:
        maintenance = 1500 + (weight_kg - 20) * 20

    return FluidResult(
        maintenance=round(maintenance),
        total_24h=round(maintenance),
        hourly=round(maintenance / 24),
    )

def get_emergency_drugs(weight_kg: float) -> List[EmergencyDrug]:
    """Resuscitation doses for a weight in kg (PALS quick-reference values)."""
    atropine = max(0.1, min(weight_kg * 0.02, 0.5))
    return [
        EmergencyDrug(
            name="Epinephrine", indication="Cardiac arrest",
            dose=f"{weight_kg * 0.01:.2f} mg ({weight_kg * 0.1:.1f} mL of 1:10,000)",
            route="IV/IO", notes="Repeat every 3-5 minutes"),
        EmergencyDrug(
            name="Adenosine", indication="SVT",
            dose=f"{weight_kg * 0.1:.1f} mg (first dose), {weight_kg * 0.2:.1f} mg (second dose)",
            route="IV/IO rapid push", notes="Follow with rapid saline flush"),
        EmergencyDrug(
            name="Atropine", indication="Bradycardia",
            dose=f"{atropine:.2f} mg",
            route="IV/IO", notes="Minimum 0.1 mg, maximum 0.5 mg"),
        EmergencyDrug(
            name="Amiodarone", indication="VT/VF",
            dose=f"{weight_kg * 5:.1f} mg",
            route="IV/IO", notes="May repeat once"),
    ]
