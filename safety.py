# safety.py
import logging
import math
from typing import Optional

from constants import DosingPolicy, DEFAULT_POLICY
from models import ValidationResult, SafetyLevel

logger = logging.getLogger("pedicalc-engine")

class SafetySupervisor:
    """
    Post-calculation safety checks used by the Dosage Engine.
    Returns a ValidationResult (errors = reject, warnings = flag but keep).
    """
    @staticmethod
    def usable_max(max_dose_value, medication_name: str = "") -> Optional[float]:
        """
        Reference data sometimes carries a broken maximum (0, negative, NaN).
        That disables the max check; it must not block the calculation.
        """
        if max_dose_value is None:
            return None
        try:
            value = float(max_dose_value)
        except (TypeError, ValueError):
            value = float("nan")
        if not math.isfinite(value) or value <= 0:
            logger.warning(f"Ignoring invalid maximum dose {max_dose_value!r} "
                           f"for '{medication_name}'; max-dose check disabled")
            return None
        return value

    @staticmethod
    def is_over_max(calculated_dose: float, max_dose_value: Optional[float]) -> bool:
        return max_dose_value is not None and calculated_dose > max_dose_value

    @staticmethod
    def check_dose(calculated_dose: float, weight_kg: float, medication_name: str,
                   max_dose_value: Optional[float] = None,
                   policy: DosingPolicy = DEFAULT_POLICY) -> ValidationResult:
        result = ValidationResult(normalized_value=calculated_dose)

        # 1. Arithmetic sanity
        if not math.isfinite(calculated_dose):
            return result.fail("Invalid dosage calculation result")
        if calculated_dose <= 0:
            return result.fail("Calculated dosage must be greater than zero")

        # 2. Absolute mg ceiling (mcg entered as mg, wrong weight unit, ...)
        if calculated_dose > policy.sanity_ceiling_mg:
            return result.fail(f"Calculated dose ({calculated_dose:.1f}mg) is unreasonable: exceeds "
                               f"absolute ceiling of {policy.sanity_ceiling_mg:.0f}mg. "
                               f"Check dose units and patient weight.")

        # 3. Per-kg bands
        dose_per_kg = calculated_dose / weight_kg

        if dose_per_kg > policy.max_mg_per_kg:
            return result.fail(f"Calculated dose exceeds maximum safe limit "
                               f"({policy.max_mg_per_kg:g} mg/kg)")

        if dose_per_kg > policy.danger_mg_per_kg:
            result.warn(f"High dose calculated ({dose_per_kg:.2f} mg/kg). Verify calculation "
                        f"and consider specialist consultation.", SafetyLevel.DANGER)
        elif dose_per_kg > policy.typical_max_mg_per_kg:
            result.warn(f"Dose above typical range ({dose_per_kg:.2f} mg/kg). "
                        f"Double-check calculation.")

        # 4. Medication-specific ceiling (independent of the per-kg bands)
        if SafetySupervisor.is_over_max(calculated_dose, max_dose_value):
            result.warn(f"Calculated dose ({calculated_dose:.1f}mg) exceeds maximum recommended "
                        f"dose for {medication_name} ({max_dose_value:g}mg)")

        if dose_per_kg < policy.min_mg_per_kg:
            result.warn("Very low dose calculated. Verify medication and calculation.")

        result.is_valid = True
        return result

    @staticmethod
    def classify_range(recommended_dose: float, absolute_max: Optional[float],
                       policy: DosingPolicy = DEFAULT_POLICY) -> SafetyLevel:
        """Midpoint of a dose band vs. the medication's absolute maximum."""
        if absolute_max is None:
            return SafetyLevel.SAFE
        if recommended_dose > absolute_max:
            return SafetyLevel.DANGER
        if recommended_dose > policy.range_caution_fraction * absolute_max:
            return SafetyLevel.CAUTION
        return SafetyLevel.SAFE

def validate_dosage(calculated_dose: float, weight_kg: float, medication_name: str,
                    max_dose_value: Optional[float] = None,
                    policy: DosingPolicy = DEFAULT_POLICY) -> ValidationResult:
    """Functional alias of SafetySupervisor.check_dose (invalid max values are ignored)."""
    max_value = SafetySupervisor.usable_max(max_dose_value, medication_name)
    return SafetySupervisor.check_dose(calculated_dose, weight_kg, medication_name,
                                       max_value, policy)
