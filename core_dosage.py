"""
PediCalc: Core Dosage Engine
============================
Translates a validated patient + a per-kg dose into an absolute dose,
a min/max band, a safety level and (for liquids) an administration volume.

Pure functions: no I/O, no shared state. Every public method returns a
fully populated result; expected failures never raise.
"""

import logging
import math
import numbers
import re
from typing import Iterable, Optional, Union

from config import AppSettings, DEFAULT_SETTINGS
from constants import DosingPolicy, DEFAULT_POLICY
from conversions import parse_number, convert_weight_to_kg
from error_handler import handle_medical_error, get_user_friendly_message
from models import (
    PatientInput,
    MedicationProfile,
    CalculationResult,
    DoseRange,
    SafetyLevel,
    AuditLog,
    InputValidationError,
    ConfigurationError,
)
from safety import SafetySupervisor
from validation import validate_patient_data

logger = logging.getLogger("pedicalc-engine")

# "160 mg/5 mL", "250mg per 5ml", "100 mg in 1 mL", "10 mg/mL" (implicit 1 mL).
# The connector must follow "mg" directly so unrelated mg and mL figures never pair up.
_CONCENTRATION = re.compile(r"(\d+(?:\.\d+)?)\s*mg\s*(?:/|\bper\b|\bin\b)\s*(\d+(?:\.\d+)?)?\s*ml\b",
                            re.IGNORECASE)

def _is_real_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)

class DosageEngine:
    """
    The Mathematical Core.
    Patient (validated) x Medication (reference data) -> CalculationResult.
    """

    @staticmethod
    def _audit(patient: PatientInput, medication_name: str, dose_per_kg) -> AuditLog:
        key = (patient.age, str(patient.age_unit), patient.weight, str(patient.weight_unit),
               medication_name, dose_per_kg)
        return AuditLog(inputs_hash=hash(key))

    @staticmethod
    def calculate_safe_dosage(patient: PatientInput,
                              dose_per_kg: Union[int, float],
                              max_dose_value: Optional[float] = None,
                              medication_name: str = "",
                              policy: DosingPolicy = DEFAULT_POLICY) -> CalculationResult:
        """
        SAFE FACTORY: single weight-based dose.
        Rejected -> is_valid=False with errors. Result -> safety level set,
        is_recommended only when everything is 'safe'.
        """
        try:
            audit = DosageEngine._audit(patient, medication_name, dose_per_kg)

            # 1. Preconditions (no arithmetic on bad reference data)
            if not _is_real_number(dose_per_kg) or not math.isfinite(dose_per_kg) or dose_per_kg <= 0:
                return CalculationResult.failure(
                    [f"Invalid dose per kg for {medication_name or 'medication'}: {dose_per_kg!r}. "
                     f"Dose must be a positive number."],
                    medication=medication_name, audit_log=audit)

            validation = validate_patient_data(patient.age, patient.age_unit,
                                               patient.weight, patient.weight_unit)
            if not validation.is_valid:
                return CalculationResult.failure(
                    validation.errors, validation.warnings,
                    medication=medication_name, dose_per_kg=dose_per_kg,
                    safety_level=validation.safety_level, audit_log=audit)

            # 2. Arithmetic
            weight_kg = convert_weight_to_kg(parse_number(patient.weight, "weight").value,
                                             patient.weight_unit)
            calculated_dose = dose_per_kg * weight_kg

            # 3. Safety checks (sanity ceiling, mg/kg bands, medication max)
            max_value = SafetySupervisor.usable_max(max_dose_value, medication_name)
            dose_check = SafetySupervisor.check_dose(calculated_dose, weight_kg,
                                                     medication_name, max_value, policy)
            warnings = tuple(validation.warnings) + tuple(dose_check.warnings)

            if not dose_check.is_valid:
                return CalculationResult.failure(
                    dose_check.errors, warnings, medication=medication_name,
                    dose_per_kg=dose_per_kg, audit_log=audit)

            safety_level = SafetyLevel.worst(validation.safety_level, dose_check.safety_level)
            is_over_max = SafetySupervisor.is_over_max(calculated_dose, max_value)

            return CalculationResult(
                is_valid=True,
                recommended_dose=calculated_dose,
                min_dose=calculated_dose,
                max_dose=calculated_dose,
                safety_level=safety_level,
                is_over_max=is_over_max,
                warnings=warnings,
                errors=(),
                is_recommended=safety_level == SafetyLevel.SAFE,
                medication=medication_name,
                dose_per_kg=dose_per_kg,
                weight_kg=weight_kg,
                audit_log=audit,
            )

        except Exception as e:
            classified = handle_medical_error(e, patient, medication_name)
            return CalculationResult.failure(
                [f"System Error: {classified.message}. {get_user_friendly_message(classified)}"],
                medication=medication_name)

    @staticmethod
    def calculate_dose_range(weight_kg: float,
                             min_dose_per_kg: float,
                             max_dose_per_kg: float,
                             absolute_max: Optional[float] = None,
                             policy: DosingPolicy = DEFAULT_POLICY) -> DoseRange:
        """
        Dose band for a medication with a min/max mg/kg range.
        The recommended dose is the midpoint of the band.
        All-zero + DANGER means the band could not be trusted.
        """
        try:
            for name, value in (("weight_kg", weight_kg), ("min_dose_per_kg", min_dose_per_kg),
                                ("max_dose_per_kg", max_dose_per_kg)):
                if not _is_real_number(value) or not math.isfinite(value):
                    raise InputValidationError(f"{name} must be a finite number, got {value!r}")
            if weight_kg <= 0:
                raise InputValidationError("Weight must be greater than zero")
            if min_dose_per_kg < 0 or max_dose_per_kg < 0:
                raise ConfigurationError("Dose per kg cannot be negative")
            if min_dose_per_kg > max_dose_per_kg:
                raise ConfigurationError(f"Minimum dose per kg ({min_dose_per_kg}) exceeds "
                                 f"maximum ({max_dose_per_kg})")

            ceiling = SafetySupervisor.usable_max(absolute_max)

            min_dose = min_dose_per_kg * weight_kg
            max_dose = max_dose_per_kg * weight_kg
            recommended = (min_dose + max_dose) / 2

            return DoseRange(
                min_dose=round(min_dose, 2),
                max_dose=round(max_dose, 2),
                recommended_dose=round(recommended, 2),
                safety_level=SafetySupervisor.classify_range(recommended, ceiling, policy),
            )

        except (InputValidationError, ConfigurationError) as e:
            logger.warning(f"Dose range calculation rejected: {e}")
            return DoseRange()
        except Exception as e:
            logger.error(f"Dose range calculation failed: {e}", exc_info=True)
            return DoseRange()

    @staticmethod
    def derive_volume(dose_mg: float, concentrations: Iterable[str],
                      decimal_places: int = 1) -> Optional[str]:
        """
        Liquid volume from the first "X mg per Y mL" ratio found.
        No match is not an error: the volume is simply omitted.
        """
        if not _is_real_number(dose_mg) or not math.isfinite(dose_mg) or dose_mg <= 0:
            return None
        for text in concentrations or []:
            for match in _CONCENTRATION.finditer(text or ""):
                mg_per = float(match.group(1))
                ml_per = float(match.group(2)) if match.group(2) else 1.0
                if mg_per <= 0 or ml_per <= 0:
                    continue
                volume = (dose_mg / mg_per) * ml_per
                if math.isfinite(volume) and volume > 0:
                    return f"{volume:.{decimal_places}f} mL"
        return None

    @staticmethod
    def calculate_for_medication(patient: PatientInput,
                                 medication: MedicationProfile,
                                 settings: AppSettings = DEFAULT_SETTINGS,
                                 policy: DosingPolicy = DEFAULT_POLICY) -> CalculationResult:
        """
        Full pipeline behind the Results screen:
        safe single dose (lower bound of the band) + min/max band + volume.
        """
        name = getattr(medication, "name", "") or "Unknown medication"
        try:
            dosage = medication.dosage
            if dosage is None or not dosage.has_dose:
                return CalculationResult.failure(
                    [f"No dosage information available for {name}. Please select a different "
                     f"medication or consult medical references."], medication=name)

            if not dosage.is_weight_based:
                return CalculationResult.failure(
                    [f"{name} is dosed as a fixed amount ({dosage.original or dosage.unit}); "
                     f"a weight-based calculation does not apply."], medication=name)

            dose_per_kg = dosage.min_dose or dosage.max_dose
            max_value = medication.max_dose.value if medication.max_dose else None

            single = DosageEngine.calculate_safe_dosage(patient, dose_per_kg, max_value, name, policy)
            if not single.is_valid:
                return single

            band = DosageEngine.calculate_dose_range(
                single.weight_kg,
                dosage.min_dose or dose_per_kg,
                dosage.max_dose or dose_per_kg,
                max_value, policy)

            warnings = list(single.warnings)
            safety_level = single.safety_level
            if band.is_trustworthy and band.safety_level != SafetyLevel.SAFE:
                warnings.append(f"Dose range midpoint ({band.recommended_dose:g}mg) is "
                                f"{'above' if band.safety_level == SafetyLevel.DANGER else 'near'} "
                                f"the maximum dose for {name}")
                safety_level = SafetyLevel.worst(safety_level, band.safety_level)

            min_dose, max_dose = (band.min_dose, band.max_dose) if band.is_trustworthy \
                else (single.min_dose, single.max_dose)

            places = settings.decimal_places
            concentrations = list(medication.concentrations) + list(medication.dosage_forms)
            concentration = concentrations[0] if concentrations else "Standard dose"

            return CalculationResult(
                is_valid=True,
                recommended_dose=round(single.recommended_dose, places),
                min_dose=round(min_dose, places),
                max_dose=round(max_dose, places),
                safety_level=safety_level,
                is_over_max=single.is_over_max,
                volume=DosageEngine.derive_volume(single.recommended_dose, concentrations, places),
                warnings=tuple(warnings),
                errors=(),
                is_recommended=safety_level == SafetyLevel.SAFE,
                medication=name,
                dose_per_kg=dose_per_kg,
                weight_kg=single.weight_kg,
                concentration=concentration,
                frequency=medication.frequency or dosage.frequency,
                audit_log=single.audit_log,
            )

        except Exception as e:
            classified = handle_medical_error(e, patient, name)
            return CalculationResult.failure(
                [f"System Error: {classified.message}. {get_user_friendly_message(classified)}"],
                medication=name)

# Functional aliases for callers that don't want the class
calculate_safe_dosage = DosageEngine.calculate_safe_dosage
calculate_dose_range = DosageEngine.calculate_dose_range
derive_volume = DosageEngine.derive_volume
calculate_for_medication = DosageEngine.calculate_for_medication
