"""
PediCalc: Validation Engine
===========================
Turns raw form strings into a ValidationResult with pediatric-specific
range checks. Age is always validated before weight because the weight
sanity bands depend on the age group.
"""

import logging
from typing import Optional, Tuple, Union

from constants import AGE_LIMITS, WEIGHT_LIMITS
from conversions import parse_number, convert_age_to_months, convert_weight_to_kg
from models import (
    AgeUnit,
    WeightUnit,
    PatientInput,
    NormalizedPatient,
    ValidationResult,
    SafetyLevel,
)

logger = logging.getLogger("pedicalc-engine")

def validate_age(age: str, age_unit: Union[AgeUnit, str]) -> ValidationResult:
    """
    Validate age input with pediatric-specific ranges.
    normalized_value is the age in months.
    """
    result = ValidationResult()

    parsed = parse_number(age, "age")
    if not parsed.ok:
        return result.fail(parsed.error)

    try:
        unit = AgeUnit(age_unit)
    except ValueError:
        return result.fail(f"Unsupported age unit: {age_unit}")

    age_num = parsed.value
    if age_num <= 0:
        return result.fail("Age must be greater than zero")

    if parsed.decimals > AGE_LIMITS.MAX_DECIMALS:
        result.warn("Age should not have more than 2 decimal places for accuracy")

    # 1. Unit-specific hard caps (on the number as typed)
    if unit == AgeUnit.YEARS and age_num > AGE_LIMITS.MAX_YEARS:
        return result.fail("Maximum age for pediatric calculations is 18 years")
    if unit == AgeUnit.DAYS and age_num > AGE_LIMITS.MAX_DAYS:
        return result.fail("Age in days exceeds pediatric range")
    if unit == AgeUnit.DAYS and age_num < AGE_LIMITS.MIN_DAYS:
        return result.fail("Age must be at least 1 day")

    # 2. Canonical range check
    age_in_months = convert_age_to_months(age_num, unit)
    result.normalized_value = age_in_months

    if age_in_months > AGE_LIMITS.ABSOLUTE_MAX:
        return result.fail("Patient age exceeds pediatric range (maximum 18 years)")

    # 3. Age-group advisories (never fatal)
    if age_in_months <= AGE_LIMITS.MAX_NEONATE:
        result.warn("Neonate detected: Use extreme caution with dosing. "
                    "Consider neonatal-specific guidelines.")
    elif age_in_months <= AGE_LIMITS.MAX_INFANT:
        result.warn("Infant detected: Verify weight-based dosing is appropriate.")

    result.is_valid = True
    return result

def validate_weight(weight: str, weight_unit: Union[WeightUnit, str],
                    age_in_months: Optional[float] = None) -> ValidationResult:
    """
    Validate weight input. When age_in_months is given, the weight is
    cross-checked against the typical band for that age group (advisory only).
    normalized_value is the weight in kg.
    """
    result = ValidationResult()

    parsed = parse_number(weight, "weight")
    if not parsed.ok:
        return result.fail(parsed.error)

    try:
        unit = WeightUnit(weight_unit)
    except ValueError:
        return result.fail(f"Unsupported weight unit: {weight_unit}")

    weight_num = parsed.value
    if weight_num <= 0:
        return result.fail("Weight must be greater than zero")

    weight_in_kg = convert_weight_to_kg(weight_num, unit)
    result.normalized_value = weight_in_kg

    # Absolute limits
    if weight_in_kg < WEIGHT_LIMITS.ABSOLUTE_MIN:
        return result.fail(f"Weight too low for safe calculations "
                           f"(minimum {WEIGHT_LIMITS.ABSOLUTE_MIN}kg)")
    if weight_in_kg > WEIGHT_LIMITS.ABSOLUTE_MAX:
        return result.fail(f"Weight exceeds pediatric range "
                           f"(maximum {WEIGHT_LIMITS.ABSOLUTE_MAX}kg)")

    # Age-based plausibility (unusual != impossible)
    if age_in_months is not None:
        if age_in_months <= AGE_LIMITS.MAX_NEONATE:
            if not (WEIGHT_LIMITS.MIN_NEONATE <= weight_in_kg <= WEIGHT_LIMITS.MAX_NEONATE):
                result.warn(f"Weight unusual for neonate (typical range: "
                            f"{WEIGHT_LIMITS.MIN_NEONATE}-{WEIGHT_LIMITS.MAX_NEONATE}kg)")
        elif age_in_months <= AGE_LIMITS.MAX_INFANT:
            if not (WEIGHT_LIMITS.MIN_INFANT <= weight_in_kg <= WEIGHT_LIMITS.MAX_INFANT):
                result.warn(f"Weight unusual for infant age (typical range: "
                            f"{WEIGHT_LIMITS.MIN_INFANT}-{WEIGHT_LIMITS.MAX_INFANT}kg)")

    if (weight_in_kg < WEIGHT_LIMITS.GRAM_PRECISION_BELOW
            and parsed.decimals > WEIGHT_LIMITS.MAX_DECIMALS_SUB_KG):
        result.warn("For weights under 1kg, consider using grams for better precision")

    if weight_in_kg < WEIGHT_LIMITS.LOW_BIRTH_WEIGHT:
        result.warn("Very low birth weight detected: Consider specialized neonatal guidelines")

    result.is_valid = True
    return result

def validate_patient_data(age: str, age_unit: Union[AgeUnit, str],
                          weight: str, weight_unit: Union[WeightUnit, str]) -> ValidationResult:
    """
    SAFE ENTRY POINT for the UI/API.
    Age first; weight is only checked once age is valid, with age context.
    normalized_value is the weight in kg.
    """
    result = ValidationResult()
    try:
        age_validation = validate_age(age, age_unit)
        result.errors.extend(age_validation.errors)
        result.warnings.extend(age_validation.warnings)

        if not age_validation.is_valid:
            result.safety_level = age_validation.safety_level
            return result

        weight_validation = validate_weight(weight, weight_unit, age_validation.normalized_value)
        result.errors.extend(weight_validation.errors)
        result.warnings.extend(weight_validation.warnings)
        result.safety_level = SafetyLevel.worst(age_validation.safety_level,
                                                weight_validation.safety_level)

        if not weight_validation.is_valid:
            return result

        result.normalized_value = weight_validation.normalized_value
        result.is_valid = age_validation.is_valid and weight_validation.is_valid
        return result

    except Exception as e:
        logger.error(f"Patient validation failed unexpectedly: {e}", exc_info=True)
        return ValidationResult(errors=[f"System Error: {e}"], safety_level=SafetyLevel.DANGER)

def normalize_patient(patient: PatientInput) -> Tuple[ValidationResult, Optional[NormalizedPatient]]:
    """Validate a PatientInput and, when valid, return its canonical numeric form."""
    validation = validate_patient_data(patient.age, patient.age_unit,
                                       patient.weight, patient.weight_unit)
    if not validation.is_valid:
        return validation, None

    age_months = convert_age_to_months(parse_number(patient.age, "age").value, patient.age_unit)
    return validation, NormalizedPatient(age_months=age_months,
                                         weight_kg=validation.normalized_value)

def format_validation_messages(validation: ValidationResult) -> dict:
    """Join messages into display sentences for the presentation layer."""
    messages = {"safety_class": SafetyLevel(validation.safety_level).value}
    if validation.errors:
        messages["error_message"] = ". ".join(validation.errors) + "."
    if validation.warnings:
        messages["warning_message"] = ". ".join(validation.warnings) + "."
    return messages
