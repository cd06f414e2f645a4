from dataclasses import dataclass

VERSION = "1.0.0"

# NOTE: Every limit below is a policy value pending clinical review,
# not a cited guideline. Change them here, not inline.

class AGE_LIMITS:
    # All values in months
    MIN_NEONATE = 0
    MAX_NEONATE = 1       # 1 month
    MIN_INFANT = 0
    MAX_INFANT = 12       # 12 months
    MIN_TODDLER = 12
    MAX_TODDLER = 36      # 3 years
    MIN_CHILD = 36
    MAX_CHILD = 216       # 18 years
    ABSOLUTE_MAX = 216

    # Unit-specific caps (checked on the raw number, before conversion)
    MAX_YEARS = 18
    MAX_DAYS = 6570       # 18 years in days
    MIN_DAYS = 1

    MAX_DECIMALS = 2

class WEIGHT_LIMITS:
    # All values in kg
    MIN_NEONATE = 0.5     # 500g minimum viable
    MAX_NEONATE = 6.0     # Large neonate
    MIN_INFANT = 2.0
    MAX_INFANT = 15.0     # Large 1-year-old
    MIN_CHILD = 8.0
    MAX_CHILD = 100.0
    ABSOLUTE_MIN = 0.5
    ABSOLUTE_MAX = 100.0

    LOW_BIRTH_WEIGHT = 2.5  # <2.5kg = Very Low Birth Weight advisory
    GRAM_PRECISION_BELOW = 1.0
    MAX_DECIMALS_SUB_KG = 3

class HEIGHT_LIMITS:
    # cm; body-size calculators refuse anything outside
    ABSOLUTE_MIN = 30
    ABSOLUTE_MAX = 200

class DOSAGE_LIMITS:
    # mg/kg per calculated dose
    MIN_DOSE = 0.001         # 1 microgram per kg
    MAX_DOSE = 100.0         # Hard ceiling - calculation rejected
    TYPICAL_MAX = 50.0       # Above this = caution
    DANGER_THRESHOLD = 75.0  # Above this = danger
    SANITY_CEILING_MG = 10000.0  # Absolute mg; catches mcg/mg unit confusion

class UNIT_FACTORS:
    LBS_TO_KG = 0.453592
    KG_TO_LBS = 2.20462
    DAYS_PER_MONTH = 30.44   # Average
    MONTHS_PER_YEAR = 12
    INCHES_TO_CM = 2.54
    CM_TO_INCHES = 0.393701
    CM_TO_FEET = 0.0328084
    MCG_PER_MG = 1000.0
    MG_PER_G = 1000.0

@dataclass(frozen=True)
class DosingPolicy:
    """
    Thresholds used by the dose safety checks.
    Passed explicitly so a site can tighten limits without touching the engine.
    """
    max_mg_per_kg: float = DOSAGE_LIMITS.MAX_DOSE
    danger_mg_per_kg: float = DOSAGE_LIMITS.DANGER_THRESHOLD
    typical_max_mg_per_kg: float = DOSAGE_LIMITS.TYPICAL_MAX
    min_mg_per_kg: float = DOSAGE_LIMITS.MIN_DOSE
    sanity_ceiling_mg: float = DOSAGE_LIMITS.SANITY_CEILING_MG

    # Range midpoint above this fraction of the absolute max = caution
    range_caution_fraction: float = 0.8

    # Used only when reference data has no parseable mg/kg value
    fallback_dose_per_kg: float = 10.0

DEFAULT_POLICY = DosingPolicy()
