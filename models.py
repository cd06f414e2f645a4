"""
PediCalc: Data Dictionary
=========================
Defines the state space for the dose calculator:
Inputs (raw form values), Normalized patient, Reference data (medications)
and Outputs (validation + calculation results).

NO CALCULATION LOGIC lives here. Validation and dosing live in
validation.py / safety.py / core_dosage.py.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from constants import VERSION

class InputValidationError(ValueError):
    """Raised internally when a raw input cannot be turned into a number."""
    pass

class ConfigurationError(ValueError):
    """Raised when reference/policy data (e.g. an absolute max) is unusable."""
    pass

class ReferenceDataError(RuntimeError):
    """Raised when the hosted medication table cannot be read."""
    pass

# --- 1. ENUMS (Standardizing the Inputs) ---

class AgeUnit(str, Enum):
    YEARS = "years"
    MONTHS = "months"
    DAYS = "days"

class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"

class HeightUnit(str, Enum):
    CM = "cm"
    INCHES = "inches"

class TemperatureUnit(str, Enum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"

class SafetyLevel(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGER = "danger"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @staticmethod
    def worst(*levels: "SafetyLevel") -> "SafetyLevel":
        """Most severe of the given levels (danger > caution > safe)."""
        result = SafetyLevel.SAFE
        for level in levels:
            level = SafetyLevel(level)
            if level.severity > result.severity:
                result = level
        return result

_SEVERITY = {SafetyLevel.SAFE: 0, SafetyLevel.CAUTION: 1, SafetyLevel.DANGER: 2}

# --- 2. INPUT LAYER (What the Clinician Types) ---

@dataclass
class PatientInput:
    """
    Raw, unvalidated form values. Strings on purpose:
    parsing happens once, in the Validation Engine.
    """
    age: str
    age_unit: AgeUnit
    weight: str
    weight_unit: WeightUnit

    def __post_init__(self):
        # Accept "years"/"kg" from JSON or forms
        self.age_unit = AgeUnit(self.age_unit)
        self.weight_unit = WeightUnit(self.weight_unit)

@dataclass(frozen=True)
class NormalizedPatient:
    """Canonical numeric patient. Never mutated after creation."""
    age_months: float
    weight_kg: float

# --- 3. REFERENCE DATA (Medication Table) ---

@dataclass
class MedicationDosage:
    min_dose: Optional[float] = None   # per kg when unit is mg/kg
    max_dose: Optional[float] = None   # equal to min_dose for a single-value dose
    unit: str = "mg/kg"                # "mg/kg" or a fixed "mg"
    frequency: str = ""
    route: str = ""
    notes: str = ""
    original: str = ""

    @property
    def is_weight_based(self) -> bool:
        return self.unit.lower().endswith("/kg")

    @property
    def has_dose(self) -> bool:
        return bool(self.min_dose) or bool(self.max_dose)

@dataclass
class MaxDose:
    value: Optional[float] = None  # mg
    unit: Optional[str] = None
    original: str = ""

@dataclass
class MedicationProfile:
    """
    One row of the medication reference table, already structured.
    Read-only for the engine.
    """
    name: str
    dosage: MedicationDosage
    max_dose: MaxDose = field(default_factory=MaxDose)
    system: str = "General"
    drug_class: str = "Unknown"
    category: str = "General"
    indication: str = "Not specified"
    dosage_forms: List[str] = field(default_factory=list)
    routes: List[str] = field(default_factory=list)
    # e.g. "160 mg/5 mL" - drives administration volume for liquids
    concentrations: List[str] = field(default_factory=list)
    frequency: str = "As directed"
    contraindications: str = "None specified"
    side_effects: str = "Monitor for adverse effects"
    special_notes: str = ""
    id: int = 0

# --- 4. OUTPUT LAYER (Validation & Calculation Results) ---

@dataclass
class ValidationResult:
    """Standardized response format for API/UI."""
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)     # Fatal
    warnings: List[str] = field(default_factory=list)   # Advisory
    safety_level: SafetyLevel = SafetyLevel.SAFE
    normalized_value: Optional[float] = None

    def fail(self, message: str) -> "ValidationResult":
        """Record a fatal error. Returns self so validators can `return result.fail(...)`."""
        self.errors.append(message)
        self.is_valid = False
        self.safety_level = SafetyLevel.DANGER
        return self

    def warn(self, message: str, level: SafetyLevel = SafetyLevel.CAUTION) -> None:
        self.warnings.append(message)
        self.safety_level = SafetyLevel.worst(self.safety_level, level)

@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "dose_calculation"
    inputs_hash: int = 0
    model_version: str = VERSION

@dataclass(frozen=True)
class DoseRange:
    min_dose: float = 0.0
    max_dose: float = 0.0
    recommended_dose: float = 0.0
    safety_level: SafetyLevel = SafetyLevel.DANGER

    @property
    def is_trustworthy(self) -> bool:
        # All-zero + danger means "could not calculate", NOT a zero dose
        return not (self.recommended_dose == 0.0 and self.safety_level == SafetyLevel.DANGER)

@dataclass(frozen=True)
class CalculationResult:
    """
    The final, immutable answer shown to the clinician.
    Always fully populated: failures carry is_valid=False + errors.
    """
    is_valid: bool
    recommended_dose: float        # mg
    min_dose: float                # mg
    max_dose: float                # mg
    safety_level: SafetyLevel
    is_over_max: bool = False
    volume: Optional[str] = None   # e.g. "4.7 mL"
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    is_recommended: bool = False   # Only safe + valid results

    # Context echoed back for display
    medication: str = ""
    dose_per_kg: Optional[float] = None
    weight_kg: Optional[float] = None
    concentration: str = ""
    frequency: str = ""
    audit_log: Optional[AuditLog] = None

    @staticmethod
    def failure(errors, warnings=(), medication: str = "",
                dose_per_kg: Optional[float] = None,
                safety_level: SafetyLevel = SafetyLevel.DANGER,
                audit_log: Optional[AuditLog] = None) -> "CalculationResult":
        return CalculationResult(
            is_valid=False,
            recommended_dose=0.0,
            min_dose=0.0,
            max_dose=0.0,
            safety_level=safety_level,
            warnings=tuple(warnings),
            errors=tuple(errors),
            is_recommended=False,
            medication=medication,
            dose_per_kg=dose_per_kg,
            audit_log=audit_log,
        )

# --- 5. CALCULATOR OUTPUTS (Secondary Tools) ---

@dataclass(frozen=True)
class BMIResult:
    bmi: float
    category: str
    color: str  # 'green' | 'yellow' | 'red'

@dataclass(frozen=True)
class BSAResult:
    bsa: float  # m²
    method: str

@dataclass(frozen=True)
class FluidResult:
    maintenance: int  # mL/day
    total_24h: int
    hourly: int       # mL/hr

@dataclass(frozen=True)
class EmergencyDrug:
    name: str
    indication: str
    dose: str
    route: str
    notes: str = ""
