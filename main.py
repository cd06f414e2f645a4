# main.py

import logging
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from calculators import (
    calculate_pediatric_bmi,
    calculate_bsa,
    calculate_fluid_requirements,
    get_emergency_drugs,
)
from config import load_settings
from constants import VERSION
from core_dosage import DosageEngine
from error_handler import classify_error, get_user_friendly_message
from formulary import MEDICATION_LIBRARY, Formulary
from models import (
    AgeUnit,
    WeightUnit,
    HeightUnit,
    SafetyLevel,
    PatientInput,
    CalculationResult,
    MedicationProfile,
)
from reference_data import fetch_drug_rows
from validation import validate_patient_data

# --- 1. CONFIGURATION & LOGGING ---
settings = load_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("pedicalc-api")

app = FastAPI(
    title="PediCalc API",
    version=VERSION,
    description="Weight-based pediatric dose calculator with safety classification. \n\n"
                "**WARNING**: Decision Support Tool Only. Verify every dose against a "
                "current reference before administration.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _load_formulary() -> Formulary:
    """Hosted table when configured and reachable, otherwise the built-in library."""
    rows = fetch_drug_rows(settings)
    if rows:
        logger.info(f"Loaded {len(rows)} medications from reference table")
        return Formulary.from_rows(rows)
    return MEDICATION_LIBRARY

formulary = _load_formulary()

@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    classified = classify_error(exc, f"api_{request.url.path}")
    logger.error(f"Internal Engine Failure on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={
        "detail": get_user_friendly_message(classified),
        "error_type": classified.type.value,
    })

@app.get("/")
def read_root():
    return {"status": "active", "message": "PediCalc API is running successfully!"}

@app.get("/health")
def health_check():
    """K8s/AWS Health Probe"""
    return {"status": "active", "version": VERSION, "module": "pedicalc-dosage-engine",
            "medications": len(formulary)}

# --- 2. INPUT SCHEMA (Raw form values; the engine does the range checks) ---
class PatientRequest(BaseModel):
    age: str = Field(..., max_length=32, description="Age as typed, e.g. '4' or '18.5'")
    age_unit: AgeUnit = Field(default=AgeUnit.YEARS)
    weight: str = Field(..., max_length=32, description="Weight as typed")
    weight_unit: WeightUnit = Field(default=settings.default_weight_unit)

    model_config = {
        "json_schema_extra": {
            "example": {"age": "4", "age_unit": "years", "weight": "16.5", "weight_unit": "kg"}
        }
    }

    def to_input(self) -> PatientInput:
        return PatientInput(age=self.age, age_unit=self.age_unit,
                            weight=self.weight, weight_unit=self.weight_unit)

class CalculationRequest(BaseModel):
    patient: PatientRequest
    dose_per_kg: float = Field(..., description="mg/kg")
    max_dose_value: Optional[float] = Field(None, description="Absolute max, mg")
    medication_name: str = ""

class MedicationCalculationRequest(BaseModel):
    patient: PatientRequest
    medication_name: str

class DoseRangeRequest(BaseModel):
    weight_kg: float
    min_dose_per_kg: float
    max_dose_per_kg: float
    absolute_max: Optional[float] = None

class BodySizeRequest(BaseModel):
    weight: str
    weight_unit: WeightUnit = WeightUnit.KG
    height: str
    height_unit: HeightUnit = HeightUnit.CM

class FluidRequest(BaseModel):
    weight: str
    weight_unit: WeightUnit = WeightUnit.KG

# --- 3. EXPLICIT RESPONSE SCHEMA (The Contract) ---
class ValidationResponse(BaseModel):
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    safety_level: SafetyLevel
    normalized_value: Optional[float] = None

class CalculationResponse(BaseModel):
    is_valid: bool
    recommended_dose: float
    min_dose: float
    max_dose: float
    safety_level: SafetyLevel
    is_over_max: bool
    volume: Optional[str] = None
    warnings: List[str]
    errors: List[str]
    is_recommended: bool
    medication: str
    dose_per_kg: Optional[float] = None
    weight_kg: Optional[float] = None
    concentration: str = ""
    frequency: str = ""
    generated_at: datetime = Field(default_factory=datetime.now)

class DoseRangeResponse(BaseModel):
    min_dose: float
    max_dose: float
    recommended_dose: float
    safety_level: SafetyLevel
    is_trustworthy: bool

def _calculation_response(result: CalculationResult) -> CalculationResponse:
    data = asdict(result)
    data.pop("audit_log", None)
    return CalculationResponse(**data)

def _medication_summary(med: MedicationProfile) -> dict:
    return {
        "id": med.id,
        "name": med.name,
        "category": med.category,
        "system": med.system,
        "class": med.drug_class,
        "indication": med.indication,
        "dose": med.dosage.original,
        "max_dose": med.max_dose.original,
        "frequency": med.frequency,
        "routes": med.routes,
        "dosage_forms": med.dosage_forms,
        "concentrations": med.concentrations,
    }

# --- 4. ENDPOINTS ---

@app.post("/validate", response_model=ValidationResponse)
def validate_patient(patient: PatientRequest):
    """Validation errors are data, not HTTP errors: always 200."""
    result = validate_patient_data(patient.age, patient.age_unit, patient.weight, patient.weight_unit)
    return ValidationResponse(**asdict(result))

@app.post("/calculate", response_model=CalculationResponse)
def calculate(request: CalculationRequest):
    logger.info(f"Dose calculation: {request.dose_per_kg} mg/kg for "
                f"'{request.medication_name}', Age: {request.patient.age} {request.patient.age_unit.value}")
    result = DosageEngine.calculate_safe_dosage(
        request.patient.to_input(), request.dose_per_kg,
        request.max_dose_value, request.medication_name)
    if not result.is_valid:
        logger.warning(f"Calculation rejected: {'; '.join(result.errors)}")
    return _calculation_response(result)

@app.post("/calculate/medication", response_model=CalculationResponse)
def calculate_medication(request: MedicationCalculationRequest):
    medication = formulary.get(request.medication_name)
    if medication is None:
        raise HTTPException(status_code=404, detail=f"Unknown medication: {request.medication_name}")

    result = DosageEngine.calculate_for_medication(request.patient.to_input(), medication, settings)
    if not result.is_valid:
        logger.warning(f"Calculation rejected for {medication.name}: {'; '.join(result.errors)}")
    return _calculation_response(result)

@app.post("/dose-range", response_model=DoseRangeResponse)
def dose_range(request: DoseRangeRequest):
    band = DosageEngine.calculate_dose_range(request.weight_kg, request.min_dose_per_kg,
                                             request.max_dose_per_kg, request.absolute_max)
    return DoseRangeResponse(**asdict(band), is_trustworthy=band.is_trustworthy)

@app.get("/medications")
def list_medications(query: Optional[str] = Query(None, max_length=100),
                     category: Optional[str] = None):
    meds = formulary.search(query) if query else formulary.medications
    if category:
        meds = [m for m in meds if m.category == category]
    return {"categories": formulary.categories, "medications": [_medication_summary(m) for m in meds]}

@app.get("/medications/{name}")
def get_medication(name: str):
    medication = formulary.get(name)
    if medication is None:
        raise HTTPException(status_code=404, detail=f"Unknown medication: {name}")
    return asdict(medication)

@app.post("/calculators/bmi")
def bmi(request: BodySizeRequest):
    result = calculate_pediatric_bmi(request.weight, request.weight_unit,
                                     request.height, request.height_unit)
    if result is None:
        raise HTTPException(status_code=422, detail="Weight and height must be positive numbers")
    return asdict(result)

@app.post("/calculators/bsa")
def bsa(request: BodySizeRequest):
    result = calculate_bsa(request.weight, request.weight_unit, request.height, request.height_unit)
    if result is None:
        raise HTTPException(status_code=422, detail="Weight and height must be positive numbers")
    return asdict(result)

@app.post("/calculators/fluids")
def fluids(request: FluidRequest):
    result = calculate_fluid_requirements(request.weight, request.weight_unit)
    if result is None:
        raise HTTPException(status_code=422, detail="Weight must be a positive number")
    return asdict(result)

@app.get("/calculators/emergency")
def emergency_drugs(weight_kg: float = Query(..., gt=0, le=100)):
    return {"weight_kg": weight_kg, "drugs": [asdict(d) for d in get_emergency_drugs(weight_kg)]}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
