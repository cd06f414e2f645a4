# reference_data.py
"""
Adapter for the hosted medication table.

The table stores doses as free text ("5-15 mcg/kg/day ÷ BID"). Parsing it is
best-effort and lossy: anything we cannot read is left empty and the engine
refuses to calculate rather than guess. The engine itself never sees text.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional

import requests

from config import AppSettings, DEFAULT_SETTINGS
from constants import UNIT_FACTORS
from models import MedicationDosage, MaxDose, MedicationProfile, ReferenceDataError

logger = logging.getLogger("pedicalc-reference")

# Column names of the hosted table
COLUMNS = ("System", "Drug", "Class", "Indication", "Pediatric_Dose", "Max_Dose",
           "Dosage_Form", "Route", "Frequency", "Contraindications",
           "Major_Side_Effects", "Special_Notes")

_DOSE_RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*-?\s*(\d+(?:\.\d+)?)?\s*(mcg|mg|g)/kg", re.IGNORECASE)
# "4,000 mg" -> "4000 mg"
_THOUSANDS = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")
_MAX_DOSE = re.compile(r"(\d+(?:\.\d+)?)\s*(mcg|mg|g)(?:/day|/dose)?", re.IGNORECASE)
_CONCENTRATION = re.compile(r"\d+(?:\.\d+)?\s*mg\s*/\s*(?:\d+(?:\.\d+)?\s*)?ml", re.IGNORECASE)

# (pattern, mapping) - first match wins. mapping None = keep the matched text
_FREQUENCY_PATTERNS = [
    (re.compile(r"÷\s*(BID|TID|QID)", re.IGNORECASE), {"BID": "q12h", "TID": "q8h", "QID": "q6h"}),
    (re.compile(r"q(\d+)h", re.IGNORECASE), None),
    (re.compile(r"(once|daily)", re.IGNORECASE), {"ONCE": "daily", "DAILY": "daily"}),
    (re.compile(r"(BID|TID|QID)", re.IGNORECASE),
     {"BID": "twice daily", "TID": "three times daily", "QID": "four times daily"}),
]

_FORM_NAMES = {
    "tab": "Tablet", "tabs": "Tablet", "cap": "Capsule", "caps": "Capsule",
    "liq": "Liquid", "susp": "Suspension", "sol": "Solution", "inj": "Injection",
    "elixir": "Elixir", "syr": "Syrup", "cream": "Cream", "oint": "Ointment",
    "gel": "Gel", "powder": "Powder", "iv": "IV", "im": "IM",
    "nebulizer": "Nebulizer", "inhaler": "Inhaler",
}

_SYSTEM_CATEGORIES = {
    "cardiovascular": "Cardiovascular",
    "respiratory": "Respiratory",
    "infectious_diseases": "Antibiotics",
    "infectious diseases": "Antibiotics",
    "neurological": "Neurological",
    "neurology": "Neurological",
    "endocrine": "Endocrine",
    "gastroenterology": "Gastroenterology",
    "gastrointestinal": "Gastroenterology",
    "pain_management": "Pain Management",
    "pain management": "Pain Management",
    "anesthesia": "Anesthesia",
    "emergency": "Emergency",
    "dermatology": "Dermatology",
    "oncology": "Oncology",
    "hematology": "Hematology",
    "immunology": "Immunology",
    "psychiatry": "Psychiatry",
    "orthopedics": "Orthopedics",
    "ophthalmology": "Ophthalmology",
    "otolaryngology": "ENT",
}

def _to_mg(value: float, unit: str) -> float:
    unit = unit.lower()
    if unit == "mcg":
        return value / UNIT_FACTORS.MCG_PER_MG
    if unit == "g":
        return value * UNIT_FACTORS.MG_PER_G
    return value

def parse_pediatric_dose(text: str) -> MedicationDosage:
    """
    "10-20 mg/kg/day" -> min 10, max 20 (mg/kg)
    "5-15 mcg/kg/day ÷ BID" -> min 0.005, max 0.015, frequency q12h
    Unreadable text -> min/max left as None.
    """
    text = text or ""
    dosage = MedicationDosage(unit="mg/kg", original=text)

    match = _DOSE_RANGE.search(text)
    if match:
        unit = match.group(3)
        low = float(match.group(1))
        high = float(match.group(2)) if match.group(2) else low
        dosage.min_dose = _to_mg(low, unit)
        dosage.max_dose = _to_mg(high, unit)
    else:
        logger.debug(f"No mg/kg dose found in {text!r}")

    for pattern, mapping in _FREQUENCY_PATTERNS:
        found = pattern.search(text)
        if found:
            if mapping:
                dosage.frequency = mapping.get(found.group(1).upper(), found.group(1))
            else:
                dosage.frequency = found.group(0)
            break

    if not dosage.frequency:
        if "/day" in text:
            dosage.frequency = "daily"
        elif "dose" in text:
            dosage.frequency = "per dose"

    return dosage

def parse_max_dose(text: str) -> MaxDose:
    """'1 g/day' -> 1000 mg. Always mg-normalized."""
    text = text or ""
    max_dose = MaxDose(original=text)
    match = _MAX_DOSE.search(_THOUSANDS.sub("", text))
    if match:
        max_dose.value = _to_mg(float(match.group(1)), match.group(2))
        max_dose.unit = "mg"
    return max_dose

def parse_dosage_forms(text: str) -> List[str]:
    if not text:
        return ["Standard"]
    forms = [f.strip() for f in re.split(r"[\s,]+", text.lower()) if f.strip()]
    forms = [_FORM_NAMES.get(f, f[:1].upper() + f[1:]) for f in forms]
    return forms or ["Standard"]

def parse_routes(text: str) -> List[str]:
    if not text:
        return ["PO"]
    routes = [r.strip() for r in re.split(r"[/,\s]+", text.upper()) if r.strip()]
    return routes or ["PO"]

def extract_concentrations(*texts: str) -> List[str]:
    """Pull "X mg/Y mL" strings out of free text (forms, notes)."""
    found = []
    for text in texts:
        for match in _CONCENTRATION.finditer(text or ""):
            if match.group(0) not in found:
                found.append(match.group(0))
    return found

def map_system_to_category(system: str) -> str:
    if not system:
        return "General"
    return _SYSTEM_CATEGORIES.get(system.lower(), system[:1].upper() + system[1:].lower())

def convert_drug_row(row: Dict[str, str], row_id: int = 0,
                     fallback_dose_per_kg: Optional[float] = None) -> MedicationProfile:
    """
    One hosted-table row -> structured MedicationProfile.
    fallback_dose_per_kg (e.g. DosingPolicy.fallback_dose_per_kg) is applied only
    when the caller passes it and the dose text could not be parsed.
    """
    dosage = parse_pediatric_dose(row.get("Pediatric_Dose") or "")
    if not dosage.has_dose and fallback_dose_per_kg:
        logger.warning(f"Unparseable dose for {row.get('Drug')!r}: {dosage.original!r}; "
                       f"using fallback {fallback_dose_per_kg} mg/kg")
        dosage.min_dose = dosage.max_dose = fallback_dose_per_kg
        dosage.notes = "Fallback dose: verify against a reference before use"
    return MedicationProfile(
        id=row_id,
        name=row.get("Drug") or "Unknown Drug",
        system=row.get("System") or "General",
        drug_class=row.get("Class") or "Unknown",
        category=map_system_to_category(row.get("System") or ""),
        indication=row.get("Indication") or "Not specified",
        dosage=dosage,
        max_dose=parse_max_dose(row.get("Max_Dose") or ""),
        dosage_forms=parse_dosage_forms(row.get("Dosage_Form") or ""),
        routes=parse_routes(row.get("Route") or ""),
        concentrations=extract_concentrations(row.get("Dosage_Form") or "",
                                              row.get("Special_Notes") or ""),
        frequency=row.get("Frequency") or dosage.frequency or "As directed",
        contraindications=row.get("Contraindications") or "None specified",
        side_effects=row.get("Major_Side_Effects") or "Monitor for adverse effects",
        special_notes=row.get("Special_Notes") or "",
    )

def convert_drug_rows(rows: Iterable[Dict[str, str]],
                      fallback_dose_per_kg: Optional[float] = None) -> List[MedicationProfile]:
    return [convert_drug_row(row, i + 1, fallback_dose_per_kg) for i, row in enumerate(rows)]

def extract_categories(rows: Iterable[Dict[str, str]]) -> List[str]:
    return sorted({map_system_to_category(row.get("System") or "") for row in rows})

def extract_systems(rows: Iterable[Dict[str, str]]) -> List[str]:
    return sorted({row["System"] for row in rows if row.get("System")})

# --- Network (outside the pure core) ---

def _request_rows(settings: AppSettings, params: dict) -> List[dict]:
    if not settings.reference_url:
        logger.info("No reference URL configured; using built-in formulary only")
        return []

    url = f"{settings.reference_url.rstrip('/')}/rest/v1/{settings.reference_table}"
    headers = {
        "apikey": settings.reference_api_key,
        "Authorization": f"Bearer {settings.reference_api_key}",
    }
    try:
        r = requests.get(url, params=params, headers=headers, timeout=settings.request_timeout_sec)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, list):
            raise ReferenceDataError(f"Unexpected payload: {type(data).__name__}")
    except (requests.RequestException, ValueError, ReferenceDataError) as e:
        logger.error(f"Error fetching drugs from {url}: {e}")
        return []
    return data

def fetch_drug_rows(settings: AppSettings = DEFAULT_SETTINGS) -> List[dict]:
    """All rows, ordered by drug name. Empty list on any network failure."""
    return _request_rows(settings, {"select": "*", "order": "Drug.asc"})

def search_drug_rows(query: str, settings: AppSettings = DEFAULT_SETTINGS) -> List[dict]:
    """
    Rows whose drug name, indication or class contains `query`.
    The term is sent as a double-quoted filter value, so commas, parentheses
    and dots in it stay part of the search text.
    """
    q = (query or "").strip()
    if not q:
        return fetch_drug_rows(settings)
    term = q.replace("\\", "\\\\").replace('"', '\\"')
    pattern = f'"*{term}*"'
    return _request_rows(settings, {
        "select": "*",
        "or": f"(Drug.ilike.{pattern},Indication.ilike.{pattern},Class.ilike.{pattern})",
        "order": "Drug.asc",
    })
