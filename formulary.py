# formulary.py
"""
Built-in medication reference table (used when no hosted table is configured,
and as the test fixture for the engine). Doses are per kg unless unit says otherwise.
"""

from typing import Dict, Iterable, List, Optional

from models import MedicationDosage, MaxDose, MedicationProfile
from reference_data import convert_drug_rows

def _med(id, name, system, drug_class, category, indication, dose, max_dose,
         forms, routes, frequency, contraindications, side_effects, notes,
         concentrations=()) -> MedicationProfile:
    low, high, unit, dose_freq, route, dose_text = dose
    value, max_text = max_dose
    return MedicationProfile(
        id=id, name=name, system=system, drug_class=drug_class, category=category,
        indication=indication,
        dosage=MedicationDosage(min_dose=low, max_dose=high, unit=unit, frequency=dose_freq,
                                route=route, original=dose_text),
        max_dose=MaxDose(value=value, unit="mg", original=max_text),
        dosage_forms=list(forms), routes=list(routes), concentrations=list(concentrations),
        frequency=frequency, contraindications=contraindications,
        side_effects=side_effects, special_notes=notes,
    )

class Formulary:
    """Case-insensitive lookup over a list of MedicationProfiles."""

    def __init__(self, medications: Iterable[MedicationProfile]):
        self.medications: List[MedicationProfile] = list(medications)
        self._by_name: Dict[str, MedicationProfile] = {m.name.lower(): m for m in self.medications}

    @classmethod
    def from_rows(cls, rows: Iterable[dict], fallback_dose_per_kg: Optional[float] = None) -> "Formulary":
        return cls(convert_drug_rows(rows, fallback_dose_per_kg))

    def get(self, name: str) -> Optional[MedicationProfile]:
        return self._by_name.get((name or "").strip().lower())

    def search(self, query: str) -> List[MedicationProfile]:
        q = (query or "").strip().lower()
        return [m for m in self.medications
                if q in m.name.lower() or q in m.indication.lower() or q in m.drug_class.lower()]

    def by_category(self, category: str) -> List[MedicationProfile]:
        return [m for m in self.medications if m.category == category]

    def by_system(self, system: str) -> List[MedicationProfile]:
        return [m for m in self.medications if m.system == system]

    @property
    def categories(self) -> List[str]:
        return sorted({m.category for m in self.medications})

    @property
    def systems(self) -> List[str]:
        return sorted({m.system for m in self.medications})

    def __len__(self):
        return len(self.medications)

MEDICATION_LIBRARY = Formulary([
    _med(1, "Acetaminophen", "Pain_Management", "Analgesic", "Pain Management", "Pain and fever",
         (10, 15, "mg/kg", "q4-6h", "PO", "10-15 mg/kg q4-6h"), (650, "650 mg/dose"),
         ["Tab", "Liquid", "Suspension"], ["PO"], "Every 4-6 hours",
         "Hepatic failure", "Hepatotoxicity (overdose)", "Monitor total daily dose",
         ["160 mg/5 mL"]),
    _med(2, "Ibuprofen", "Pain_Management", "NSAID", "Pain Management", "Pain and fever",
         (5, 10, "mg/kg", "q6-8h", "PO", "5-10 mg/kg q6-8h"), (400, "400 mg/dose"),
         ["Tab", "Suspension"], ["PO"], "Every 6-8 hours",
         "GI bleeding, renal disease", "GI upset, renal toxicity", "Take with food",
         ["100 mg/5 mL"]),
    _med(3, "Amoxicillin", "Infectious_Diseases", "Penicillin", "Antibiotics", "Bacterial infections",
         (20, 40, "mg/kg", "q8h", "PO", "20-40 mg/kg/day divided q8h"), (1000, "1000 mg/dose"),
         ["Cap", "Suspension"], ["PO"], "Every 8 hours",
         "Penicillin allergy", "GI upset, rash", "Complete full course",
         ["250 mg/5 mL"]),
    _med(4, "Azithromycin", "Infectious_Diseases", "Macrolide", "Antibiotics", "Respiratory infections",
         (10, 12, "mg/kg", "once daily", "PO", "10-12 mg/kg once daily"), (500, "500 mg/dose"),
         ["Tab", "Suspension"], ["PO"], "Once daily",
         "Macrolide allergy", "GI upset, QT prolongation", "5-day course typical",
         ["200 mg/5 mL"]),
    _med(5, "Prednisolone", "Endocrine", "Corticosteroid", "Anti-inflammatory", "Asthma, allergic reactions",
         (1, 2, "mg/kg", "daily", "PO", "1-2 mg/kg/day"), (40, "40 mg/dose"),
         ["Tab", "Liquid"], ["PO"], "Once or twice daily",
         "Systemic infections", "Mood changes, appetite increase", "Taper gradually",
         ["15 mg/5 mL"]),
    # Fixed nebulized dose: not weight-based
    _med(6, "Albuterol", "Respiratory", "Beta2-agonist", "Respiratory", "Asthma, bronchospasm",
         (2.5, 5, "mg", "q4-6h", "Nebulizer", "2.5-5 mg via nebulizer q4-6h"), (5, "5 mg/dose"),
         ["Nebulizer", "MDI"], ["Inhalation"], "Every 4-6 hours PRN",
         "Hypersensitivity", "Tachycardia, tremor", "Rinse mouth after use"),
    _med(7, "Ondansetron", "Gastroenterology", "5-HT3 antagonist", "Gastroenterology", "Nausea and vomiting",
         (0.1, 0.15, "mg/kg", "q8h", "PO/IV", "0.1-0.15 mg/kg q8h"), (8, "8 mg/dose"),
         ["Tab", "ODT", "IV"], ["PO", "IV"], "Every 8 hours",
         "QT prolongation", "Headache, constipation", "Monitor QT interval",
         ["4 mg/5 mL"]),
    _med(8, "Ceftriaxone", "Infectious_Diseases", "Cephalosporin", "Antibiotics", "Serious bacterial infections",
         (50, 100, "mg/kg", "daily", "IV", "50-100 mg/kg/day"), (2000, "2000 mg/dose"),
         ["IV"], ["IV", "IM"], "Once daily",
         "Cephalosporin allergy", "Diarrhea, rash", "Avoid calcium-containing solutions"),
    _med(9, "Epinephrine", "Emergency", "Sympathomimetic", "Emergency", "Anaphylaxis, cardiac arrest",
         (0.01, 0.01, "mg/kg", "q3-5min", "IV", "0.01 mg/kg IV (1:10,000)"), (1, "1 mg/dose"),
         ["Injection"], ["IV", "IM", "SC"], "Every 3-5 minutes",
         "None in emergency", "Tachycardia, hypertension", "For anaphylaxis: 0.3-0.5 mg IM",
         ["0.1 mg/mL"]),
    _med(10, "Lorazepam", "Neurological", "Benzodiazepine", "Neurological", "Seizures, anxiety",
         (0.05, 0.1, "mg/kg", "q6-8h", "IV/PO", "0.05-0.1 mg/kg q6-8h"), (4, "4 mg/dose"),
         ["Tab", "IV"], ["PO", "IV"], "Every 6-8 hours",
         "Respiratory depression", "Sedation, respiratory depression", "Monitor respiratory status",
         ["2 mg/mL"]),
])

CATEGORIES = MEDICATION_LIBRARY.categories
SYSTEMS = MEDICATION_LIBRARY.systems
