import math
import unittest

from core_dosage import DosageEngine
from formulary import MEDICATION_LIBRARY
from models import PatientInput, SafetyLevel, MedicationProfile, MedicationDosage
from safety import SafetySupervisor, validate_dosage

class TestSafeDosage(unittest.TestCase):

    def setUp(self):
        """A standard 8 year old, 30 kg: no patient-level warnings."""
        self.patient = PatientInput(age="8", age_unit="years", weight="30", weight_unit="kg")

    def test_01_safety_bands(self):
        print("\nTEST 1: mg/kg bands at 30 kg")

        safe = DosageEngine.calculate_safe_dosage(self.patient, 10)
        self.assertTrue(safe.is_valid)
        self.assertEqual(safe.recommended_dose, 300)
        self.assertEqual(safe.min_dose, safe.max_dose)
        self.assertEqual(safe.safety_level, SafetyLevel.SAFE)
        self.assertTrue(safe.is_recommended)

        caution = DosageEngine.calculate_safe_dosage(self.patient, 60)
        self.assertTrue(caution.is_valid)
        self.assertEqual(caution.recommended_dose, 1800)
        self.assertEqual(caution.safety_level, SafetyLevel.CAUTION)
        self.assertFalse(caution.is_recommended)

        danger = DosageEngine.calculate_safe_dosage(self.patient, 80)
        self.assertTrue(danger.is_valid)
        self.assertEqual(danger.recommended_dose, 2400)
        self.assertEqual(danger.safety_level, SafetyLevel.DANGER)
        self.assertFalse(danger.is_recommended)
        print(f"   -> {safe.safety_level.value} / {caution.safety_level.value} / {danger.safety_level.value}")

    def test_02_per_kg_ceiling_rejects(self):
        res = DosageEngine.calculate_safe_dosage(self.patient, 101)
        self.assertFalse(res.is_valid)
        self.assertEqual(res.recommended_dose, 0)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertIn("maximum safe limit", res.errors[0])

    def test_03_absolute_ceiling_rejects(self):
        """200 mg/kg x 60 kg = 12 g: an entry error, never a dose."""
        patient = PatientInput("16", "years", "60", "kg")
        res = DosageEngine.calculate_safe_dosage(patient, 200)
        self.assertFalse(res.is_valid)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertIn("unreasonable", res.errors[0])
        self.assertFalse(res.is_recommended)

    def test_04_medication_max_is_caution_not_rejection(self):
        print("\nTEST 4: Absolute max (5 mg/kg x 100 kg, max 400 mg)")
        patient = PatientInput("16", "years", "100", "kg")
        res = DosageEngine.calculate_safe_dosage(patient, 5, 400, "Ibuprofen")
        self.assertTrue(res.is_valid)
        self.assertEqual(res.recommended_dose, 500)
        self.assertTrue(res.is_over_max)
        self.assertEqual(res.safety_level, SafetyLevel.CAUTION)
        self.assertTrue(any("exceeds maximum recommended dose for Ibuprofen" in w for w in res.warnings))

    def test_05_invalid_max_is_ignored(self):
        for bad_max in (0, -10, float("nan")):
            res = DosageEngine.calculate_safe_dosage(self.patient, 10, bad_max, "X")
            self.assertTrue(res.is_valid)
            self.assertFalse(res.is_over_max)
            self.assertEqual(res.safety_level, SafetyLevel.SAFE)

    def test_06_bad_dose_per_kg(self):
        for bad in (0, -1, float("nan"), float("inf"), True, "10", None):
            res = DosageEngine.calculate_safe_dosage(self.patient, bad, medication_name="Testmed")
            self.assertFalse(res.is_valid, bad)
            self.assertEqual(res.safety_level, SafetyLevel.DANGER)
            self.assertIn("Invalid dose per kg for Testmed", res.errors[0])

    def test_07_patient_errors_propagate(self):
        patient = PatientInput("19", "years", "60", "kg")
        res = DosageEngine.calculate_safe_dosage(patient, 10)
        self.assertFalse(res.is_valid)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertTrue(res.errors)

    def test_08_neonate_is_never_auto_recommended(self):
        neonate = PatientInput("10", "days", "3.2", "kg")
        res = DosageEngine.calculate_safe_dosage(neonate, 10)
        self.assertTrue(res.is_valid)
        self.assertAlmostEqual(res.recommended_dose, 32)
        self.assertEqual(res.safety_level, SafetyLevel.CAUTION)
        self.assertFalse(res.is_recommended)
        self.assertTrue(res.warnings[0].startswith("Neonate detected"))

    def test_09_pounds(self):
        patient = PatientInput("8", "years", "66", "lbs")
        res = DosageEngine.calculate_safe_dosage(patient, 10)
        self.assertAlmostEqual(res.weight_kg, 66 * 0.453592)
        self.assertAlmostEqual(res.recommended_dose, 66 * 0.453592 * 10)

    def test_10_monotonic_in_weight(self):
        previous = 0.0
        for weight in range(10, 101, 10):
            res = DosageEngine.calculate_safe_dosage(PatientInput("10", "years", str(weight), "kg"), 2)
            self.assertTrue(res.is_valid)
            self.assertGreater(res.recommended_dose, previous)
            previous = res.recommended_dose

    def test_11_malformed_patient_is_a_danger_result(self):
        res = DosageEngine.calculate_safe_dosage(object(), 10, medication_name="X")
        self.assertFalse(res.is_valid)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertTrue(res.errors[0].startswith("System Error"))

    def test_12_audit_log(self):
        a = DosageEngine.calculate_safe_dosage(self.patient, 10, medication_name="X")
        b = DosageEngine.calculate_safe_dosage(self.patient, 10, medication_name="X")
        self.assertEqual(a.audit_log.inputs_hash, b.audit_log.inputs_hash)

    def test_13_decimal_comma_weight_is_rejected(self):
        res = DosageEngine.calculate_safe_dosage(PatientInput("8", "years", "22,7", "kg"), 10)
        self.assertFalse(res.is_valid)
        self.assertEqual(res.recommended_dose, 0)
        self.assertFalse(res.is_recommended)

class TestSafetySupervisor(unittest.TestCase):

    def test_01_low_dose_warning(self):
        res = validate_dosage(0.05, 100, "X")
        self.assertTrue(res.is_valid)
        self.assertEqual(res.safety_level, SafetyLevel.CAUTION)
        self.assertIn("Very low dose", res.warnings[0])

    def test_02_non_finite_dose(self):
        res = SafetySupervisor.check_dose(float("nan"), 10, "X")
        self.assertFalse(res.is_valid)
        self.assertEqual(res.errors, ["Invalid dosage calculation result"])

    def test_03_classify_range(self):
        self.assertEqual(SafetySupervisor.classify_range(300, None), SafetyLevel.SAFE)
        self.assertEqual(SafetySupervisor.classify_range(300, 400), SafetyLevel.SAFE)
        self.assertEqual(SafetySupervisor.classify_range(300, 350), SafetyLevel.CAUTION)
        self.assertEqual(SafetySupervisor.classify_range(300, 250), SafetyLevel.DANGER)

class TestDoseRange(unittest.TestCase):

    def test_01_midpoint(self):
        band = DosageEngine.calculate_dose_range(20, 10, 20)
        self.assertEqual(band.min_dose, 200)
        self.assertEqual(band.max_dose, 400)
        self.assertEqual(band.recommended_dose, 300)
        self.assertEqual(band.safety_level, SafetyLevel.SAFE)
        self.assertTrue(band.is_trustworthy)

    def test_02_midpoint_against_max(self):
        self.assertEqual(DosageEngine.calculate_dose_range(20, 10, 20, 350).safety_level,
                         SafetyLevel.CAUTION)
        self.assertEqual(DosageEngine.calculate_dose_range(20, 10, 20, 250).safety_level,
                         SafetyLevel.DANGER)
        # Broken max is ignored, not treated as zero
        self.assertEqual(DosageEngine.calculate_dose_range(20, 10, 20, -5).safety_level,
                         SafetyLevel.SAFE)

    def test_03_untrustworthy_inputs(self):
        for args in ((20, 20, 10), (0, 10, 20), (-3, 10, 20), (20, -1, 10), (float("nan"), 1, 2)):
            band = DosageEngine.calculate_dose_range(*args)
            self.assertEqual(band.recommended_dose, 0, args)
            self.assertEqual(band.min_dose, 0)
            self.assertEqual(band.safety_level, SafetyLevel.DANGER)
            self.assertFalse(band.is_trustworthy)

    def test_04_rounding(self):
        band = DosageEngine.calculate_dose_range(12.345, 0.1, 0.2)
        self.assertEqual(band.min_dose, 1.23)
        self.assertEqual(band.max_dose, 2.47)

class TestVolume(unittest.TestCase):

    def test_01_concentration_forms(self):
        self.assertEqual(DosageEngine.derive_volume(100, ["100 mg/5 mL"]), "5.0 mL")
        self.assertEqual(DosageEngine.derive_volume(250, ["250mg per 5ml"]), "5.0 mL")
        self.assertEqual(DosageEngine.derive_volume(4, ["2 mg/mL"]), "2.0 mL")
        self.assertEqual(DosageEngine.derive_volume(100, ["100 mg/5 mL"], 2), "5.00 mL")
        self.assertEqual(DosageEngine.derive_volume(20, ["100 mg in 1 mL"], 2), "0.20 mL")

    def test_03_only_adjacent_figures_form_a_ratio(self):
        """A stray mg or mL figure elsewhere in the text never pairs up."""
        self.assertEqual(DosageEngine.derive_volume(250, ["Tablet 500 mg; suspension 250 mg/5 mL"]),
                         "5.0 mL")
        self.assertEqual(DosageEngine.derive_volume(10, ["10 mg/mL, 5 mL vial"]), "1.0 mL")
        self.assertIsNone(DosageEngine.derive_volume(10, ["Tablet 10 mg, 5 mL cup"]))

    def test_02_no_volume(self):
        self.assertIsNone(DosageEngine.derive_volume(100, ["Tablet"]))
        self.assertIsNone(DosageEngine.derive_volume(100, []))
        self.assertIsNone(DosageEngine.derive_volume(0, ["100 mg/5 mL"]))
        self.assertIsNone(DosageEngine.derive_volume(100, ["0 mg/5 mL"]))

class TestMedicationPipeline(unittest.TestCase):

    def setUp(self):
        self.child = PatientInput("6", "years", "20", "kg")

    def test_01_ibuprofen(self):
        print("\nTEST 1: Ibuprofen, 20 kg child")
        res = DosageEngine.calculate_for_medication(self.child, MEDICATION_LIBRARY.get("ibuprofen"))
        self.assertTrue(res.is_valid)
        self.assertEqual(res.recommended_dose, 100)
        self.assertEqual(res.min_dose, 100)
        self.assertEqual(res.max_dose, 200)
        self.assertEqual(res.volume, "5.0 mL")
        self.assertEqual(res.concentration, "100 mg/5 mL")
        self.assertEqual(res.frequency, "Every 6-8 hours")
        self.assertEqual(res.safety_level, SafetyLevel.SAFE)
        self.assertTrue(res.is_recommended)
        print(f"   -> {res.recommended_dose} mg = {res.volume}")

    def test_02_epinephrine_per_ml(self):
        res = DosageEngine.calculate_for_medication(self.child, MEDICATION_LIBRARY.get("Epinephrine"))
        self.assertTrue(res.is_valid)
        self.assertAlmostEqual(res.recommended_dose, 0.2)
        self.assertEqual(res.volume, "2.0 mL")

    def test_03_over_max_band_is_danger(self):
        teen = PatientInput("15", "years", "45", "kg")
        res = DosageEngine.calculate_for_medication(teen, MEDICATION_LIBRARY.get("Ceftriaxone"))
        self.assertTrue(res.is_valid)
        self.assertTrue(res.is_over_max)
        self.assertEqual(res.recommended_dose, 2250)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertFalse(res.is_recommended)
        self.assertIsNone(res.volume)
        self.assertTrue(any("midpoint" in w for w in res.warnings))

    def test_04_fixed_dose_is_rejected(self):
        res = DosageEngine.calculate_for_medication(self.child, MEDICATION_LIBRARY.get("Albuterol"))
        self.assertFalse(res.is_valid)
        self.assertIn("fixed amount", res.errors[0])

    def test_05_missing_dose(self):
        med = MedicationProfile(name="Mystery", dosage=MedicationDosage(original="see protocol"))
        res = DosageEngine.calculate_for_medication(self.child, med)
        self.assertFalse(res.is_valid)
        self.assertIn("No dosage information available for Mystery", res.errors[0])

    def test_06_malformed_medication(self):
        med = MedicationProfile(name="Broken", dosage="10 mg/kg")
        res = DosageEngine.calculate_for_medication(self.child, med)
        self.assertFalse(res.is_valid)
        self.assertEqual(res.safety_level, SafetyLevel.DANGER)
        self.assertTrue(res.errors[0].startswith("System Error"))

    def test_07_patient_invalid(self):
        res = DosageEngine.calculate_for_medication(PatientInput("0", "years", "20", "kg"),
                                                    MEDICATION_LIBRARY.get("Ibuprofen"))
        self.assertFalse(res.is_valid)
        self.assertTrue(math.isclose(res.recommended_dose, 0))

if __name__ == '__main__':
    unittest.main()
