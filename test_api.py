import unittest

from fastapi.testclient import TestClient

from main import app

class TestDosageApi(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)
        self.child = {"age": "8", "age_unit": "years", "weight": "30", "weight_unit": "kg"}

    def test_01_health(self):
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "active")
        self.assertEqual(r.json()["medications"], 10)

    def test_02_validation_errors_are_data(self):
        r = self.client.post("/validate", json={"age": "18.01", "age_unit": "years", "weight": "50"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertFalse(body["is_valid"])
        self.assertEqual(body["safety_level"], "danger")
        self.assertTrue(body["errors"])

    def test_03_unknown_unit_is_rejected_by_schema(self):
        r = self.client.post("/validate", json={"age": "3", "age_unit": "weeks", "weight": "12"})
        self.assertEqual(r.status_code, 422)

    def test_04_calculate(self):
        print("\nTEST 4: POST /calculate (60 mg/kg x 30 kg)")
        r = self.client.post("/calculate", json={"patient": self.child, "dose_per_kg": 60})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["is_valid"])
        self.assertEqual(body["recommended_dose"], 1800)
        self.assertEqual(body["safety_level"], "caution")
        self.assertFalse(body["is_recommended"])
        print(f"   -> {body['recommended_dose']} mg, {body['safety_level']}")

    def test_05_calculate_rejected(self):
        r = self.client.post("/calculate", json={"patient": self.child, "dose_per_kg": 0})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertFalse(body["is_valid"])
        self.assertEqual(body["recommended_dose"], 0)
        self.assertEqual(body["safety_level"], "danger")

    def test_06_calculate_medication(self):
        patient = {"age": "6", "age_unit": "years", "weight": "20", "weight_unit": "kg"}
        r = self.client.post("/calculate/medication",
                             json={"patient": patient, "medication_name": "ibuprofen"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["medication"], "Ibuprofen")
        self.assertEqual(body["volume"], "5.0 mL")
        self.assertEqual(body["max_dose"], 200)

        r = self.client.post("/calculate/medication",
                             json={"patient": patient, "medication_name": "Unobtainium"})
        self.assertEqual(r.status_code, 404)

    def test_07_dose_range(self):
        r = self.client.post("/dose-range", json={"weight_kg": 20, "min_dose_per_kg": 10,
                                                  "max_dose_per_kg": 20})
        self.assertEqual(r.json()["recommended_dose"], 300)
        self.assertTrue(r.json()["is_trustworthy"])

        r = self.client.post("/dose-range", json={"weight_kg": 20, "min_dose_per_kg": 20,
                                                  "max_dose_per_kg": 10})
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.json()["is_trustworthy"])
        self.assertEqual(r.json()["safety_level"], "danger")

    def test_08_medications(self):
        r = self.client.get("/medications", params={"query": "fever"})
        names = [m["name"] for m in r.json()["medications"]]
        self.assertEqual(names, ["Acetaminophen", "Ibuprofen"])

        r = self.client.get("/medications", params={"category": "Antibiotics"})
        self.assertEqual(len(r.json()["medications"]), 3)

        r = self.client.get("/medications/Lorazepam")
        self.assertEqual(r.json()["concentrations"], ["2 mg/mL"])
        self.assertEqual(self.client.get("/medications/nothing").status_code, 404)

    def test_09_calculators(self):
        r = self.client.post("/calculators/bmi", json={"weight": "20", "height": "110"})
        self.assertEqual(r.json()["bmi"], 16.5)

        r = self.client.post("/calculators/fluids", json={"weight": "25"})
        self.assertEqual(r.json()["hourly"], 67)

        r = self.client.post("/calculators/fluids", json={"weight": "-4"})
        self.assertEqual(r.status_code, 422)

        r = self.client.get("/calculators/emergency", params={"weight_kg": 10})
        self.assertEqual(len(r.json()["drugs"]), 4)
        self.assertEqual(self.client.get("/calculators/emergency",
                                         params={"weight_kg": 0}).status_code, 422)

if __name__ == '__main__':
    unittest.main()
