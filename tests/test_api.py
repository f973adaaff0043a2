import threading
import unittest

from app import create_app, db
from config import TestConfig


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def add_block(self, day: str, subject: str, start: str, end: str, **extra):
        payload = {"day": day, "subject": subject, "start": start, "end": end, **extra}
        return self.client.post("/api/blocks", json=payload)


class WorkspaceApiTestCase(DatabaseTestCase):
    def test_health(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["database"], "ok")
        self.assertEqual(data["class_name"], "CM1")

    def test_default_state(self) -> None:
        data = self.client.get("/api/workspace").get_json()
        self.assertEqual(data["cycle"], "C3")
        self.assertEqual(data["policy"], "strict")
        self.assertEqual(len(data["days_config"]), 5)
        self.assertFalse(data["custom_subjects"])

    def test_changing_level_changes_catalog(self) -> None:
        response = self.client.put("/api/workspace", json={"class_name": "CP"})
        self.assertEqual(response.status_code, 200)
        keys = [subject["key"] for subject in self.client.get("/api/subjects").get_json()]
        self.assertIn("qlm_emc", keys)
        self.assertNotIn("sciences", keys)

    def test_update_requires_an_object(self) -> None:
        for body in (["CP"], "CP", 3):
            response = self.client.put("/api/workspace", json=body)
            self.assertEqual(response.status_code, 400, body)
        self.assertEqual(self.client.get("/api/workspace").get_json()["class_name"], "CM1")

    def test_invalid_days_are_rejected_without_side_effects(self) -> None:
        days = self.client.get("/api/workspace").get_json()["days_config"]
        days[0]["lunch_start"] = "midi"
        response = self.client.put("/api/workspace", json={"class_name": "CE1", "days_config": days})
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.get_json()["problems"])
        self.assertEqual(self.client.get("/api/workspace").get_json()["class_name"], "CM1")

    def test_custom_subjects_then_reset(self) -> None:
        subjects = [{"key": "chant", "label": "Chant", "minutes": 45}]
        data = self.client.put("/api/workspace", json={"subjects": subjects}).get_json()
        self.assertTrue(data["custom_subjects"])
        self.assertEqual([s["key"] for s in data["subjects"]], ["chant"])
        data = self.client.put("/api/workspace", json={"subjects": None}).get_json()
        self.assertFalse(data["custom_subjects"])

    def test_copy_monday(self) -> None:
        days = self.client.get("/api/workspace").get_json()["days_config"]
        days[0]["day_end"] = "16:00"
        self.client.put("/api/workspace", json={"days_config": days})
        data = self.client.post("/api/workspace/copy-monday").get_json()
        self.assertTrue(all(day["day_end"] == "16:00" for day in data["days_config"]))

    def test_default_catalogs(self) -> None:
        response = self.client.get("/api/subjects/defaults/C2")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()[0]["hours_label"], "9h10")
        self.assertEqual(self.client.get("/api/subjects/defaults/C4").status_code, 404)


class BlockApiTestCase(DatabaseTestCase):
    def test_add_list_and_delete(self) -> None:
        response = self.add_block("Mon", "fr", "8:30", "9:30")
        self.assertEqual(response.status_code, 201)
        block = response.get_json()["block"]
        self.assertFalse(response.get_json()["adjusted"])

        listed = self.client.get("/api/blocks").get_json()
        self.assertEqual([item["id"] for item in listed], [block["id"]])
        self.assertEqual(self.client.get(f"/api/blocks/{block['id']}").get_json()["subject"], "fr")

        self.assertEqual(self.client.delete(f"/api/blocks/{block['id']}").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/blocks/{block['id']}").status_code, 404)
        self.assertEqual(self.client.get(f"/api/blocks/{block['id']}").status_code, 404)

    def test_conflicting_drop_reports_reason(self) -> None:
        self.add_block("Mon", "fr", "8:30", "9:30")
        response = self.add_block("Mon", "maths", "9:00", "10:00")
        self.assertEqual(response.status_code, 409)
        data = response.get_json()
        self.assertEqual(data["reason"], "overlaps_block")
        self.assertTrue(data["suggestions"])
        self.assertEqual(len(self.client.get("/api/blocks").get_json()), 1)

    def test_repair_on_request(self) -> None:
        self.add_block("Mon", "fr", "8:30", "9:30")
        response = self.add_block("Mon", "maths", "9:00", "10:00", repair=True)
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.get_json()["adjusted"])
        self.assertEqual(response.get_json()["block"]["start"], "10:30")

    def test_input_validation(self) -> None:
        self.assertEqual(self.add_block("Sun", "fr", "8:30", "9:30").status_code, 400)
        self.assertEqual(self.add_block("Mon", "fr", "8h30", "9:30").status_code, 400)
        self.assertEqual(self.add_block("Mon", "chimie", "8:30", "9:30").status_code, 400)

    def test_check_and_nearest(self) -> None:
        data = self.client.post(
            "/api/blocks/check", json={"day": "Mon", "start": "10:00", "end": "10:30"}
        ).get_json()
        self.assertFalse(data["ok"])
        self.assertEqual(data["reason"], "overlaps_recess")
        self.assertEqual(data["message"], "Chevauche une récréation.")

        data = self.client.post(
            "/api/blocks/nearest", json={"day": "Mon", "start": "10:10", "duration": 30}
        ).get_json()
        self.assertEqual(data, {"start": 630, "clock": "10:30"})

    def test_patch_is_validated(self) -> None:
        first = self.add_block("Mon", "fr", "8:30", "9:30").get_json()["block"]
        self.add_block("Mon", "maths", "9:30", "10:15")
        response = self.client.patch(f"/api/blocks/{first['id']}", json={"end": "10:00"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.client.get(f"/api/blocks/{first['id']}").get_json()["end"], "9:30")

        response = self.client.patch(
            f"/api/blocks/{first['id']}", json={"start": "8:45", "subtitle": "dictée"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["start"], "8:45")
        self.assertEqual(response.get_json()["subtitle"], "dictée")

    def test_duplicate_and_clear(self) -> None:
        block = self.add_block("Tue", "arts", "13:30", "14:30").get_json()["block"]
        response = self.client.post(f"/api/blocks/{block['id']}/duplicate", json={"direction": "right"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["block"]["day"], "Thu")
        response = self.client.post("/api/blocks/missing/duplicate", json={"direction": "right"})
        self.assertEqual(response.status_code, 404)

        self.assertEqual(self.client.delete("/api/blocks").status_code, 204)
        self.assertEqual(self.client.get("/api/blocks").get_json(), [])


class AllocationApiTestCase(DatabaseTestCase):
    def test_autofill_then_complete(self) -> None:
        data = self.client.post("/api/allocation/autofill").get_json()
        self.assertGreater(data["created"], 0)
        self.assertEqual(len(self.client.get("/api/blocks").get_json()), data["created"])

        quotas = self.client.get("/api/quotas").get_json()
        self.assertTrue(all(value >= 0 for value in quotas["remaining"].values()))

        before = self.client.get("/api/blocks").get_json()
        data = self.client.post("/api/allocation/complete").get_json()
        after = self.client.get("/api/blocks").get_json()
        self.assertEqual(len(after), len(before) + data["created"])
        self.assertTrue({block["id"] for block in before} <= {block["id"] for block in after})

    def test_export(self) -> None:
        self.add_block("Mon", "fr", "8:30", "9:30")
        data = self.client.get("/api/export?title=Semaine").get_json()
        self.assertEqual(data["title"], "Semaine")
        self.assertEqual(data["days"][0]["items"][0]["label"], "Français")


class AssistApiTestCase(DatabaseTestCase):
    def test_import_candidates(self) -> None:
        response = self.client.post(
            "/api/assist/import",
            json={
                "mode": "complete",
                "blocks": [
                    {"day": "lundi", "subject": "Français", "start": "8h30", "end": "9h30"},
                    {"day": "lundi", "subject": "maths", "start": "10:00", "end": "10:30"},
                ],
            },
        )
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["created"], 1)
        self.assertEqual(data["dropped"][0]["reason"], "overlaps_recess")

    def test_generate_without_generator(self) -> None:
        response = self.client.post("/api/assist/generate", json={"mode": "full"})
        self.assertEqual(response.status_code, 503)

    def test_generate_with_generator(self) -> None:
        self.app.config["ASSIST_GENERATOR"] = lambda prompt: [
            {"day": "Mardi", "subject": "eps", "start": "13:30", "end": "14:30"}
        ]
        response = self.client.post("/api/assist/generate", json={"mode": "full"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["blocks"][0]["day"], "Tue")

    def test_generate_timeout(self) -> None:
        release = threading.Event()
        self.addCleanup(release.set)
        self.add_block("Mon", "fr", "8:30", "9:30")
        self.app.config["ASSIST_TIMEOUT_SECONDS"] = 0.05
        self.app.config["ASSIST_GENERATOR"] = lambda prompt: release.wait(5)
        response = self.client.post("/api/assist/generate", json={"mode": "full"})
        self.assertEqual(response.status_code, 504)
        self.assertEqual(len(self.client.get("/api/blocks").get_json()), 1)

    def test_generate_bad_answer(self) -> None:
        self.app.config["ASSIST_GENERATOR"] = lambda prompt: {"text": "désolé"}
        response = self.client.post("/api/assist/generate", json={"mode": "complete"})
        self.assertEqual(response.status_code, 502)
