import unittest

from app.catalog import default_catalog
from app.days import default_week
from app.export import blocks_to_items, export_payload
from app.store import Block


class ExportTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = default_catalog("C3")
        self.blocks = [
            Block("b3", "Mon", "maths", "10:30", "11:30"),
            Block("b1", "Mon", "fr", "8:30", "9:30"),
            Block("b2", "Mon", "fr", "9:30", "10:15"),
            Block("b4", "Tue", "eps", "13:30", "14:30", "piscine"),
        ]

    def test_back_to_back_lessons_are_merged(self) -> None:
        items = blocks_to_items([b for b in self.blocks if b.day == "Mon"], self.catalog)
        self.assertEqual([item["ids"] for item in items], [["b1", "b2"], ["b3"]])
        self.assertEqual((items[0]["start"], items[0]["end"]), ("8:30", "10:15"))
        self.assertEqual(items[0]["duration_label"], "1h45")
        self.assertEqual(items[0]["label"], "Français")

    def test_payload_lists_enabled_days_in_order(self) -> None:
        payload = export_payload(
            default_week(), self.blocks, self.catalog, class_name="CM1", title="Semaine"
        )
        self.assertEqual(payload["title"], "Semaine")
        self.assertEqual([day["key"] for day in payload["days"]], ["Mon", "Tue", "Thu", "Fri"])
        monday = payload["days"][0]
        self.assertEqual(monday["recesses"], [{"start": "10:15", "end": "10:30"}, {"start": "15:00", "end": "15:15"}])
        self.assertEqual(monday["total_label"], "2h45")
        tuesday = payload["days"][1]
        self.assertEqual(tuesday["items"][0]["subtitle"], "piscine")
        self.assertEqual(len(payload["quotas"]), len(self.catalog))

    def test_default_title_names_the_class(self) -> None:
        payload = export_payload(default_week(), [], self.catalog, class_name="CE2")
        self.assertTrue(payload["title"].startswith("Emploi_du_temps_CE2_"))
