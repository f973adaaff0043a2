import unittest

from app.catalog import SubjectDef, default_catalog
from app.days import AFTERNOON, MORNING, DayConfig, default_week
from app.quotas import remaining_minutes, scheduled_minutes
from app.scheduler import (
    autofill,
    chunk_length,
    complete_fill,
    free_windows,
    rotation_order,
    run_autofill,
    run_complete_fill,
    subtract_segment,
)
from app.store import Block, BlockStore
from app.timeutils import intervals_overlap


def _assert_no_overlap(test: unittest.TestCase, blocks) -> None:
    for index, block in enumerate(blocks):
        for other in blocks[index + 1:]:
            if block.day != other.day:
                continue
            test.assertFalse(
                intervals_overlap(
                    block.start_minutes, block.end_minutes, other.start_minutes, other.end_minutes
                ),
                f"{block} overlaps {other}",
            )


def _short_monday() -> list[DayConfig]:
    # A single two-hour morning and no afternoon.
    return [
        DayConfig(
            key="Mon",
            label="Lundi",
            morning_start="08:30",
            lunch_start="10:30",
            lunch_end="13:30",
            day_end="13:30",
            rec1_start="10:30",
            rec2_start="15:00",
        )
    ]


class ChunkAndWindowTestCase(unittest.TestCase):
    def test_chunk_lengths(self) -> None:
        self.assertEqual(chunk_length("fr", 200, 120), 60)
        self.assertEqual(chunk_length("lv", 200, 120), 45)
        self.assertEqual(chunk_length("fr", 200, 40), 40)
        self.assertEqual(chunk_length("fr", 200, 44), 40)

    def test_short_tail_goes_in_whole(self) -> None:
        # Below the EPS minimum, but the whole remainder fits.
        self.assertEqual(chunk_length("eps", 30, 120), 30)
        self.assertEqual(chunk_length("eps", 50, 40), 40)
        self.assertEqual(chunk_length("fr", 10, 120), 10)

    def test_subtract_segment(self) -> None:
        self.assertEqual(subtract_segment([(0, 100)], 20, 30), [(0, 20), (30, 100)])
        self.assertEqual(subtract_segment([(0, 100)], 100, 120), [(0, 100)])
        self.assertEqual(subtract_segment([(0, 100)], -10, 120), [])

    def test_free_windows_skip_recesses_and_blocks(self) -> None:
        monday = default_week()[0]
        self.assertEqual(free_windows(monday, MORNING, []), [(510, 615), (630, 720)])
        self.assertEqual(free_windows(monday, AFTERNOON, []), [(810, 900), (915, 990)])
        blocks = [
            Block("a", "Mon", "fr", "9:00", "9:30"),
            Block("b", "Mon", "fr", "11:50", "12:00"),
            Block("c", "Tue", "fr", "10:30", "12:00"),
        ]
        self.assertEqual(free_windows(monday, MORNING, blocks), [(510, 540), (570, 615), (630, 710)])

    def test_rotation_order_follows_catalog(self) -> None:
        catalog = default_catalog("C3")
        self.assertEqual(rotation_order("C3", "Mon", MORNING, catalog), ["fr", "maths"])
        custom = [SubjectDef("chant", "Chant", 60), SubjectDef("maths", "Maths", 60)]
        self.assertEqual(rotation_order("C3", "Mon", MORNING, custom), ["maths"])
        self.assertEqual(rotation_order("C3", "Mon", AFTERNOON, custom), ["chant", "maths"])


class AutofillTestCase(unittest.TestCase):
    def test_monday_morning_of_a_cm1_week(self) -> None:
        drafts = autofill(default_week(), default_catalog("C3"), "C3")
        monday_morning = [
            (draft.subject, draft.start, draft.end)
            for draft in drafts
            if draft.day == "Mon" and draft.start_minutes < 720
        ]
        self.assertEqual(
            monday_morning,
            [
                ("fr", "8:30", "9:30"),
                ("maths", "9:30", "10:15"),
                ("fr", "10:30", "11:30"),
                ("maths", "11:30", "12:00"),
            ],
        )

    def test_quotas_are_never_exceeded(self) -> None:
        for cycle in ("C2", "C3"):
            catalog = default_catalog(cycle)
            drafts = autofill(default_week(), catalog, cycle)
            remaining = remaining_minutes(catalog, drafts)
            scheduled = scheduled_minutes(drafts)
            for subject in catalog:
                self.assertGreaterEqual(remaining[subject.key], 0, subject.key)
                self.assertEqual(
                    scheduled.get(subject.key, 0) + remaining[subject.key], subject.minutes
                )

    def test_generated_week_is_valid(self) -> None:
        store = BlockStore(default_week())
        run_autofill(store, default_catalog("C3"), "C3")
        blocks = store.blocks
        self.assertTrue(blocks)
        _assert_no_overlap(self, blocks)
        for block in blocks:
            self.assertGreaterEqual(block.duration, 15)
            self.assertEqual(block.start_minutes % 5, 0)
            self.assertIsNone(store.check_conflict(block, ignore_id=block.id))
        self.assertFalse(any(block.day == "Wed" for block in blocks))

    def test_same_configuration_same_week(self) -> None:
        first = autofill(default_week(), default_catalog("C2"), "C2")
        second = autofill(default_week(), default_catalog("C2"), "C2")
        self.assertEqual(first, second)

    def test_single_short_subject_fits_once(self) -> None:
        catalog = [SubjectDef("lv", "Langues vivantes", 30)]
        drafts = autofill(_short_monday(), catalog, "C3")
        self.assertEqual([(d.subject, d.start, d.end) for d in drafts], [("lv", "8:30", "9:00")])

    def test_autofill_replaces_existing_blocks(self) -> None:
        store = BlockStore(default_week())
        store.replace_all([Block("old", "Mon", "arts", "8:30", "9:30")])
        report = run_autofill(store, default_catalog("C3"), "C3")
        self.assertIsNone(store.get("old"))
        self.assertEqual(report.created, len(store))
        self.assertIn("séance(s) générée(s)", report.summary)


class CompleteFillTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [
            Block("x1", "Mon", "fr", "8:30", "9:30"),
            Block("x2", "Tue", "maths", "13:30", "14:30"),
            Block("x3", "Thu", "eps", "10:30", "11:30", "piscine"),
        ]
        self.store = BlockStore(default_week())
        self.store.replace_all(self.existing)

    def test_existing_blocks_are_preserved(self) -> None:
        report = run_complete_fill(self.store, default_catalog("C3"), "C3")
        for block in self.existing:
            self.assertEqual(self.store.get(block.id), block)
        self.assertEqual(len(self.store), len(self.existing) + report.created)
        _assert_no_overlap(self, self.store.blocks)

    def test_fill_counts_existing_minutes(self) -> None:
        catalog = default_catalog("C3")
        run_complete_fill(self.store, catalog, "C3")
        remaining = remaining_minutes(catalog, self.store.blocks)
        for subject in catalog:
            self.assertGreaterEqual(remaining[subject.key], 0, subject.key)

    def test_single_short_subject_in_a_two_hour_window(self) -> None:
        catalog = [SubjectDef("lv", "Langues vivantes", 30)]
        drafts = complete_fill(_short_monday(), catalog, "C3", [])
        self.assertEqual(len(drafts), 1)
        self.assertEqual(drafts[0].duration, 30)

    def test_nothing_left_to_place(self) -> None:
        catalog = [SubjectDef("lv", "Langues vivantes", 30)]
        store = BlockStore(_short_monday())
        store.replace_all([Block("lv1", "Mon", "lv", "9:00", "9:30")])
        report = run_complete_fill(store, catalog, "C3")
        self.assertEqual(report.created, 0)
        self.assertEqual(report.summary, "Aucun espace libre suffisant pour compléter.")
        self.assertEqual(len(store), 1)
