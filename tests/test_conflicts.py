import unittest

from app.conflicts import ConflictPolicy, ConflictReason, suggest_placement_fix
from app.days import default_week
from app.store import BlockDraft, BlockStore
from app.timeutils import intervals_overlap, to_minutes


def _store(policy: ConflictPolicy = ConflictPolicy.STRICT) -> BlockStore:
    return BlockStore(default_week(), policy=policy)


class StrictPolicyTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = _store()
        self.store.add_block(BlockDraft("Mon", "fr", "9:00", "10:00"))

    def check(self, day: str, start: str, end: str):
        return self.store.check_interval(day, to_minutes(start), to_minutes(end))

    def test_reasons_in_order(self) -> None:
        self.assertIs(self.check("Wed", "9:00", "10:00"), ConflictReason.DAY_DISABLED)
        self.assertIs(self.check("Sat", "9:00", "10:00"), ConflictReason.DAY_DISABLED)
        self.assertIs(self.check("Mon", "11:00", "10:00"), ConflictReason.INVERTED_INTERVAL)
        self.assertIs(self.check("Mon", "12:30", "13:00"), ConflictReason.OUTSIDE_TEACHING_HOURS)
        self.assertIs(self.check("Mon", "11:30", "12:30"), ConflictReason.OUTSIDE_TEACHING_HOURS)
        self.assertIs(self.check("Mon", "8:00", "9:00"), ConflictReason.OUTSIDE_TEACHING_HOURS)
        self.assertIs(self.check("Mon", "10:00", "10:20"), ConflictReason.OVERLAPS_RECESS)
        self.assertIs(self.check("Mon", "9:30", "10:15"), ConflictReason.OVERLAPS_BLOCK)

    def test_touching_neighbours_are_accepted(self) -> None:
        self.assertIsNone(self.check("Mon", "10:00", "10:15"))
        self.assertIsNone(self.check("Mon", "8:30", "9:00"))
        self.assertIsNone(self.check("Mon", "10:30", "12:00"))

    def test_ignored_block_does_not_conflict_with_itself(self) -> None:
        existing = self.store.blocks[0]
        reason = self.store.check_interval("Mon", 555, 600, ignore_id=existing.id)
        self.assertIsNone(reason)

    def test_disjoint_blocks_never_break_a_passing_check(self) -> None:
        extras = [
            BlockDraft("Mon", "maths", "8:30", "9:00"),
            BlockDraft("Mon", "arts", "10:30", "11:15"),
            BlockDraft("Mon", "eps", "13:30", "14:30"),
            BlockDraft("Mon", "lv", "15:15", "16:00"),
        ]
        checked = 0
        for start in range(480, 1000, 15):
            for length in (15, 30, 60):
                end = start + length
                if self.store.check_interval("Mon", start, end) is not None:
                    continue
                checked += 1
                store = _store()
                store.replace_all(self.store.blocks)
                for extra in extras:
                    if not intervals_overlap(start, end, extra.start_minutes, extra.end_minutes):
                        store.add_block(extra, repair=False)
                self.assertIsNone(store.check_interval("Mon", start, end), (start, end))
        self.assertGreater(checked, 0)

    def test_messages_and_suggestions_are_french(self) -> None:
        self.assertEqual(ConflictReason.OVERLAPS_RECESS.message, "Chevauche une récréation.")
        self.assertTrue(suggest_placement_fix(ConflictReason.OVERLAPS_RECESS))
        self.assertEqual(suggest_placement_fix(None), [])


class RelaxedPolicyTestCase(unittest.TestCase):
    def test_day_bounds_allows_lunch_but_not_overlaps(self) -> None:
        store = _store(ConflictPolicy.DAY_BOUNDS)
        store.add_block(BlockDraft("Mon", "fr", "9:00", "10:00"), repair=False)
        self.assertIsNone(store.check_interval("Mon", to_minutes("12:30"), to_minutes("13:00")))
        self.assertIsNone(store.check_interval("Mon", to_minutes("10:00"), to_minutes("10:30")))
        self.assertIs(
            store.check_interval("Mon", to_minutes("7:00"), to_minutes("8:00")),
            ConflictReason.OUTSIDE_DAY_BOUNDS,
        )
        self.assertIs(
            store.check_interval("Mon", to_minutes("9:30"), to_minutes("10:30")),
            ConflictReason.OVERLAPS_BLOCK,
        )

    def test_permissive_allows_overlaps(self) -> None:
        store = _store(ConflictPolicy.PERMISSIVE)
        store.add_block(BlockDraft("Mon", "fr", "9:00", "10:00"), repair=False)
        self.assertIsNone(store.check_interval("Mon", to_minutes("9:30"), to_minutes("10:30")))
        self.assertIs(
            store.check_interval("Wed", to_minutes("9:30"), to_minutes("10:30")),
            ConflictReason.DAY_DISABLED,
        )

    def test_policy_from_configuration(self) -> None:
        self.assertIs(ConflictPolicy.from_value(None), ConflictPolicy.STRICT)
        self.assertIs(ConflictPolicy.from_value(" Day_Bounds "), ConflictPolicy.DAY_BOUNDS)
        self.assertIs(ConflictPolicy.from_value(ConflictPolicy.PERMISSIVE), ConflictPolicy.PERMISSIVE)
        with self.assertRaises(ValueError):
            ConflictPolicy.from_value("chaos")
