from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .catalog import SubjectDef, subject_label
from .days import (
    AFTERNOON,
    HALF_DAYS,
    MORNING,
    DayConfig,
    half_day_bounds,
    ordered_enabled_days,
    recess_intervals,
)
from .quotas import remaining_minutes
from .store import Block, BlockDraft, BlockStore
from .timeutils import SNAP_MINUTES, floor_to_grid, minutes_to_hm, to_clock

logger = logging.getLogger(__name__)

# Shortest block the allocator will ever place, and shortest usable free window.
MIN_PLACEABLE_MINUTES = 15

DEFAULT_CHUNK = 60
DEFAULT_MIN_CHUNK = 30

CHUNK: dict[str, int] = {
    "fr": 60,
    "maths": 60,
    "lv": 45,
    "eps": 60,
    "arts": 60,
    "qlm_emc": 60,
    "sciences": 60,
    "hg_emc": 60,
}

MIN_CHUNK: dict[str, int] = {
    "fr": 30,
    "maths": 30,
    "lv": 30,
    "eps": 45,
    "arts": 30,
    "qlm_emc": 30,
    "sciences": 30,
    "hg_emc": 30,
}

PATTERN: dict[str, dict[str, dict[str, tuple[str, ...]]]] = {
    "C2": {
        "Mon": {MORNING: ("fr", "maths"), AFTERNOON: ("qlm_emc", "arts", "eps")},
        "Tue": {MORNING: ("fr", "maths", "lv"), AFTERNOON: ("eps", "fr", "qlm_emc")},
        "Wed": {MORNING: ("fr", "maths"), AFTERNOON: ("arts", "qlm_emc")},
        "Thu": {MORNING: ("fr", "maths", "lv"), AFTERNOON: ("eps", "qlm_emc", "arts")},
        "Fri": {MORNING: ("fr", "maths"), AFTERNOON: ("arts", "qlm_emc")},
    },
    "C3": {
        "Mon": {MORNING: ("fr", "maths"), AFTERNOON: ("hg_emc", "arts")},
        "Tue": {MORNING: ("fr", "maths", "lv"), AFTERNOON: ("eps", "sciences")},
        "Wed": {MORNING: ("fr", "maths"), AFTERNOON: ("arts", "hg_emc")},
        "Thu": {MORNING: ("fr", "maths", "lv"), AFTERNOON: ("eps", "hg_emc")},
        "Fri": {MORNING: ("fr", "maths"), AFTERNOON: ("sciences", "arts")},
    },
}

HALF_DAY_LABELS = {MORNING: "matin", AFTERNOON: "après-midi"}


class AllocationReport:
    """Collect what an allocation run placed and what it had to give up on."""

    LEVELS = {
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def __init__(self, mode: str, catalog: Sequence[SubjectDef] = ()) -> None:
        self.mode = mode
        self.catalog = list(catalog)
        self.entries: list[dict[str, str]] = []
        self.drafts: list[BlockDraft] = []
        self.placed: list[Block] = []
        self.status = "success"
        self.summary: str | None = None

    def info(self, message: str) -> None:
        self._add_entry("info", message)

    def warning(self, message: str) -> None:
        self._add_entry("warning", message)
        if self.status != "error":
            self.status = "warning"

    def draft_placed(self, draft: BlockDraft, day_label: str, part: str) -> None:
        self.drafts.append(draft)
        label = subject_label(self.catalog, draft.subject)
        self.info(
            f"{day_label} {HALF_DAY_LABELS.get(part, part)} : {label} "
            f"{draft.start} → {draft.end} ({minutes_to_hm(draft.duration)})"
        )

    def leftover(self, remaining: dict[str, int]) -> None:
        for subject in self.catalog:
            left = remaining.get(subject.key, 0)
            if left > 0:
                self.warning(
                    f"{subject.label} : {minutes_to_hm(left)} restant(es) sans créneau libre."
                )

    def finalise(self, placed: Iterable[Block]) -> "AllocationReport":
        self.placed = list(placed)
        if self.summary is None:
            created = len(self.placed)
            if not created:
                self.summary = "Aucun espace libre suffisant pour compléter."
            elif self.status == "success":
                self.summary = f"{created} séance(s) générée(s)"
            else:
                self.summary = f"{created} séance(s) générée(s) avec avertissements"
        return self

    @property
    def created(self) -> int:
        return len(self.placed)

    def as_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode,
            "status": self.status,
            "summary": self.summary,
            "created": self.created,
            "blocks": [block.to_dict() for block in self.placed],
            "entries": [dict(entry) for entry in self.entries],
        }

    def _add_entry(self, level: str, message: str) -> None:
        text = message.strip()
        if not text:
            return
        self.entries.append({"level": level, "message": text})
        logger.log(self.LEVELS.get(level, logging.INFO), "[%s] %s", self.mode, text)


class _Rotation:
    """Round-robin over a half-day's subject order, skipping exhausted quotas."""

    def __init__(self, order: Sequence[str]) -> None:
        self.order = list(order)
        self.index = 0

    def next_subject(self, remaining: dict[str, int]) -> str | None:
        for _ in range(len(self.order)):
            key = self.order[self.index % len(self.order)]
            self.index += 1
            if remaining.get(key, 0) > 0:
                return key
        return None


def rotation_order(
    cycle: str, day_key: str, part: str, catalog: Sequence[SubjectDef]
) -> list[str]:
    known = {subject.key for subject in catalog}
    plan = PATTERN.get(cycle, {}).get(day_key, {}).get(part, ())
    order = [key for key in plan if key in known]
    if not order:
        order = [subject.key for subject in catalog]
    return order


def chunk_length(subject: str, remaining: int, space: int) -> int:
    nominal = CHUNK.get(subject, DEFAULT_CHUNK)
    minimum = MIN_CHUNK.get(subject, DEFAULT_MIN_CHUNK)
    length = floor_to_grid(min(nominal, remaining, space))
    if length < minimum and MIN_PLACEABLE_MINUTES <= remaining <= space:
        # A short tail quota goes in as one block instead of being stranded.
        length = floor_to_grid(remaining)
    return length


def subtract_segment(
    windows: Iterable[tuple[int, int]], start: int, end: int
) -> list[tuple[int, int]]:
    result: list[tuple[int, int]] = []
    for window_start, window_end in windows:
        inner_start = max(window_start, start)
        inner_end = min(window_end, end)
        if inner_end <= inner_start:
            result.append((window_start, window_end))
            continue
        if window_start < inner_start:
            result.append((window_start, inner_start))
        if inner_end < window_end:
            result.append((inner_end, window_end))
    return result


def free_windows(
    day: DayConfig, part: str, blocks: Iterable[Block | BlockDraft]
) -> list[tuple[int, int]]:
    start, end = half_day_bounds(day, part)
    windows = [(start, end)]
    for recess_start, recess_end in recess_intervals(day):
        windows = subtract_segment(windows, recess_start, recess_end)
    for block in blocks:
        if block.day != day.key:
            continue
        if block.end_minutes <= start or block.start_minutes >= end:
            continue
        windows = subtract_segment(
            windows, max(start, block.start_minutes), min(end, block.end_minutes)
        )
    return sorted(
        (window for window in windows if window[1] - window[0] >= MIN_PLACEABLE_MINUTES),
        key=lambda window: window[0],
    )


def _advance(
    day: DayConfig,
    part: str,
    cursor: int,
    limit: int,
    subject: str,
    remaining: dict[str, int],
    report: AllocationReport,
) -> int:
    """Place one chunk of ``subject`` at ``cursor``, or step over a gap too small for it."""

    length = chunk_length(subject, remaining[subject], limit - cursor)
    if length < MIN_PLACEABLE_MINUTES:
        return min(limit, cursor + SNAP_MINUTES)
    draft = BlockDraft(
        day=day.key,
        subject=subject,
        start=to_clock(cursor),
        end=to_clock(cursor + length),
    )
    report.draft_placed(draft, day.label, part)
    remaining[subject] -= length
    return cursor + length


def _fill_half_day(
    day: DayConfig,
    part: str,
    rotation: _Rotation,
    remaining: dict[str, int],
    report: AllocationReport,
) -> None:
    start, end = half_day_bounds(day, part)
    recesses = recess_intervals(day)
    cursor = start
    while cursor < end:
        inside = next(
            (recess for recess in recesses if recess[0] <= cursor < recess[1]), None
        )
        if inside is not None:
            cursor = inside[1]
            continue
        next_recess = min(
            (recess_start for recess_start, _ in recesses if recess_start > cursor),
            default=end,
        )
        hard_end = min(next_recess, end)
        if hard_end - cursor < MIN_PLACEABLE_MINUTES:
            break
        subject = rotation.next_subject(remaining)
        if subject is None:
            cursor = hard_end
            continue
        previous = cursor
        cursor = _advance(day, part, cursor, hard_end, subject, remaining, report)
        if cursor == previous:
            break


def _fill_window(
    day: DayConfig,
    part: str,
    window: tuple[int, int],
    rotation: _Rotation,
    remaining: dict[str, int],
    report: AllocationReport,
) -> None:
    cursor, end = window
    while cursor < end:
        subject = rotation.next_subject(remaining)
        if subject is None:
            return
        previous = cursor
        cursor = _advance(day, part, cursor, end, subject, remaining, report)
        if cursor == previous:
            return


def autofill(
    days: Sequence[DayConfig],
    catalog: Sequence[SubjectDef],
    cycle: str,
    report: AllocationReport | None = None,
) -> list[BlockDraft]:
    """Distribute the whole weekly quota of ``catalog`` over an empty week.

    Days are walked Monday to Friday, mornings before afternoons, and each
    half-day left to right, so a given configuration always yields the same
    week.
    """

    report = report or AllocationReport("autofill", catalog)
    remaining = {subject.key: subject.minutes for subject in catalog}
    for day in ordered_enabled_days(days):
        for part in HALF_DAYS:
            rotation = _Rotation(rotation_order(cycle, day.key, part, catalog))
            _fill_half_day(day, part, rotation, remaining, report)
    report.leftover(remaining)
    return list(report.drafts)


def complete_fill(
    days: Sequence[DayConfig],
    catalog: Sequence[SubjectDef],
    cycle: str,
    blocks: Sequence[Block],
    report: AllocationReport | None = None,
) -> list[BlockDraft]:
    """Top up a partially filled week without touching the existing blocks."""

    report = report or AllocationReport("complete", catalog)
    remaining = remaining_minutes(catalog, blocks)
    for day in ordered_enabled_days(days):
        for part in HALF_DAYS:
            rotation = _Rotation(rotation_order(cycle, day.key, part, catalog))
            occupied = [*blocks, *report.drafts]
            for window in free_windows(day, part, occupied):
                _fill_window(day, part, window, rotation, remaining, report)
    report.leftover(remaining)
    return list(report.drafts)


def run_autofill(
    store: BlockStore, catalog: Sequence[SubjectDef], cycle: str
) -> AllocationReport:
    """Generate a full week into a draft, then swap it into ``store``."""

    report = AllocationReport("autofill", catalog)
    drafts = autofill(store.days, catalog, cycle, report)
    placed = [store.materialise(draft) for draft in drafts]
    store.replace_all(placed)
    return report.finalise(placed)


def run_complete_fill(
    store: BlockStore, catalog: Sequence[SubjectDef], cycle: str
) -> AllocationReport:
    report = AllocationReport("complete", catalog)
    drafts = complete_fill(store.days, catalog, cycle, store.blocks, report)
    placed = [store.materialise(draft) for draft in drafts]
    if placed:
        store.extend(placed)
    return report.finalise(placed)
