from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Iterable, List

from .timeutils import intervals_overlap, to_minutes

DAY_KEYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri")

DAY_LABELS: dict[str, str] = {
    "Mon": "Lundi",
    "Tue": "Mardi",
    "Wed": "Mercredi",
    "Thu": "Jeudi",
    "Fri": "Vendredi",
}

MORNING = "AM"
AFTERNOON = "PM"
HALF_DAYS: tuple[str, ...] = (MORNING, AFTERNOON)

# Fields copied from Monday by copy_monday_to_others ("enabled" is left alone).
SCHEDULE_FIELDS: tuple[str, ...] = (
    "morning_start",
    "lunch_start",
    "lunch_end",
    "day_end",
    "rec1_start",
    "rec1_dur",
    "rec2_start",
    "rec2_dur",
)


@dataclass
class DayConfig:
    key: str
    label: str
    enabled: bool = True
    morning_start: str = "08:30"
    lunch_start: str = "12:00"
    lunch_end: str = "13:30"
    day_end: str = "16:30"
    rec1_start: str = "10:15"
    rec1_dur: int = 15
    rec2_start: str = "15:00"
    rec2_dur: int = 15

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def default_week() -> List[DayConfig]:
    return [
        DayConfig(key=key, label=DAY_LABELS[key], enabled=key != "Wed")
        for key in DAY_KEYS
    ]


def day_index(days: Iterable[DayConfig]) -> dict[str, DayConfig]:
    return {day.key: day for day in days}


def ordered_enabled_days(days: Iterable[DayConfig]) -> List[DayConfig]:
    lookup = day_index(days)
    return [lookup[key] for key in DAY_KEYS if key in lookup and lookup[key].enabled]


def recess_intervals(day: DayConfig) -> list[tuple[int, int]]:
    first_start = to_minutes(day.rec1_start)
    second_start = to_minutes(day.rec2_start)
    return [
        (first_start, first_start + (day.rec1_dur or 0)),
        (second_start, second_start + (day.rec2_dur or 0)),
    ]


def teaching_intervals(day: DayConfig) -> list[tuple[int, int]]:
    morning_start = to_minutes(day.morning_start)
    lunch_start = to_minutes(day.lunch_start)
    lunch_end = to_minutes(day.lunch_end)
    day_end = to_minutes(day.day_end)
    intervals: list[tuple[int, int]] = []
    if morning_start < lunch_start:
        intervals.append((morning_start, lunch_start))
    if lunch_end < day_end:
        intervals.append((lunch_end, day_end))
    return intervals


def day_bounds(day: DayConfig) -> tuple[int, int]:
    return to_minutes(day.morning_start), to_minutes(day.day_end)


def half_day_bounds(day: DayConfig, part: str) -> tuple[int, int]:
    if part == MORNING:
        return to_minutes(day.morning_start), to_minutes(day.lunch_start)
    return to_minutes(day.lunch_end), to_minutes(day.day_end)


def touches_recess(day: DayConfig, start: int, end: int) -> bool:
    return any(
        intervals_overlap(start, end, recess_start, recess_end)
        for recess_start, recess_end in recess_intervals(day)
    )


def is_inside_teaching(day: DayConfig, start: int, end: int) -> bool:
    return any(
        window_start <= start and end <= window_end
        for window_start, window_end in teaching_intervals(day)
    )


def is_inside_day(day: DayConfig, start: int, end: int) -> bool:
    first, last = day_bounds(day)
    return first <= start and end <= last


def copy_monday_to_others(days: Iterable[DayConfig]) -> List[DayConfig]:
    """Return a new week where every day uses Monday's hours and recesses."""

    week = list(days)
    monday = next((day for day in week if day.key == "Mon"), None)
    if monday is None:
        raise ValueError("Jour 'Lundi' introuvable")
    fields = {name: getattr(monday, name) for name in SCHEDULE_FIELDS}
    return [day if day.key == "Mon" else replace(day, **fields) for day in week]
