from __future__ import annotations

import enum
from typing import Iterable, Mapping

from .days import DayConfig, is_inside_day, is_inside_teaching, touches_recess
from .timeutils import intervals_overlap


class ConflictPolicy(enum.Enum):
    """Placement rules applied by the conflict checker.

    ``STRICT`` keeps blocks inside teaching intervals, away from recesses and
    from each other. ``DAY_BOUNDS`` only requires the day bounds but still
    refuses overlapping blocks. ``PERMISSIVE`` requires the day bounds only.
    """

    STRICT = "strict"
    DAY_BOUNDS = "day_bounds"
    PERMISSIVE = "permissive"

    @classmethod
    def from_value(cls, raw: str | ConflictPolicy | None) -> ConflictPolicy:
        if isinstance(raw, cls):
            return raw
        if not raw:
            return cls.STRICT
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Politique de placement inconnue : {raw}") from None

    @property
    def checks_teaching_hours(self) -> bool:
        return self is ConflictPolicy.STRICT

    @property
    def checks_block_overlap(self) -> bool:
        return self is not ConflictPolicy.PERMISSIVE

    @property
    def auto_repair(self) -> bool:
        # Relaxed variants move a rejected drop to the nearest free start.
        return self is not ConflictPolicy.STRICT


class ConflictReason(enum.Enum):
    DAY_DISABLED = "day_disabled"
    INVERTED_INTERVAL = "inverted_interval"
    OUTSIDE_TEACHING_HOURS = "outside_teaching_hours"
    OUTSIDE_DAY_BOUNDS = "outside_day_bounds"
    OVERLAPS_RECESS = "overlaps_recess"
    OVERLAPS_BLOCK = "overlaps_block"

    @property
    def message(self) -> str:
        return CONFLICT_MESSAGES[self]


CONFLICT_MESSAGES: dict[ConflictReason, str] = {
    ConflictReason.DAY_DISABLED: "Jour désactivé.",
    ConflictReason.INVERTED_INTERVAL: "Fin avant début.",
    ConflictReason.OUTSIDE_TEACHING_HOURS: "Hors des heures de classe (cantine ou hors plage).",
    ConflictReason.OUTSIDE_DAY_BOUNDS: "Hors des bornes de la journée.",
    ConflictReason.OVERLAPS_RECESS: "Chevauche une récréation.",
    ConflictReason.OVERLAPS_BLOCK: "Chevauche un autre créneau.",
}


def check_interval(
    days: Mapping[str, DayConfig],
    blocks: Iterable,
    day_key: str,
    start: int,
    end: int,
    *,
    policy: ConflictPolicy = ConflictPolicy.STRICT,
    ignore_id: str | None = None,
) -> ConflictReason | None:
    day = days.get(day_key)
    if day is None or not day.enabled:
        return ConflictReason.DAY_DISABLED
    if end <= start:
        return ConflictReason.INVERTED_INTERVAL
    if policy.checks_teaching_hours:
        if not is_inside_teaching(day, start, end):
            return ConflictReason.OUTSIDE_TEACHING_HOURS
        if touches_recess(day, start, end):
            return ConflictReason.OVERLAPS_RECESS
    elif not is_inside_day(day, start, end):
        return ConflictReason.OUTSIDE_DAY_BOUNDS
    if policy.checks_block_overlap:
        for other in blocks:
            if other.day != day_key or (ignore_id is not None and other.id == ignore_id):
                continue
            if intervals_overlap(start, end, other.start_minutes, other.end_minutes):
                return ConflictReason.OVERLAPS_BLOCK
    return None


def suggest_placement_fix(reason: ConflictReason | None) -> list[str]:
    if reason is None:
        return []
    suggestions = {
        ConflictReason.DAY_DISABLED: [
            "Activez ce jour dans la configuration ou déposez la séance sur un jour travaillé.",
        ],
        ConflictReason.INVERTED_INTERVAL: [
            "Vérifiez les horaires : la fin doit être postérieure au début.",
        ],
        ConflictReason.OUTSIDE_TEACHING_HOURS: [
            "Placez la séance entièrement le matin ou entièrement l'après-midi, hors de la pause méridienne.",
        ],
        ConflictReason.OUTSIDE_DAY_BOUNDS: [
            "Rapprochez la séance des horaires de la journée ou élargissez ces horaires.",
        ],
        ConflictReason.OVERLAPS_RECESS: [
            "Décalez la séance avant ou après la récréation, ou raccourcissez-la.",
        ],
        ConflictReason.OVERLAPS_BLOCK: [
            "Déplacez ou raccourcissez la séance existante pour libérer le créneau.",
        ],
    }
    return list(suggestions[reason])
