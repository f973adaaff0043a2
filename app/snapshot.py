"""Serialisable timetable state and its validation at the persistence boundary."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .catalog import CLASS_LEVELS, SubjectDef, active_catalog, cycle_for_level, default_catalog
from .conflicts import ConflictPolicy
from .days import DAY_KEYS, DayConfig
from .store import Block
from .timeutils import is_clock, to_minutes

DAY_TIME_FIELDS = ("morning_start", "lunch_start", "lunch_end", "day_end", "rec1_start", "rec2_start")
DAY_DURATION_FIELDS = ("rec1_dur", "rec2_dur")


class SnapshotError(ValueError):
    """Raised when a stored or submitted timetable cannot be restored."""

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("Format de sauvegarde invalide : " + "; ".join(self.problems))


@dataclass
class TimetableSnapshot:
    class_name: str
    days: List[DayConfig]
    blocks: List[Block]
    subjects: List[SubjectDef]
    name: Optional[str] = None
    custom_subjects: Optional[List[SubjectDef]] = field(default=None, repr=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "class_name": self.class_name,
            "days_config": [day.to_dict() for day in self.days],
            "blocks": [block.to_dict() for block in self.blocks],
            "subjects": [subject.to_dict() for subject in self.subjects],
        }
        if self.name:
            payload["name"] = self.name
        return payload


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_clock(problems: list[str], where: str, value: object) -> None:
    if not is_clock(value):
        problems.append(f"{where} : horaire H:MM attendu (reçu {value!r})")


def _check_string(problems: list[str], where: str, value: object, *, required: bool = True) -> None:
    if value is None and not required:
        return
    if not isinstance(value, str):
        problems.append(f"{where} : texte attendu")


def _validate_day(problems: list[str], index: int, raw: object) -> None:
    where = f"days_config[{index}]"
    if not isinstance(raw, dict):
        problems.append(f"{where} : objet attendu")
        return
    if raw.get("key") not in DAY_KEYS:
        problems.append(f"{where}.key : jour inconnu ({raw.get('key')!r})")
    _check_string(problems, f"{where}.label", raw.get("label"))
    if not isinstance(raw.get("enabled"), bool):
        problems.append(f"{where}.enabled : booléen attendu")
    for name in DAY_TIME_FIELDS:
        _check_clock(problems, f"{where}.{name}", raw.get(name))
    for name in DAY_DURATION_FIELDS:
        value = raw.get(name)
        if not _is_int(value) or value < 0:
            problems.append(f"{where}.{name} : entier positif attendu")


def _validate_subject(problems: list[str], index: int, raw: object) -> None:
    where = f"subjects[{index}]"
    if not isinstance(raw, dict):
        problems.append(f"{where} : objet attendu")
        return
    _check_string(problems, f"{where}.key", raw.get("key"))
    _check_string(problems, f"{where}.label", raw.get("label"))
    minutes = raw.get("minutes")
    if not _is_int(minutes) or minutes < 0:
        problems.append(f"{where}.minutes : entier positif attendu")


def _validate_block(problems: list[str], index: int, raw: object) -> None:
    where = f"blocks[{index}]"
    if not isinstance(raw, dict):
        problems.append(f"{where} : objet attendu")
        return
    _check_string(problems, f"{where}.id", raw.get("id"))
    if raw.get("day") not in DAY_KEYS:
        problems.append(f"{where}.day : jour inconnu ({raw.get('day')!r})")
    _check_string(problems, f"{where}.subject", raw.get("subject"))
    _check_clock(problems, f"{where}.start", raw.get("start"))
    _check_clock(problems, f"{where}.end", raw.get("end"))
    start, end = raw.get("start"), raw.get("end")
    if is_clock(start) and is_clock(end) and to_minutes(end) <= to_minutes(start):
        problems.append(f"{where} : la fin ({end}) doit suivre le début ({start})")
    _check_string(problems, f"{where}.subtitle", raw.get("subtitle"), required=False)


def validate_payload(payload: object) -> list[str]:
    """Return every problem found in ``payload``; an empty list means valid."""

    if not isinstance(payload, dict):
        return ["la sauvegarde doit être un objet"]
    problems: list[str] = []
    name = payload.get("name")
    if name is not None and (not isinstance(name, str) or not name.strip()):
        problems.append("name : nom non vide attendu")
    if payload.get("class_name") not in CLASS_LEVELS:
        problems.append(f"class_name : niveau inconnu ({payload.get('class_name')!r})")

    sections = (
        ("days_config", _validate_day),
        ("subjects", _validate_subject),
        ("blocks", _validate_block),
    )
    for key, validator in sections:
        items = payload.get(key)
        if not isinstance(items, list):
            problems.append(f"{key} : liste attendue")
            continue
        for index, item in enumerate(items):
            validator(problems, index, item)

    if not problems:
        day_keys = [day["key"] for day in payload["days_config"]]
        if len(set(day_keys)) != len(day_keys):
            problems.append("days_config : jour dupliqué")
        subject_keys = [subject["key"] for subject in payload["subjects"]]
        if len(set(subject_keys)) != len(subject_keys):
            problems.append("subjects : clé de matière dupliquée")
        block_ids = [block["id"] for block in payload["blocks"]]
        if len(set(block_ids)) != len(block_ids):
            problems.append("blocks : identifiant dupliqué")
    return problems


def _day_from_dict(raw: dict[str, Any]) -> DayConfig:
    return DayConfig(
        key=raw["key"],
        label=raw["label"],
        enabled=raw["enabled"],
        **{name: raw[name] for name in DAY_TIME_FIELDS + DAY_DURATION_FIELDS},
    )


def _subject_from_dict(raw: dict[str, Any]) -> SubjectDef:
    return SubjectDef(key=raw["key"], label=raw["label"], minutes=raw["minutes"])


def parse_days(items: object) -> List[DayConfig]:
    """Validate a ``days_config`` list on its own, as sent by the settings form."""

    if not isinstance(items, list):
        raise SnapshotError(["days_config : liste attendue"])
    problems: list[str] = []
    for index, item in enumerate(items):
        _validate_day(problems, index, item)
    if not problems:
        day_keys = [day["key"] for day in items]
        if len(set(day_keys)) != len(day_keys):
            problems.append("days_config : jour dupliqué")
    if problems:
        raise SnapshotError(problems)
    return [_day_from_dict(raw) for raw in items]


def parse_subjects(items: object) -> List[SubjectDef]:
    if not isinstance(items, list):
        raise SnapshotError(["subjects : liste attendue"])
    problems: list[str] = []
    for index, item in enumerate(items):
        _validate_subject(problems, index, item)
    if not problems:
        subject_keys = [subject["key"] for subject in items]
        if len(set(subject_keys)) != len(subject_keys):
            problems.append("subjects : clé de matière dupliquée")
    if problems:
        raise SnapshotError(problems)
    return [_subject_from_dict(raw) for raw in items]


def _overlap_problems(blocks: List[Block]) -> list[str]:
    problems: list[str] = []
    latest: dict[str, Block] = {}
    for block in sorted(blocks, key=lambda item: (item.day, item.start_minutes)):
        previous = latest.get(block.day)
        if previous is not None and block.start_minutes < previous.end_minutes:
            problems.append(
                f"blocks : chevauchement le {block.day} entre {previous.start}-{previous.end}"
                f" et {block.start}-{block.end}"
            )
        if previous is None or block.end_minutes > previous.end_minutes:
            latest[block.day] = block
    return problems


def parse_payload(
    payload: object, policy: ConflictPolicy = ConflictPolicy.STRICT
) -> TimetableSnapshot:
    """Validate and load ``payload``; blocks must not overlap unless ``policy`` allows it."""

    problems = validate_payload(payload)
    if problems:
        raise SnapshotError(problems)

    class_name = payload["class_name"]
    days = [_day_from_dict(raw) for raw in payload["days_config"]]
    subjects = [_subject_from_dict(raw) for raw in payload["subjects"]]
    blocks = [
        Block(
            id=raw["id"],
            day=raw["day"],
            subject=raw["subject"],
            start=raw["start"],
            end=raw["end"],
            subtitle=raw.get("subtitle") or "",
        )
        for raw in payload["blocks"]
    ]
    if policy.checks_block_overlap:
        overlaps = _overlap_problems(blocks)
        if overlaps:
            raise SnapshotError(overlaps)
    # A save of the untouched cycle catalog restores as "no custom catalog".
    custom = None if subjects == default_catalog(cycle_for_level(class_name)) else subjects
    return TimetableSnapshot(
        class_name=class_name,
        days=days,
        blocks=blocks,
        subjects=active_catalog(class_name, custom),
        name=payload.get("name"),
        custom_subjects=custom,
    )
