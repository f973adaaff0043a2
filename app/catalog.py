from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, List, Sequence

CLASS_LEVELS: tuple[str, ...] = ("CP", "CE1", "CE2", "CM1", "CM2")

CYCLE_2 = "C2"
CYCLE_3 = "C3"

CLASS_TO_CYCLE: dict[str, str] = {
    "CP": CYCLE_2,
    "CE1": CYCLE_2,
    "CE2": CYCLE_2,
    "CM1": CYCLE_3,
    "CM2": CYCLE_3,
}


@dataclass(frozen=True)
class SubjectDef:
    key: str
    label: str
    minutes: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


# Weekly volumes excluding recess time.
SUBJECTS: dict[str, tuple[SubjectDef, ...]] = {
    CYCLE_2: (
        SubjectDef("fr", "Français", 9 * 60 + 10),
        SubjectDef("maths", "Mathématiques", 4 * 60 + 35),
        SubjectDef("lv", "Langues vivantes", 1 * 60 + 20),
        SubjectDef("eps", "EPS", 2 * 60 + 45),
        SubjectDef("arts", "Arts", 1 * 60 + 50),
        SubjectDef("qlm_emc", "QLM + EMC", 2 * 60 + 20),
    ),
    CYCLE_3: (
        SubjectDef("fr", "Français", 7 * 60 + 20),
        SubjectDef("maths", "Mathématiques", 4 * 60 + 35),
        SubjectDef("lv", "Langues vivantes", 1 * 60 + 20),
        SubjectDef("eps", "EPS", 2 * 60 + 45),
        SubjectDef("sciences", "Sciences & techno", 1 * 60 + 50),
        SubjectDef("arts", "Arts", 1 * 60 + 50),
        SubjectDef("hg_emc", "Histoire-Géo + EMC", 2 * 60 + 20),
    ),
}


def cycle_for_level(level: str) -> str:
    try:
        return CLASS_TO_CYCLE[level]
    except KeyError:
        raise ValueError(f"Niveau de classe inconnu : {level}") from None


def default_catalog(cycle: str) -> List[SubjectDef]:
    return list(SUBJECTS[cycle])


def active_catalog(
    level: str, custom: Sequence[SubjectDef] | None = None
) -> List[SubjectDef]:
    """Return the subjects in force for ``level``.

    A custom catalog replaces the cycle default entirely, even when it is
    shorter or uses other keys.
    """

    if custom is not None:
        return list(custom)
    return default_catalog(cycle_for_level(level))


def duplicate_keys(subjects: Iterable[SubjectDef]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for subject in subjects:
        if subject.key in seen and subject.key not in duplicates:
            duplicates.append(subject.key)
        seen.add(subject.key)
    return duplicates


def subject_label(subjects: Iterable[SubjectDef], key: str) -> str:
    for subject in subjects:
        if subject.key == key:
            return subject.label
    return key
