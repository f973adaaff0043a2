"""Adapter around an external timetable generator whose output is untrusted.

The generator itself (typically a language model client) is injected through
the ``ASSIST_GENERATOR`` setting: a callable receiving the prompt payload and
returning ``{"blocks": [...]}`` or a bare list of block dicts. Nothing it
returns reaches the block store without going through the conflict checker.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Sequence

from .catalog import SubjectDef
from .conflicts import ConflictReason
from .days import DAY_KEYS, DayConfig, ordered_enabled_days, recess_intervals
from .store import Block, BlockDraft, BlockStore
from .timeutils import minutes_to_hm, to_clock

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 45.0

FULL = "full"
COMPLETE = "complete"
MODES = (FULL, COMPLETE)

DAY_NAME_TO_KEY: dict[str, str] = {
    "lundi": "Mon",
    "monday": "Mon",
    "mon": "Mon",
    "mardi": "Tue",
    "tuesday": "Tue",
    "tue": "Tue",
    "mercredi": "Wed",
    "wednesday": "Wed",
    "wed": "Wed",
    "jeudi": "Thu",
    "thursday": "Thu",
    "thu": "Thu",
    "vendredi": "Fri",
    "friday": "Fri",
    "fri": "Fri",
}

UNKNOWN_SUBJECT = "unknown_subject"
INVALID_TIME = "invalid_time"

DROP_MESSAGES = {
    UNKNOWN_SUBJECT: "Matière absente du programme.",
    INVALID_TIME: "Horaire illisible (H:MM attendu).",
}

_CLOCK_LIKE = re.compile(r"^(\d{1,2})(?:\s*[:hH]\s*(\d{2})?)?$")

Generator = Callable[[dict[str, Any]], Any]


class AssistError(RuntimeError):
    """Raised when the external generator fails or answers nonsense."""


class AssistTimeout(AssistError):
    """Raised when the external generator does not answer in time."""


@dataclass
class DroppedCandidate:
    draft: BlockDraft
    reason: str

    @property
    def message(self) -> str:
        try:
            return ConflictReason(self.reason).message
        except ValueError:
            return DROP_MESSAGES.get(self.reason, self.reason)

    def as_dict(self) -> dict[str, object]:
        return {
            "day": self.draft.day,
            "subject": self.draft.subject,
            "start": self.draft.start,
            "end": self.draft.end,
            "reason": self.reason,
            "message": self.message,
        }


@dataclass
class AssistResult:
    mode: str
    accepted: List[Block] = field(default_factory=list)
    dropped: List[DroppedCandidate] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode,
            "created": len(self.accepted),
            "blocks": [block.to_dict() for block in self.accepted],
            "dropped": [item.as_dict() for item in self.dropped],
        }


def strip_accents_lower(value: str | None) -> str:
    decomposed = unicodedata.normalize("NFD", value or "")
    return "".join(char for char in decomposed if not unicodedata.combining(char)).lower().strip()


def normalise_day_name(value: str | None) -> str | None:
    cleaned = strip_accents_lower(value)
    if cleaned in DAY_NAME_TO_KEY:
        return DAY_NAME_TO_KEY[cleaned]
    for key in DAY_KEYS:
        if key.lower() == cleaned:
            return key
    return None


def normalise_subject_key(value: str | None, catalog: Sequence[SubjectDef]) -> str | None:
    if not value:
        return None
    for subject in catalog:
        if subject.key == value:
            return subject.key
    cleaned = strip_accents_lower(value)
    for subject in catalog:
        if strip_accents_lower(subject.key) == cleaned or strip_accents_lower(subject.label) == cleaned:
            return subject.key
    return None


def normalise_clock(value: str | None) -> str | None:
    """Coerce loose time strings (``8h30``, ``08:30``, ``8``) to ``H:MM``.

    Returns ``None`` when the value is not a time of day, e.g. ``9:5`` or ``8:75``.
    """

    if value is None:
        return None
    text = str(value).strip()
    match = _CLOCK_LIKE.match(text)
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    if hours > 23 or minutes > 59:
        return None
    return to_clock(hours * 60 + minutes)


def build_prompt(
    class_name: str,
    cycle: str,
    days: Sequence[DayConfig],
    catalog: Sequence[SubjectDef],
    blocks: Sequence[Block] = (),
    mode: str = FULL,
) -> dict[str, Any]:
    """Describe the week to the generator, as text and as structured data."""

    enabled = ordered_enabled_days(days)
    reference = enabled[0] if enabled else None
    subject_list = ", ".join(
        f'{subject.key}: "{subject.label}" ({minutes_to_hm(subject.minutes)})'
        for subject in catalog
    )
    day_keys = ", ".join(day.key for day in enabled)
    subject_keys = ", ".join(subject.key for subject in catalog)
    occupied = ", ".join(
        f"{block.day} {block.start}-{block.end}: {block.subject}" for block in blocks
    )

    lines = [
        "Tu es un expert en pédagogie française. "
        + (
            f"Crée un emploi du temps optimal pour une classe de {class_name} ({cycle})."
            if mode == FULL
            else f"Complète intelligemment cet emploi du temps de {class_name} ({cycle})."
        ),
        "",
    ]
    if mode == COMPLETE:
        lines += [f"CRÉNEAUX DÉJÀ OCCUPÉS : {occupied or 'Aucun'}", ""]
    lines += [
        "CONTRAINTES :",
        f"- Respecter les volumes horaires : {subject_list}",
        f"- Jours (clés à utiliser) : {day_keys}",
    ]
    if reference is not None:
        (first_start, first_end), (second_start, second_end) = recess_intervals(reference)
        lines += [
            f"- Horaires : {reference.morning_start} - {reference.day_end}",
            f"- Récréations : {to_clock(first_start)}-{to_clock(first_end)} "
            f"et {to_clock(second_start)}-{to_clock(second_end)}",
            f"- Cantine : {reference.lunch_start}-{reference.lunch_end}",
        ]
    lines += [
        "",
        f"Utilise EXACTEMENT ces clés de matières : {subject_keys}",
        f"Utilise EXACTEMENT ces clés de jours : {day_keys}",
        'FORMAT DE SORTIE : {"blocks": [{"day": "Mon", "subject": "fr", '
        '"start": "08:30", "end": "09:30", "subtitle": ""}]}',
    ]
    if mode == COMPLETE:
        lines.append("Génère UNIQUEMENT les nouveaux créneaux à ajouter.")

    return {
        "mode": mode,
        "prompt": "\n".join(lines),
        "class_name": class_name,
        "cycle": cycle,
        "days": [day.to_dict() for day in enabled],
        "subjects": [subject.to_dict() for subject in catalog],
        "occupied": [block.to_dict() for block in blocks] if mode == COMPLETE else [],
    }


def extract_candidates(response: Any) -> list[dict[str, str]]:
    """Check the overall shape of a generator response.

    A response with any malformed entry is refused as a whole; semantic
    problems (wrong day, overlaps...) are handled later, candidate by candidate.
    """

    items = response.get("blocks") if isinstance(response, dict) else response
    if not isinstance(items, list):
        raise AssistError("Réponse de l'assistant invalide : liste de créneaux attendue.")
    candidates: list[dict[str, str]] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise AssistError(f"Réponse de l'assistant invalide : créneau {index} mal formé.")
        for name in ("day", "subject", "start", "end"):
            if not isinstance(item.get(name), str):
                raise AssistError(
                    f"Réponse de l'assistant invalide : champ '{name}' manquant pour le créneau {index}."
                )
        subtitle = item.get("subtitle")
        candidates.append(
            {
                "day": item["day"],
                "subject": item["subject"],
                "start": item["start"],
                "end": item["end"],
                "subtitle": subtitle if isinstance(subtitle, str) else "",
            }
        )
    return candidates


def review_candidates(
    candidates: Iterable[dict[str, str]],
    store: BlockStore,
    catalog: Sequence[SubjectDef],
    base_blocks: Sequence[Block] = (),
    mode: str = COMPLETE,
) -> AssistResult:
    """Normalise candidates and keep only those the conflict checker accepts.

    Candidates are checked against ``base_blocks`` plus the candidates already
    accepted, on a scratch store sharing the real store's week and policy.
    """

    scratch = BlockStore(store.days, policy=store.policy, id_factory=store.id_factory)
    scratch.replace_all(base_blocks)
    result = AssistResult(mode=mode)
    for raw in candidates:
        day_key = normalise_day_name(raw.get("day")) or str(raw.get("day"))
        subject = normalise_subject_key(raw.get("subject"), catalog)
        start = normalise_clock(raw.get("start"))
        end = normalise_clock(raw.get("end"))
        draft = BlockDraft(
            day=day_key,
            subject=subject or str(raw.get("subject")),
            start=start or str(raw.get("start")),
            end=end or str(raw.get("end")),
            subtitle=raw.get("subtitle") or "",
        )
        if subject is None:
            result.dropped.append(DroppedCandidate(draft, UNKNOWN_SUBJECT))
            continue
        if start is None or end is None:
            result.dropped.append(DroppedCandidate(draft, INVALID_TIME))
            continue
        outcome = scratch.add_block(draft, repair=False)
        if outcome.block is None:
            result.dropped.append(DroppedCandidate(draft, outcome.reason.value))
            continue
        result.accepted.append(outcome.block)
    if result.dropped:
        logger.info(
            "Dropped %s assist candidate(s): %s",
            len(result.dropped),
            [item.as_dict() for item in result.dropped],
        )
    return result


def request_blocks(
    generator: Generator, prompt: dict[str, Any], timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> list[dict[str, str]]:
    """Call ``generator`` in a worker thread and give up after ``timeout`` seconds.

    The worker is not interrupted on timeout; its eventual result is ignored.
    """

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="assist")
    try:
        future = executor.submit(generator, prompt)
        try:
            response = future.result(timeout=timeout)
        except FutureTimeoutError:
            raise AssistTimeout("Temps d'attente dépassé pour la génération.") from None
        except AssistError:
            raise
        except Exception as exc:
            logger.exception("Assist generator failed")
            raise AssistError("Erreur lors de la génération automatique.") from exc
    finally:
        executor.shutdown(wait=False)
    return extract_candidates(response)


def commit_candidates(
    workspace, candidates: Iterable[dict[str, str]], mode: str = COMPLETE
) -> AssistResult:
    """Review ``candidates`` against the workspace and commit the accepted ones.

    In ``full`` mode the week is rebuilt from scratch and swapped in only when
    at least one candidate survived; in ``complete`` mode accepted candidates
    are added next to the existing blocks.
    """

    if mode not in MODES:
        raise ValueError(f"Mode de génération inconnu : {mode}")
    store = workspace.store
    base = store.blocks if mode == COMPLETE else []
    result = review_candidates(candidates, store, workspace.subjects, base, mode)
    if mode == FULL:
        if not result.accepted:
            raise AssistError("Aucun créneau proposé n'a pu être retenu.")
        store.replace_all(result.accepted)
    elif result.accepted:
        store.extend(result.accepted)
    return result


def run_assist(
    workspace,
    generator: Generator,
    mode: str = FULL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> AssistResult:
    """Ask the generator for blocks and commit the accepted ones.

    The block store is only modified once the generator has answered and the
    candidates were reviewed; a failure or timeout leaves it untouched.
    """

    if mode not in MODES:
        raise ValueError(f"Mode de génération inconnu : {mode}")
    base = workspace.store.blocks if mode == COMPLETE else []
    prompt = build_prompt(
        workspace.class_name, workspace.cycle, workspace.store.days, workspace.subjects, base, mode
    )
    candidates = request_blocks(generator, prompt, timeout)
    return commit_candidates(workspace, candidates, mode)
