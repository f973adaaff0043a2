from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from .catalog import SubjectDef
from .timeutils import minutes_to_hm


def required_minutes(catalog: Iterable[SubjectDef]) -> dict[str, int]:
    return {subject.key: subject.minutes for subject in catalog}


def scheduled_minutes(blocks: Iterable) -> dict[str, int]:
    """Weekly minutes already placed per subject, all days together."""

    totals: dict[str, int] = defaultdict(int)
    for block in blocks:
        totals[block.subject] += max(0, block.end_minutes - block.start_minutes)
    return dict(totals)


def remaining_minutes(
    catalog: Sequence[SubjectDef], blocks: Iterable
) -> dict[str, int]:
    scheduled = scheduled_minutes(blocks)
    return {
        subject.key: subject.minutes - scheduled.get(subject.key, 0)
        for subject in catalog
    }


def quota_summary(
    catalog: Sequence[SubjectDef], blocks: Iterable
) -> list[dict[str, object]]:
    scheduled = scheduled_minutes(blocks)
    rows: list[dict[str, object]] = []
    for subject in catalog:
        done = scheduled.get(subject.key, 0)
        remaining = subject.minutes - done
        rows.append(
            {
                "key": subject.key,
                "label": subject.label,
                "required": subject.minutes,
                "scheduled": done,
                "remaining": remaining,
                "required_label": minutes_to_hm(subject.minutes),
                "scheduled_label": minutes_to_hm(done),
                "remaining_label": minutes_to_hm(abs(remaining)),
                "exceeded": remaining < 0,
            }
        )
    return rows
