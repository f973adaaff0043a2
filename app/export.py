from __future__ import annotations

from datetime import date
from typing import List, Sequence

from .catalog import SubjectDef, subject_label
from .days import DayConfig, ordered_enabled_days, recess_intervals
from .quotas import quota_summary
from .store import Block
from .timeutils import minutes_to_hm, to_clock


def _blocks_can_chain(previous: Block, current: Block) -> bool:
    if previous.day != current.day:
        return False
    if previous.subject != current.subject:
        return False
    if (previous.subtitle or "") != (current.subtitle or ""):
        return False
    return previous.end_minutes == current.start_minutes


def _build_item(group: List[Block], catalog: Sequence[SubjectDef]) -> dict[str, object]:
    first = group[0]
    last = group[-1]
    duration = sum(max(0, block.duration) for block in group)
    return {
        "ids": [block.id for block in group],
        "subject": first.subject,
        "label": subject_label(catalog, first.subject),
        "subtitle": first.subtitle or "",
        "start": to_clock(first.start_minutes),
        "end": to_clock(last.end_minutes),
        "duration": duration,
        "duration_label": minutes_to_hm(duration),
        "segments": [
            {"id": block.id, "start": block.start, "end": block.end} for block in group
        ],
    }


def blocks_to_items(blocks: Sequence[Block], catalog: Sequence[SubjectDef]) -> list[dict[str, object]]:
    """Merge back-to-back blocks of the same lesson into one printable item."""

    ordered = sorted(blocks, key=lambda block: (block.start_minutes, block.end_minutes))
    items: list[dict[str, object]] = []
    group: list[Block] = []
    for block in ordered:
        if group and not _blocks_can_chain(group[-1], block):
            items.append(_build_item(group, catalog))
            group = []
        group.append(block)
    if group:
        items.append(_build_item(group, catalog))
    return items


def export_payload(
    days: Sequence[DayConfig],
    blocks: Sequence[Block],
    catalog: Sequence[SubjectDef],
    *,
    class_name: str,
    title: str | None = None,
) -> dict[str, object]:
    columns: list[dict[str, object]] = []
    for day in ordered_enabled_days(days):
        day_blocks = [block for block in blocks if block.day == day.key]
        columns.append(
            {
                "key": day.key,
                "label": day.label,
                "start": day.morning_start,
                "end": day.day_end,
                "lunch": {"start": day.lunch_start, "end": day.lunch_end},
                "recesses": [
                    {"start": to_clock(start), "end": to_clock(end)}
                    for start, end in recess_intervals(day)
                    if end > start
                ],
                "items": blocks_to_items(day_blocks, catalog),
                "total_label": minutes_to_hm(sum(max(0, block.duration) for block in day_blocks)),
            }
        )
    return {
        "title": title or f"Emploi_du_temps_{class_name}_{date.today().isoformat()}",
        "class_name": class_name,
        "days": columns,
        "quotas": quota_summary(catalog, blocks),
    }
