from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from flask import Flask, current_app

from .catalog import (
    CLASS_LEVELS,
    SubjectDef,
    active_catalog,
    cycle_for_level,
    duplicate_keys,
)
from .conflicts import ConflictPolicy
from .days import DayConfig, copy_monday_to_others, default_week
from .quotas import quota_summary, remaining_minutes, required_minutes, scheduled_minutes
from .scheduler import AllocationReport, run_autofill, run_complete_fill
from .snapshot import TimetableSnapshot
from .store import BlockStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = "timetable"


class Workspace:
    """The timetable being edited: class level, week, catalog and blocks."""

    def __init__(
        self,
        class_name: str = "CM1",
        days: Sequence[DayConfig] | None = None,
        policy: ConflictPolicy = ConflictPolicy.STRICT,
    ) -> None:
        if class_name not in CLASS_LEVELS:
            raise ValueError(f"Niveau de classe inconnu : {class_name}")
        self.class_name = class_name
        self.custom_subjects: Optional[List[SubjectDef]] = None
        self.store = BlockStore(days if days is not None else default_week(), policy=policy)

    @property
    def days(self) -> List[DayConfig]:
        return list(self.store.days)

    @property
    def cycle(self) -> str:
        return cycle_for_level(self.class_name)

    @property
    def subjects(self) -> List[SubjectDef]:
        return active_catalog(self.class_name, self.custom_subjects)

    def set_class_name(self, class_name: str) -> None:
        if class_name not in CLASS_LEVELS:
            raise ValueError(f"Niveau de classe inconnu : {class_name}")
        self.class_name = class_name

    def set_days(self, days: Sequence[DayConfig]) -> None:
        self.store.set_days(days)

    def copy_monday_to_others(self) -> None:
        self.store.set_days(copy_monday_to_others(self.store.days))

    def set_custom_subjects(self, subjects: Sequence[SubjectDef] | None) -> None:
        if subjects is not None:
            duplicates = duplicate_keys(subjects)
            if duplicates:
                raise ValueError(f"Clés de matières dupliquées : {', '.join(duplicates)}")
            subjects = list(subjects)
        self.custom_subjects = subjects

    def autofill(self) -> AllocationReport:
        return run_autofill(self.store, self.subjects, self.cycle)

    def complete_fill(self) -> AllocationReport:
        return run_complete_fill(self.store, self.subjects, self.cycle)

    def quotas(self) -> dict[str, object]:
        blocks = self.store.blocks
        return {
            "required": required_minutes(self.subjects),
            "scheduled": scheduled_minutes(blocks),
            "remaining": remaining_minutes(self.subjects, blocks),
            "subjects": quota_summary(self.subjects, blocks),
        }

    def snapshot(self, name: str | None = None) -> TimetableSnapshot:
        return TimetableSnapshot(
            class_name=self.class_name,
            days=self.days,
            blocks=self.store.blocks,
            subjects=self.subjects,
            name=name,
            custom_subjects=self.custom_subjects,
        )

    def restore(self, snapshot: TimetableSnapshot) -> None:
        """Replace the whole state with an already validated snapshot."""

        self.class_name = snapshot.class_name
        self.custom_subjects = snapshot.custom_subjects
        self.store.set_days(snapshot.days)
        self.store.replace_all(snapshot.blocks)
        logger.info(
            "Restored timetable %s (%s blocks)", snapshot.name or "-", len(snapshot.blocks)
        )


def init_workspace(app: Flask) -> Workspace:
    workspace = Workspace(
        class_name=app.config.get("DEFAULT_CLASS_LEVEL", "CM1"),
        policy=ConflictPolicy.from_value(app.config.get("CONFLICT_POLICY")),
    )
    app.extensions[EXTENSION_KEY] = workspace
    return workspace


def get_workspace() -> Workspace:
    return current_app.extensions[EXTENSION_KEY]
