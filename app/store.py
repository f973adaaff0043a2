from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Callable, Iterable, List, Sequence

from .conflicts import ConflictPolicy, ConflictReason, check_interval
from .days import DayConfig, day_index, ordered_enabled_days
from .timeutils import SNAP_MINUTES, to_clock, to_minutes

logger = logging.getLogger(__name__)

SEARCH_RADIUS_MINUTES = 240

BLOCK_PATCH_FIELDS = frozenset({"day", "subject", "start", "end", "subtitle"})


class _TimedMixin:
    day: str
    start: str
    end: str

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def duration(self) -> int:
        return self.end_minutes - self.start_minutes


@dataclass(frozen=True)
class BlockDraft(_TimedMixin):
    """A candidate placement that has not been given an identifier yet."""

    day: str
    subject: str
    start: str
    end: str
    subtitle: str = ""

    @classmethod
    def from_minutes(
        cls, day: str, subject: str, start: int, end: int, subtitle: str = ""
    ) -> "BlockDraft":
        return cls(day=day, subject=subject, start=to_clock(start), end=to_clock(end), subtitle=subtitle)

    def shifted(self, start: int) -> "BlockDraft":
        duration = self.duration
        return replace(self, start=to_clock(start), end=to_clock(start + duration))


@dataclass(frozen=True)
class Block(_TimedMixin):
    id: str
    day: str
    subject: str
    start: str
    end: str
    subtitle: str = ""

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def signature(self) -> tuple[str, str, int, int]:
        return self.day, self.subject, self.start_minutes, self.end_minutes


@dataclass
class PlacementOutcome:
    block: Block | None = None
    reason: ConflictReason | None = None
    adjusted: bool = False

    @property
    def accepted(self) -> bool:
        return self.block is not None


def new_block_id() -> str:
    return uuid.uuid4().hex


@dataclass
class BlockStore:
    """Authoritative collection of placed blocks for one week.

    Every mutation replaces the internal list in a single assignment so a
    reader never observes a half-applied change.
    """

    days: Sequence[DayConfig]
    policy: ConflictPolicy = ConflictPolicy.STRICT
    id_factory: Callable[[], str] = new_block_id
    _blocks: List[Block] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.days = list(self.days)

    @property
    def blocks(self) -> List[Block]:
        return list(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self):
        return iter(list(self._blocks))

    def get(self, block_id: str) -> Block | None:
        return next((block for block in self._blocks if block.id == block_id), None)

    def set_days(self, days: Iterable[DayConfig]) -> None:
        self.days = list(days)

    def issue_id(self) -> str:
        return self.id_factory()

    def materialise(self, draft: BlockDraft) -> Block:
        return Block(
            id=self.issue_id(),
            day=draft.day,
            subject=draft.subject,
            start=draft.start,
            end=draft.end,
            subtitle=draft.subtitle or "",
        )

    # -- validation -----------------------------------------------------

    def check_interval(
        self, day_key: str, start: int, end: int, ignore_id: str | None = None
    ) -> ConflictReason | None:
        return check_interval(
            day_index(self.days),
            self._blocks,
            day_key,
            start,
            end,
            policy=self.policy,
            ignore_id=ignore_id,
        )

    def check_conflict(
        self, candidate: BlockDraft | Block, ignore_id: str | None = None
    ) -> ConflictReason | None:
        return self.check_interval(
            candidate.day, candidate.start_minutes, candidate.end_minutes, ignore_id
        )

    def find_nearest_valid_start(
        self,
        day_key: str,
        base_start: int,
        duration: int = 60,
        ignore_id: str | None = None,
    ) -> int | None:
        """Search outward from ``base_start`` for the closest valid start.

        Candidates are tried as ``base``, ``base+5``, ``base-5``, ``base+10``
        and so on up to the search radius, the later start winning ties.
        """

        if day_key not in day_index(self.days):
            return None
        tried: set[int] = set()
        for delta in range(0, SEARCH_RADIUS_MINUTES + 1, SNAP_MINUTES):
            candidates = (base_start,) if delta == 0 else (base_start + delta, base_start - delta)
            for start in candidates:
                if start in tried:
                    continue
                tried.add(start)
                if self.check_interval(day_key, start, start + duration, ignore_id) is None:
                    return start
        return None

    # -- mutations ------------------------------------------------------

    def add_block(
        self, candidate: BlockDraft, repair: bool | None = None
    ) -> PlacementOutcome:
        if repair is None:
            repair = self.policy.auto_repair
        reason = self.check_conflict(candidate)
        if reason is None:
            block = self.materialise(candidate)
            self._blocks = [*self._blocks, block]
            return PlacementOutcome(block=block)
        if not repair or candidate.duration <= 0:
            return PlacementOutcome(reason=reason)
        start = self.find_nearest_valid_start(
            candidate.day, candidate.start_minutes, candidate.duration
        )
        if start is None:
            logger.info(
                "No free start near %s %s for %s", candidate.day, candidate.start, candidate.subject
            )
            return PlacementOutcome(reason=reason)
        block = self.materialise(candidate.shifted(start))
        self._blocks = [*self._blocks, block]
        return PlacementOutcome(block=block, adjusted=True)

    def update_block(self, block_id: str, patch: dict[str, object]) -> Block | None:
        """Apply ``patch`` to the block ``block_id`` without validating it."""

        unknown = set(patch) - BLOCK_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Champs non modifiables : {', '.join(sorted(unknown))}")
        updated: Block | None = None
        blocks: list[Block] = []
        for block in self._blocks:
            if block.id == block_id:
                block = replace(block, **patch)
                updated = block
            blocks.append(block)
        self._blocks = blocks
        return updated

    def remove_block(self, block_id: str) -> bool:
        remaining = [block for block in self._blocks if block.id != block_id]
        removed = len(remaining) != len(self._blocks)
        self._blocks = remaining
        return removed

    def clear(self) -> None:
        self._blocks = []

    def replace_all(self, blocks: Iterable[Block]) -> None:
        self._blocks = list(blocks)

    def extend(self, blocks: Iterable[Block]) -> None:
        self._blocks = [*self._blocks, *blocks]

    def duplicate_to_adjacent_day(self, block_id: str, direction: str) -> PlacementOutcome:
        """Copy a block onto the previous (``left``) or next (``right``) enabled day."""

        if direction not in ("left", "right"):
            raise ValueError("La direction doit valoir 'left' ou 'right'.")
        block = self.get(block_id)
        if block is None:
            raise KeyError(block_id)
        enabled = [day.key for day in ordered_enabled_days(self.days)]
        if block.day not in enabled:
            return PlacementOutcome(reason=ConflictReason.DAY_DISABLED)
        target_index = enabled.index(block.day) + (-1 if direction == "left" else 1)
        if target_index < 0 or target_index >= len(enabled):
            return PlacementOutcome(reason=ConflictReason.DAY_DISABLED)
        draft = BlockDraft(
            day=enabled[target_index],
            subject=block.subject,
            start=block.start,
            end=block.end,
            subtitle=block.subtitle,
        )
        return self.add_block(draft, repair=False)
