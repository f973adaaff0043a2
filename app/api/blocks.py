"""Manual editing of the blocks of the week."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..conflicts import ConflictReason, suggest_placement_fix
from ..days import DAY_KEYS
from ..store import Block, BlockDraft, PlacementOutcome
from ..timeutils import CLOCK_PATTERN, is_clock, to_clock, to_minutes
from ..workspace import get_workspace


ns = Namespace("blocks", description="Placement, contrôle et édition des séances")

block_model = ns.model(
    "Block",
    {
        "id": fields.String(readonly=True),
        "day": fields.String(required=True, enum=list(DAY_KEYS)),
        "subject": fields.String(required=True),
        "start": fields.String(required=True, description="H:MM", pattern=CLOCK_PATTERN.pattern),
        "end": fields.String(required=True, description="H:MM", pattern=CLOCK_PATTERN.pattern),
        "subtitle": fields.String(default=""),
    },
)

block_input = ns.inherit(
    "BlockInput",
    block_model,
    {"repair": fields.Boolean(description="Chercher le créneau libre le plus proche en cas de conflit")},
)

block_patch = ns.model(
    "BlockPatch",
    {
        "day": fields.String(enum=list(DAY_KEYS)),
        "subject": fields.String,
        "start": fields.String(pattern=CLOCK_PATTERN.pattern),
        "end": fields.String(pattern=CLOCK_PATTERN.pattern),
        "subtitle": fields.String,
    },
)

interval_input = ns.model(
    "IntervalCheck",
    {
        "day": fields.String(required=True, enum=list(DAY_KEYS)),
        "start": fields.String(required=True, pattern=CLOCK_PATTERN.pattern),
        "end": fields.String(required=True, pattern=CLOCK_PATTERN.pattern),
        "ignore_id": fields.String,
    },
)

nearest_input = ns.model(
    "NearestStart",
    {
        "day": fields.String(required=True, enum=list(DAY_KEYS)),
        "start": fields.String(required=True, pattern=CLOCK_PATTERN.pattern),
        "duration": fields.Integer(default=60, min=5),
        "ignore_id": fields.String,
    },
)

duplicate_input = ns.model(
    "DuplicateBlock",
    {"direction": fields.String(required=True, enum=["left", "right"])},
)

placement_model = ns.model(
    "Placement",
    {
        "block": fields.Nested(block_model),
        "adjusted": fields.Boolean,
    },
)


def _check_subject(subject: str) -> None:
    known = {item.key for item in get_workspace().subjects}
    if subject not in known:
        ns.abort(400, f"Matière inconnue : {subject}")


def _abort_conflict(reason: ConflictReason) -> None:
    ns.abort(
        409,
        reason.message,
        reason=reason.value,
        suggestions=suggest_placement_fix(reason),
    )


def _placement(outcome: PlacementOutcome) -> dict[str, Any]:
    if outcome.block is None:
        _abort_conflict(outcome.reason)
    return {"block": outcome.block.to_dict(), "adjusted": outcome.adjusted}


def _week_order(block: Block) -> tuple[int, int]:
    day_rank = DAY_KEYS.index(block.day) if block.day in DAY_KEYS else len(DAY_KEYS)
    return day_rank, block.start_minutes


def _get_block_or_404(block_id: str) -> Block:
    block = get_workspace().store.get(block_id)
    if block is None:
        ns.abort(404, f"Séance introuvable : {block_id}")
    return block


@ns.route("")
class BlockList(Resource):
    """List, add or clear the blocks of the week."""

    @ns.param("day", "Restreindre à un jour (Mon..Fri)")
    @ns.marshal_list_with(block_model)
    def get(self) -> list[dict[str, Any]]:
        day = request.args.get("day")
        blocks = get_workspace().store.blocks
        if day:
            blocks = [block for block in blocks if block.day == day]
        return [block.to_dict() for block in sorted(blocks, key=_week_order)]

    @ns.expect(block_input, validate=True)
    @ns.marshal_with(placement_model, code=201)
    def post(self) -> tuple[dict[str, Any], int]:
        payload = request.json or {}
        _check_subject(payload["subject"])
        draft = BlockDraft(
            day=payload["day"],
            subject=payload["subject"],
            start=payload["start"],
            end=payload["end"],
            subtitle=payload.get("subtitle") or "",
        )
        store = get_workspace().store
        outcome = store.add_block(draft, repair=payload.get("repair"))
        if outcome.block is not None:
            current_app.logger.info(
                "Block %s placed on %s %s-%s",
                outcome.block.id,
                draft.day,
                outcome.block.start,
                outcome.block.end,
            )
        return _placement(outcome), 201

    def delete(self) -> tuple[str, int]:
        get_workspace().store.clear()
        return "", 204


@ns.route("/check")
class BlockCheck(Resource):
    """Tell whether an interval could receive a block, without placing it."""

    @ns.expect(interval_input, validate=True)
    def post(self) -> dict[str, Any]:
        payload = request.json or {}
        reason = get_workspace().store.check_interval(
            payload["day"],
            to_minutes(payload["start"]),
            to_minutes(payload["end"]),
            payload.get("ignore_id"),
        )
        return {
            "ok": reason is None,
            "reason": reason.value if reason else None,
            "message": reason.message if reason else None,
            "suggestions": suggest_placement_fix(reason),
        }


@ns.route("/nearest")
class BlockNearest(Resource):
    """Closest valid start for a block of a given duration."""

    @ns.expect(nearest_input, validate=True)
    def post(self) -> dict[str, Any]:
        payload = request.json or {}
        start = get_workspace().store.find_nearest_valid_start(
            payload["day"],
            to_minutes(payload["start"]),
            payload.get("duration") or 60,
            payload.get("ignore_id"),
        )
        return {
            "start": start,
            "clock": to_clock(start) if start is not None else None,
        }


@ns.route("/<string:block_id>")
@ns.param("block_id", "Block identifier")
class BlockResource(Resource):
    """Retrieve, edit or delete one block."""

    @ns.marshal_with(block_model)
    def get(self, block_id: str) -> dict[str, Any]:
        return _get_block_or_404(block_id).to_dict()

    @ns.expect(block_patch, validate=True)
    @ns.marshal_with(block_model)
    def patch(self, block_id: str) -> dict[str, Any]:
        block = _get_block_or_404(block_id)
        payload = {key: value for key, value in (request.json or {}).items() if key in block_patch}
        if "subject" in payload:
            _check_subject(payload["subject"])
        candidate = BlockDraft(
            day=payload.get("day", block.day),
            subject=payload.get("subject", block.subject),
            start=payload.get("start", block.start),
            end=payload.get("end", block.end),
        )
        if not (is_clock(candidate.start) and is_clock(candidate.end)):
            ns.abort(400, "Horaires invalides.")
        store = get_workspace().store
        reason = store.check_conflict(candidate, ignore_id=block_id)
        if reason is not None:
            _abort_conflict(reason)
        updated = store.update_block(block_id, payload)
        return updated.to_dict()

    def delete(self, block_id: str) -> tuple[str, int]:
        if not get_workspace().store.remove_block(block_id):
            ns.abort(404, f"Séance introuvable : {block_id}")
        return "", 204


@ns.route("/<string:block_id>/duplicate")
@ns.param("block_id", "Block identifier")
class BlockDuplicate(Resource):
    """Copy a block onto the previous or next working day."""

    @ns.expect(duplicate_input, validate=True)
    @ns.marshal_with(placement_model, code=201)
    def post(self, block_id: str) -> tuple[dict[str, Any], int]:
        payload = request.json or {}
        try:
            outcome = get_workspace().store.duplicate_to_adjacent_day(block_id, payload["direction"])
        except KeyError:
            ns.abort(404, f"Séance introuvable : {block_id}")
        except ValueError as exc:
            ns.abort(400, str(exc))
        return _placement(outcome), 201
