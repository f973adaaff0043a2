"""Endpoints feeding external (untrusted) suggestions into the week."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields
from werkzeug.utils import import_string

from ..assist import (
    COMPLETE,
    FULL,
    MODES,
    AssistError,
    AssistTimeout,
    commit_candidates,
    extract_candidates,
    run_assist,
)
from ..workspace import get_workspace


ns = Namespace("assist", description="Propositions d'un générateur externe")

candidate_model = ns.model(
    "Candidate",
    {
        "day": fields.String(required=True, description="Mon, Lundi, lundi..."),
        "subject": fields.String(required=True, description="Clé ou libellé de matière"),
        "start": fields.String(required=True, description="08:30, 8h30, 8..."),
        "end": fields.String(required=True),
        "subtitle": fields.String,
    },
)

accepted_model = ns.inherit("AcceptedCandidate", candidate_model, {"id": fields.String})

import_input = ns.model(
    "AssistImport",
    {
        "mode": fields.String(enum=list(MODES), default=COMPLETE),
        "blocks": fields.List(fields.Raw, required=True),
    },
)

generate_input = ns.model(
    "AssistGenerate",
    {"mode": fields.String(enum=list(MODES), default=FULL)},
)

dropped_model = ns.model(
    "DroppedCandidate",
    {
        "day": fields.String,
        "subject": fields.String,
        "start": fields.String,
        "end": fields.String,
        "reason": fields.String,
        "message": fields.String,
    },
)

assist_result = ns.model(
    "AssistResult",
    {
        "mode": fields.String,
        "created": fields.Integer,
        "blocks": fields.List(fields.Nested(accepted_model)),
        "dropped": fields.List(fields.Nested(dropped_model)),
    },
)


def _resolve_generator():
    generator = current_app.config.get("ASSIST_GENERATOR")
    if isinstance(generator, str):
        generator = import_string(generator)
    return generator


@ns.route("/import")
class AssistImport(Resource):
    """Review candidate blocks pasted by the user and keep the valid ones."""

    @ns.expect(import_input, validate=True)
    @ns.marshal_with(assist_result)
    def post(self) -> dict[str, Any]:
        payload = request.json or {}
        mode = payload.get("mode") or COMPLETE
        try:
            candidates = extract_candidates(payload.get("blocks"))
            result = commit_candidates(get_workspace(), candidates, mode)
        except AssistError as exc:
            ns.abort(400, str(exc))
        return result.as_dict()


@ns.route("/generate")
class AssistGenerate(Resource):
    """Ask the configured generator for a week, then review its answer."""

    @ns.expect(generate_input, validate=True)
    @ns.marshal_with(assist_result)
    def post(self) -> dict[str, Any]:
        payload = request.json or {}
        mode = payload.get("mode") or FULL
        generator = _resolve_generator()
        if generator is None:
            ns.abort(503, "Aucun générateur externe n'est configuré.")
        timeout = current_app.config.get("ASSIST_TIMEOUT_SECONDS", 45.0)
        try:
            result = run_assist(get_workspace(), generator, mode, timeout)
        except AssistTimeout as exc:
            current_app.logger.warning("Assist generator timed out after %ss", timeout)
            ns.abort(504, str(exc))
        except AssistError as exc:
            ns.abort(502, str(exc))
        current_app.logger.info(
            "Assist %s: %s accepted, %s dropped", mode, len(result.accepted), len(result.dropped)
        )
        return result.as_dict()
