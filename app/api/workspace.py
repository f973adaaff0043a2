"""Class level, week configuration and catalog of the timetable being edited."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..catalog import CLASS_LEVELS
from ..snapshot import SnapshotError, parse_days, parse_subjects
from ..workspace import Workspace, get_workspace


ns = Namespace("workspace", description="Configuration de l'emploi du temps en cours")

day_model = ns.model(
    "DayConfig",
    {
        "key": fields.String(required=True),
        "label": fields.String(required=True),
        "enabled": fields.Boolean(required=True),
        "morning_start": fields.String(required=True),
        "lunch_start": fields.String(required=True),
        "lunch_end": fields.String(required=True),
        "day_end": fields.String(required=True),
        "rec1_start": fields.String(required=True),
        "rec1_dur": fields.Integer(required=True, min=0),
        "rec2_start": fields.String(required=True),
        "rec2_dur": fields.Integer(required=True, min=0),
    },
)

subject_model = ns.model(
    "Subject",
    {
        "key": fields.String(required=True),
        "label": fields.String(required=True),
        "minutes": fields.Integer(required=True, min=0),
    },
)

workspace_model = ns.model(
    "Workspace",
    {
        "class_name": fields.String,
        "cycle": fields.String,
        "policy": fields.String,
        "custom_subjects": fields.Boolean,
        "block_count": fields.Integer,
        "days_config": fields.List(fields.Nested(day_model)),
        "subjects": fields.List(fields.Nested(subject_model)),
    },
)

workspace_update = ns.model(
    "WorkspaceUpdate",
    {
        "class_name": fields.String(enum=list(CLASS_LEVELS)),
        "days_config": fields.List(fields.Nested(day_model)),
        "subjects": fields.List(
            fields.Nested(subject_model),
            description="Catalogue personnalisé ; null pour revenir au programme officiel",
        ),
    },
)


def serialize_workspace(workspace: Workspace) -> dict[str, Any]:
    return {
        "class_name": workspace.class_name,
        "cycle": workspace.cycle,
        "policy": workspace.store.policy.value,
        "custom_subjects": workspace.custom_subjects is not None,
        "block_count": len(workspace.store),
        "days_config": [day.to_dict() for day in workspace.days],
        "subjects": [subject.to_dict() for subject in workspace.subjects],
    }


@ns.route("")
class WorkspaceResource(Resource):
    """Read or change the class level, the week and the catalog."""

    @ns.marshal_with(workspace_model)
    def get(self) -> dict[str, Any]:
        return serialize_workspace(get_workspace())

    # Not schema-validated: ``subjects: null`` resets the catalog.
    @ns.expect(workspace_update)
    @ns.marshal_with(workspace_model)
    def put(self) -> dict[str, Any]:
        payload = request.json or {}
        if not isinstance(payload, dict):
            ns.abort(400, "Objet JSON attendu.")
        workspace = get_workspace()
        # Everything is parsed before anything is applied.
        try:
            days = parse_days(payload["days_config"]) if "days_config" in payload else None
            subjects = (
                parse_subjects(payload["subjects"])
                if payload.get("subjects") is not None
                else None
            )
        except SnapshotError as exc:
            ns.abort(400, str(exc), problems=exc.problems)
        class_name = payload.get("class_name")
        if class_name is not None and class_name not in CLASS_LEVELS:
            ns.abort(400, f"Niveau de classe inconnu : {class_name}")

        if class_name is not None:
            workspace.set_class_name(class_name)
        if days is not None:
            workspace.set_days(days)
        if "subjects" in payload:
            workspace.set_custom_subjects(subjects)
        current_app.logger.info("Workspace updated (%s)", ", ".join(sorted(payload)) or "-")
        return serialize_workspace(workspace)


@ns.route("/copy-monday")
class CopyMonday(Resource):
    """Apply Monday's hours and recesses to every other day."""

    @ns.marshal_with(workspace_model)
    def post(self) -> dict[str, Any]:
        workspace = get_workspace()
        try:
            workspace.copy_monday_to_others()
        except ValueError as exc:
            ns.abort(400, str(exc))
        return serialize_workspace(workspace)
