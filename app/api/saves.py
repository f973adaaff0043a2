"""Named timetable saves stored in the database."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..extensions import db
from ..models import TimetableSave
from ..snapshot import SnapshotError, parse_payload
from ..workspace import get_workspace


ns = Namespace("saves", description="Sauvegardes nommées de l'emploi du temps")

save_model = ns.model(
    "TimetableSave",
    {
        "id": fields.Integer(readonly=True),
        "name": fields.String(required=True),
        "class_name": fields.String(readonly=True),
        "block_count": fields.Integer(readonly=True),
        "created_at": fields.String(readonly=True),
        "updated_at": fields.String(readonly=True),
    },
)

save_input = ns.model(
    "TimetableSaveInput",
    {
        "name": fields.String(required=True, min_length=1, max_length=120),
        "overwrite": fields.Boolean(default=False, description="Remplacer une sauvegarde du même nom"),
    },
)


def _get_save_or_404(save_id: int) -> TimetableSave:
    save = db.session.get(TimetableSave, save_id)
    if save is None:
        ns.abort(404, f"Sauvegarde introuvable : {save_id}")
    return save


def _restore(payload: Any) -> dict[str, Any]:
    workspace = get_workspace()
    try:
        snapshot = parse_payload(payload, policy=workspace.store.policy)
    except SnapshotError as exc:
        current_app.logger.warning("Rejected timetable payload: %s", exc.problems)
        ns.abort(400, str(exc), problems=exc.problems)
    workspace.restore(snapshot)
    return {
        "class_name": workspace.class_name,
        "block_count": len(workspace.store),
        "name": snapshot.name,
    }


@ns.route("")
class SaveList(Resource):
    """List saves or save the current workspace under a name."""

    @ns.marshal_list_with(save_model)
    def get(self) -> list[dict[str, Any]]:
        return [save.summary() for save in TimetableSave.ordered()]

    @ns.expect(save_input, validate=True)
    @ns.marshal_with(save_model, code=201)
    def post(self) -> tuple[dict[str, Any], int]:
        payload = request.json or {}
        name = payload["name"].strip()
        if not name:
            ns.abort(400, "Le nom de la sauvegarde est obligatoire.")
        save = TimetableSave.find_by_name(name)
        if save is not None and not payload.get("overwrite"):
            ns.abort(409, f"Une sauvegarde nommée « {save.name} » existe déjà.")
        status = 200 if save is not None else 201
        if save is None:
            save = TimetableSave(name=name, class_name=get_workspace().class_name)
            db.session.add(save)
        save.store_payload(get_workspace().snapshot(save.name).to_payload())
        db.session.commit()
        current_app.logger.info("Timetable saved as %s (%s blocks)", save.name, save.block_count)
        return save.summary(), status


@ns.route("/import")
class SaveImport(Resource):
    """Restore the workspace from a payload sent by the client."""

    def post(self) -> dict[str, Any]:
        return _restore(request.get_json(silent=True))


@ns.route("/<int:save_id>")
@ns.param("save_id", "Save identifier")
class SaveResource(Resource):
    """Load the raw payload of a save, or delete it."""

    def get(self, save_id: int) -> dict[str, Any]:
        save = _get_save_or_404(save_id)
        payload = save.parsed_payload()
        if payload is None:
            ns.abort(400, "Sauvegarde illisible.")
        return payload

    def delete(self, save_id: int) -> tuple[dict[str, str], int]:
        save = _get_save_or_404(save_id)
        db.session.delete(save)
        db.session.commit()
        return {"status": "deleted"}, 204


@ns.route("/<int:save_id>/restore")
@ns.param("save_id", "Save identifier")
class SaveRestore(Resource):
    """Replace the workspace with a stored save."""

    def post(self, save_id: int) -> dict[str, Any]:
        save = _get_save_or_404(save_id)
        return _restore(save.parsed_payload())
