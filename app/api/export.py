"""Printable view of the week."""
from __future__ import annotations

from flask import request
from flask_restx import Namespace, Resource

from ..export import export_payload
from ..workspace import get_workspace


ns = Namespace("export", description="Données prêtes à imprimer")


@ns.route("")
@ns.param("title", "Titre du document exporté")
class ExportResource(Resource):
    def get(self) -> dict[str, object]:
        workspace = get_workspace()
        return export_payload(
            workspace.days,
            workspace.store.blocks,
            workspace.subjects,
            class_name=workspace.class_name,
            title=request.args.get("title") or None,
        )
