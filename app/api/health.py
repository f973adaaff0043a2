"""Healthcheck endpoint."""
from __future__ import annotations

from flask_restx import Namespace, Resource
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..workspace import get_workspace


ns = Namespace("health", description="Service health status")


@ns.route("")
class HealthResource(Resource):
    """Database connectivity and the state of the workspace."""

    def get(self) -> dict[str, object]:
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = "ok"
        except SQLAlchemyError:
            db.session.rollback()
            db_ok = "error"
        workspace = get_workspace()
        return {
            "status": "ok",
            "database": db_ok,
            "class_name": workspace.class_name,
            "blocks": len(workspace.store),
        }
