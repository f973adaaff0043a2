"""Endpoints running the weekly allocator."""
from __future__ import annotations

from flask import current_app
from flask_restx import Namespace, Resource, fields

from ..workspace import get_workspace


ns = Namespace("allocation", description="Génération automatique de la semaine")

entry_model = ns.model(
    "AllocationEntry",
    {
        "level": fields.String,
        "message": fields.String,
    },
)

allocated_block = ns.model(
    "AllocatedBlock",
    {
        "id": fields.String,
        "day": fields.String,
        "subject": fields.String,
        "start": fields.String,
        "end": fields.String,
        "subtitle": fields.String,
    },
)

report_model = ns.model(
    "AllocationReport",
    {
        "mode": fields.String,
        "status": fields.String,
        "summary": fields.String,
        "created": fields.Integer,
        "blocks": fields.List(fields.Nested(allocated_block)),
        "entries": fields.List(fields.Nested(entry_model)),
    },
)


@ns.route("/autofill")
class Autofill(Resource):
    """Replace the week with a freshly generated one."""

    @ns.marshal_with(report_model)
    def post(self) -> dict[str, object]:
        report = get_workspace().autofill()
        current_app.logger.info("Autofill: %s", report.summary)
        return report.as_dict()


@ns.route("/complete")
class CompleteFill(Resource):
    """Fill the gaps of the week without moving existing blocks."""

    @ns.marshal_with(report_model)
    def post(self) -> dict[str, object]:
        report = get_workspace().complete_fill()
        current_app.logger.info("Complete fill: %s", report.summary)
        return report.as_dict()
