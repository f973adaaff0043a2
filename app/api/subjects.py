"""Subject catalogs."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource, fields

from ..catalog import SUBJECTS, default_catalog
from ..timeutils import minutes_to_hm
from ..workspace import get_workspace


ns = Namespace("subjects", description="Programme et volumes horaires")

subject_model = ns.model(
    "CatalogSubject",
    {
        "key": fields.String,
        "label": fields.String,
        "minutes": fields.Integer,
        "hours_label": fields.String,
    },
)


def serialize_subject(subject) -> dict[str, Any]:
    return {
        "key": subject.key,
        "label": subject.label,
        "minutes": subject.minutes,
        "hours_label": minutes_to_hm(subject.minutes),
    }


@ns.route("")
class SubjectList(Resource):
    """The catalog currently used by the workspace."""

    @ns.marshal_list_with(subject_model)
    def get(self) -> list[dict[str, Any]]:
        return [serialize_subject(subject) for subject in get_workspace().subjects]


@ns.route("/defaults/<string:cycle>")
@ns.param("cycle", "C2 ou C3")
class SubjectDefaults(Resource):
    """The official catalog of a cycle."""

    @ns.marshal_list_with(subject_model)
    def get(self, cycle: str) -> list[dict[str, Any]]:
        if cycle not in SUBJECTS:
            ns.abort(404, f"Cycle inconnu : {cycle}")
        return [serialize_subject(subject) for subject in default_catalog(cycle)]
