"""Weekly quota accounting."""
from __future__ import annotations

from flask_restx import Namespace, Resource, fields

from ..workspace import get_workspace


ns = Namespace("quotas", description="Volumes horaires prévus, placés et restants")

quota_row = ns.model(
    "QuotaRow",
    {
        "key": fields.String,
        "label": fields.String,
        "required": fields.Integer,
        "scheduled": fields.Integer,
        "remaining": fields.Integer,
        "required_label": fields.String,
        "scheduled_label": fields.String,
        "remaining_label": fields.String,
        "exceeded": fields.Boolean,
    },
)

quota_model = ns.model(
    "Quotas",
    {
        "required": fields.Raw,
        "scheduled": fields.Raw,
        "remaining": fields.Raw,
        "subjects": fields.List(fields.Nested(quota_row)),
    },
)


@ns.route("")
class QuotaResource(Resource):
    @ns.marshal_with(quota_model)
    def get(self) -> dict[str, object]:
        return get_workspace().quotas()
