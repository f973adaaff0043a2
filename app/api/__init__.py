"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from flask_restx import Api

from .allocation import ns as allocation_ns
from .assist import ns as assist_ns
from .blocks import ns as blocks_ns
from .export import ns as export_ns
from .health import ns as health_ns
from .quotas import ns as quotas_ns
from .saves import ns as saves_ns
from .subjects import ns as subjects_ns
from .workspace import ns as workspace_ns


NAMESPACES = (
    (health_ns, "/health"),
    (workspace_ns, "/workspace"),
    (subjects_ns, "/subjects"),
    (blocks_ns, "/blocks"),
    (allocation_ns, "/allocation"),
    (quotas_ns, "/quotas"),
    (export_ns, "/export"),
    (saves_ns, "/saves"),
    (assist_ns, "/assist"),
)


def register_namespaces(api: Api) -> None:
    """Register all API namespaces; later calls are no-ops."""
    for namespace, path in NAMESPACES:
        if namespace in api.namespaces:
            continue
        api.add_namespace(namespace, path=path)
