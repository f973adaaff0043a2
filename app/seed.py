from __future__ import annotations

from typing import Optional

from . import db
from .models import TimetableSave
from .workspace import Workspace

DEMO_NAME = "Démo CM1"


def seed_data(class_name: str = "CM1", name: str = DEMO_NAME) -> Optional[TimetableSave]:
    if TimetableSave.query.count():
        return None

    workspace = Workspace(class_name=class_name)
    workspace.autofill()

    save = TimetableSave(name=name, class_name=class_name)
    save.store_payload(workspace.snapshot(name).to_payload())
    db.session.add(save)
    db.session.commit()
    return save
