from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .extensions import db


class TimeStampedModel:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TimetableSave(db.Model, TimeStampedModel):
    """A named snapshot of a timetable, stored as its JSON payload."""

    __tablename__ = "timetable_save"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    class_name: Mapped[str] = mapped_column(String(10), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    block_count: Mapped[int] = mapped_column(default=0, nullable=False)

    @classmethod
    def find_by_name(cls, name: str) -> Optional["TimetableSave"]:
        cleaned = (name or "").strip().lower()
        if not cleaned:
            return None
        return cls.query.filter(func.lower(cls.name) == cleaned).first()

    @classmethod
    def ordered(cls) -> list["TimetableSave"]:
        return cls.query.order_by(cls.updated_at.desc(), cls.id.desc()).all()

    def parsed_payload(self) -> Any:
        try:
            return json.loads(self.payload or "{}")
        except (TypeError, ValueError):
            return None

    def store_payload(self, payload: dict[str, Any]) -> None:
        self.payload = json.dumps(payload, ensure_ascii=False)
        self.class_name = payload.get("class_name", self.class_name)
        self.block_count = len(payload.get("blocks") or [])

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class_name": self.class_name,
            "block_count": self.block_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# Names are unique regardless of case.
Index("ix_timetable_save_lower_name", func.lower(TimetableSave.name), unique=True)
