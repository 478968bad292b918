from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_datetime


@dataclass(frozen=True)
class Teacher:
    """Domain entity: a teacher account (also the authenticated user)."""

    teacher_id: str
    email: str
    name: str
    password_hash: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "Teacher":
        return cls(
            teacher_id=str(r["id"]),
            email=r["email"],
            name=r["name"],
            password_hash=r.get("password_hash") or "",
            created_at=as_datetime(r.get("created_at")),
            updated_at=as_datetime(r.get("updated_at")),
        )

    def public_dict(self) -> dict:
        return {
            "id": self.teacher_id,
            "email": self.email,
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
