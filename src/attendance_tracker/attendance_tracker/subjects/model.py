from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_datetime


@dataclass(frozen=True)
class Subject:
    subject_id: str
    teacher_id: str
    name: str
    code: str
    academic_year: str
    semester: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "Subject":
        return cls(
            subject_id=str(r["id"]),
            teacher_id=str(r["teacher_id"]),
            name=r["name"],
            code=r["code"],
            academic_year=r["academic_year"],
            semester=r["semester"],
            description=r.get("description"),
            created_at=as_datetime(r.get("created_at")),
            updated_at=as_datetime(r.get("updated_at")),
        )
