from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_datetime
from ..subjects.model import Subject


@dataclass(frozen=True)
class Student:
    """Domain entity: a student enrolled in exactly one subject."""

    student_id: str
    subject_id: str
    name: str
    reg_number: str
    roll_number: str
    course: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: dict) -> "Student":
        return cls(
            student_id=str(r["id"]),
            subject_id=str(r["subject_id"]),
            name=r["name"],
            reg_number=r["reg_number"],
            roll_number=str(r["roll_number"]),
            course=r["course"],
            created_at=as_datetime(r.get("created_at")),
            updated_at=as_datetime(r.get("updated_at")),
        )

    @property
    def roll_sort_key(self) -> int:
        # "CS-012" sorts as 12; rolls without digits sort first
        digits = re.sub(r"\D", "", self.roll_number)
        return int(digits) if digits else 0


@dataclass(frozen=True)
class SubjectWithStudents:
    subject: Subject
    students: list[Student]
