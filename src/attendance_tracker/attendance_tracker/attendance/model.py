from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import as_date, as_datetime
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's status in one subject on one day."""

    attendance_id: str
    student_id: str
    subject_id: str
    date: date
    status: AttendanceStatus
    marked_by: str
    marked_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, r: dict) -> "AttendanceRecord":
        return cls(
            attendance_id=str(r["id"]),
            student_id=str(r["student_id"]),
            subject_id=str(r["subject_id"]),
            date=as_date(r["date"]),
            status=AttendanceStatus(r["status"]),
            marked_by=str(r.get("marked_by") or ""),
            marked_at=as_datetime(r.get("marked_at")),
            notes=r.get("notes"),
        )


@dataclass(frozen=True)
class AttendanceStats:
    present: int
    absent: int
    unmarked: int
    total: int

    @property
    def percentage(self) -> int:
        return round(self.present / self.total * 100) if self.total else 0

    def to_dict(self) -> dict:
        return {
            "present": self.present,
            "absent": self.absent,
            "unmarked": self.unmarked,
            "total": self.total,
            "percentage": self.percentage,
        }
