from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class AttendanceSummaryRow:
    """Read-model: per-student attendance totals over a date range."""

    student_id: str
    student_name: str
    reg_number: str
    roll_number: str
    course: str
    subject_id: str
    subject_name: str
    subject_code: str
    total_classes: int
    present_count: int
    absent_count: int
    attendance_percentage: float


@dataclass(frozen=True)
class DailyAttendanceCell:
    date: date
    student_id: str
    status: str  # "present" | "absent" | "unmarked"


@dataclass(frozen=True)
class SubjectReport:
    subject_id: str
    date_range: str
    start_date: Optional[date]
    end_date: Optional[date]
    rows: list[AttendanceSummaryRow]
    daily: list[DailyAttendanceCell]
    average_percentage: float
    high_attendance: int
    low_attendance: int


@dataclass(frozen=True)
class StudentHistory:
    student_id: str
    date_range: str
    records: list  # AttendanceRecord, newest first
    total_classes: int
    present_count: int
    absent_count: int
    attendance_percentage: float
