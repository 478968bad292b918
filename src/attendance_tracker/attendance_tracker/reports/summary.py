"""Report read-models computed from raw store rows."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import iter_days, resolve_date_range
from ..core.constants import ALL_TIME_DAILY_WINDOW_DAYS, HIGH_ATTENDANCE_PERCENT, LOW_ATTENDANCE_PERCENT
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError
from ..store.repository import ATTENDANCE, STUDENTS, SUBJECTS, BackingStore, OrderBy, eq, gte, lte, select_one
from ..students.model import Student
from ..subjects.model import Subject
from .model import AttendanceSummaryRow, DailyAttendanceCell, StudentHistory, SubjectReport


def _percentage(present: int, total: int) -> float:
    return round(present / total * 100, 2) if total else 0.0


def _range_filters(start: Optional[date], end: Optional[date]) -> list:
    filters = []
    if start is not None:
        filters.append(gte("date", start))
    if end is not None:
        filters.append(lte("date", end))
    return filters


def summarize(
    subject: Subject,
    students: Sequence[Student],
    records: Iterable[AttendanceRecord],
) -> list[AttendanceSummaryRow]:
    present: Counter = Counter()
    absent: Counter = Counter()
    for r in records:
        if r.status == AttendanceStatus.PRESENT:
            present[r.student_id] += 1
        else:
            absent[r.student_id] += 1

    rows = []
    for s in students:
        p, a = present[s.student_id], absent[s.student_id]
        rows.append(
            AttendanceSummaryRow(
                student_id=s.student_id,
                student_name=s.name,
                reg_number=s.reg_number,
                roll_number=s.roll_number,
                course=s.course,
                subject_id=subject.subject_id,
                subject_name=subject.name,
                subject_code=subject.code,
                total_classes=p + a,
                present_count=p,
                absent_count=a,
                attendance_percentage=_percentage(p, p + a),
            )
        )
    return rows


def daily_matrix(
    students: Sequence[Student],
    records: Iterable[AttendanceRecord],
    days: Iterable[date],
) -> list[DailyAttendanceCell]:
    by_day = {(r.date, r.student_id): r.status.value for r in records}
    return [
        DailyAttendanceCell(date=d, student_id=s.student_id, status=by_day.get((d, s.student_id), "unmarked"))
        for d in days
        for s in students
    ]


def build_subject_report(store: BackingStore, subject_id: str, date_range: str, *, today: date) -> SubjectReport:
    row = select_one(store, SUBJECTS, [eq("id", subject_id)])
    if row is None:
        raise NotFoundError("Subject not found")
    subject = Subject.from_row(row)

    start, end = resolve_date_range(date_range, today=today)
    students = [
        Student.from_row(r)
        for r in store.select(STUDENTS, [eq("subject_id", subject_id)], [OrderBy("roll_number")])
    ]
    records = [
        AttendanceRecord.from_row(r)
        for r in store.select(ATTENDANCE, [eq("subject_id", subject_id), *_range_filters(start, end)])
    ]

    rows = summarize(subject, students, records)

    if start is not None and end is not None:
        days = list(iter_days(start, end))
    else:
        days = list(iter_days(today - timedelta(days=ALL_TIME_DAILY_WINDOW_DAYS), today))

    percentages = [r.attendance_percentage for r in rows]
    return SubjectReport(
        subject_id=subject.subject_id,
        date_range=date_range,
        start_date=start,
        end_date=end,
        rows=rows,
        daily=daily_matrix(students, records, days),
        average_percentage=round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
        high_attendance=sum(1 for p in percentages if p >= HIGH_ATTENDANCE_PERCENT),
        low_attendance=sum(1 for p in percentages if p < LOW_ATTENDANCE_PERCENT),
    )


def build_student_history(store: BackingStore, student_id: str, date_range: str, *, today: date) -> StudentHistory:
    if select_one(store, STUDENTS, [eq("id", student_id)]) is None:
        raise NotFoundError("Student not found")

    start, end = resolve_date_range(date_range, today=today)
    records = [
        AttendanceRecord.from_row(r)
        for r in store.select(
            ATTENDANCE,
            [eq("student_id", student_id), *_range_filters(start, end)],
            [OrderBy("date", descending=True)],
        )
    ]
    present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    return StudentHistory(
        student_id=student_id,
        date_range=date_range,
        records=records,
        total_classes=len(records),
        present_count=present,
        absent_count=len(records) - present,
        attendance_percentage=_percentage(present, len(records)),
    )
