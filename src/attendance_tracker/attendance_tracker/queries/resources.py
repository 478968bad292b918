"""One query factory per resource class.

Each factory builds the key, the fetcher and the TTL for its resource and
returns an unloaded ``ResourceQuery``; call ``load()`` to mount it. A missing
scope id yields a disabled query instead of a fetch with a blank key.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from ..attendance.model import AttendanceRecord
from ..cache import keys
from ..cache.data_cache import DataCache
from ..common.datetime_utils import parse_date_range, to_iso_date
from ..core import constants
from ..core.exceptions import NotFoundError
from ..reports.model import StudentHistory, SubjectReport
from ..reports.summary import build_student_history, build_subject_report
from ..store.repository import ATTENDANCE, STUDENTS, SUBJECTS, TEACHERS, BackingStore, OrderBy, eq, select_one
from ..students.model import Student, SubjectWithStudents
from ..subjects.model import Subject
from ..users.model import Teacher
from .resource import ResourceQuery


def _disabled(cache: DataCache) -> ResourceQuery:
    return ResourceQuery("", lambda: None, cache=cache, enabled=False)


def subjects_query(store: BackingStore, cache: DataCache, teacher_id: Optional[str]) -> ResourceQuery[list[Subject]]:
    if not teacher_id:
        return _disabled(cache)

    def fetch() -> list[Subject]:
        rows = store.select(
            SUBJECTS,
            [eq("teacher_id", teacher_id)],
            [OrderBy("created_at", descending=True)],
            limit=constants.DEFAULT_SUBJECTS_LIMIT,
        )
        return [Subject.from_row(r) for r in rows]

    return ResourceQuery(keys.subjects_key(teacher_id), fetch, cache=cache, ttl=constants.TTL_SUBJECTS)


def _fetch_students(store: BackingStore, subject_id: str) -> list[Student]:
    rows = store.select(STUDENTS, [eq("subject_id", subject_id)], [OrderBy("roll_number")])
    return [Student.from_row(r) for r in rows]


def students_query(store: BackingStore, cache: DataCache, subject_id: Optional[str]) -> ResourceQuery[list[Student]]:
    if not subject_id:
        return _disabled(cache)

    return ResourceQuery(
        keys.students_key(subject_id),
        lambda: _fetch_students(store, subject_id),
        cache=cache,
        ttl=constants.TTL_STUDENTS,
    )


def attendance_query(
    store: BackingStore,
    cache: DataCache,
    subject_id: Optional[str],
    work_date: Union[date, str, None],
) -> ResourceQuery[list[AttendanceRecord]]:
    if not subject_id or not work_date:
        return _disabled(cache)

    iso = to_iso_date(work_date)

    def fetch() -> list[AttendanceRecord]:
        rows = store.select(ATTENDANCE, [eq("subject_id", subject_id), eq("date", iso)])
        return [AttendanceRecord.from_row(r) for r in rows]

    return ResourceQuery(keys.attendance_key(subject_id, iso), fetch, cache=cache, ttl=constants.TTL_ATTENDANCE)


def teacher_profile_query(store: BackingStore, cache: DataCache, user_id: Optional[str]) -> ResourceQuery[Optional[Teacher]]:
    if not user_id:
        return _disabled(cache)

    def fetch() -> Optional[Teacher]:
        # a missing profile is a valid answer, not an error
        row = select_one(store, TEACHERS, [eq("id", user_id)])
        return Teacher.from_row(row) if row else None

    return ResourceQuery(keys.teacher_key(user_id), fetch, cache=cache, ttl=constants.TTL_TEACHER_PROFILE)


def subject_with_students_query(
    store: BackingStore, cache: DataCache, subject_id: Optional[str]
) -> ResourceQuery[SubjectWithStudents]:
    if not subject_id:
        return _disabled(cache)

    def fetch() -> SubjectWithStudents:
        row = select_one(store, SUBJECTS, [eq("id", subject_id)])
        if row is None:
            raise NotFoundError("Subject not found")
        return SubjectWithStudents(subject=Subject.from_row(row), students=_fetch_students(store, subject_id))

    return ResourceQuery(keys.subject_with_students_key(subject_id), fetch, cache=cache, ttl=constants.TTL_STUDENTS)


def attendance_report_query(
    store: BackingStore,
    cache: DataCache,
    subject_id: Optional[str],
    date_range: Optional[str],
    *,
    today: date,
) -> ResourceQuery[SubjectReport]:
    if not subject_id:
        return _disabled(cache)

    label = parse_date_range(date_range).value
    return ResourceQuery(
        keys.reports_key(subject_id, label),
        lambda: build_subject_report(store, subject_id, label, today=today),
        cache=cache,
        ttl=constants.TTL_REPORTS,
    )


def student_history_query(
    store: BackingStore,
    cache: DataCache,
    student_id: Optional[str],
    date_range: Optional[str],
    *,
    today: date,
) -> ResourceQuery[StudentHistory]:
    if not student_id:
        return _disabled(cache)

    label = parse_date_range(date_range).value
    return ResourceQuery(
        keys.student_history_key(student_id, label),
        lambda: build_student_history(store, student_id, label, today=today),
        cache=cache,
        ttl=constants.TTL_STUDENT_HISTORY,
    )
