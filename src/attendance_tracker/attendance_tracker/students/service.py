from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional

from ..cache.data_cache import DataCache
from ..cache.invalidation import invalidate_reports, invalidate_student_history, invalidate_students
from ..common.validators import require_non_empty
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..queries.resource import ResourceQuery
from ..queries.resources import student_history_query, students_query, subject_with_students_query
from ..reports.model import StudentHistory
from ..store.repository import STUDENTS, BackingStore, eq, select_one
from .model import Student, SubjectWithStudents

_EDITABLE = ("name", "reg_number", "roll_number", "course")


class StudentService:
    def __init__(self, store: BackingStore, cache: DataCache):
        self._store = store
        self._cache = cache

    def list_query(self, subject_id: Optional[str]) -> ResourceQuery[list[Student]]:
        return students_query(self._store, self._cache, subject_id).load()

    def with_subject_query(self, subject_id: Optional[str]) -> ResourceQuery[SubjectWithStudents]:
        return subject_with_students_query(self._store, self._cache, subject_id).load()

    def history_query(self, student_id: str, date_range: Optional[str], *, today: date) -> ResourceQuery[StudentHistory]:
        return student_history_query(self._store, self._cache, student_id, date_range, today=today).load()

    def get_student(self, student_id: str) -> Student:
        row = select_one(self._store, STUDENTS, [eq("id", student_id)])
        if not row:
            raise NotFoundError("Student not found")
        return Student.from_row(row)

    def _check_unique(self, subject_id: str, *, roll_number: str, reg_number: str, exclude_id: Optional[str] = None) -> None:
        # mirrors the store's unique keys
        for s in self._store_roster(subject_id):
            if s.student_id == exclude_id:
                continue
            if s.roll_number == roll_number:
                raise ConflictError(f"Roll number {roll_number} already exists in this subject")
            if s.reg_number == reg_number:
                raise ConflictError(f"Registration number {reg_number} already exists in this subject")

    def _store_roster(self, subject_id: str) -> list[Student]:
        return [Student.from_row(r) for r in self._store.select(STUDENTS, [eq("subject_id", subject_id)])]

    def create_student(self, *, subject_id: str, name: str, reg_number: str, roll_number: str, course: str) -> Student:
        values = {
            "subject_id": subject_id,
            "name": require_non_empty(name, "Name"),
            "reg_number": require_non_empty(reg_number, "Registration number"),
            "roll_number": require_non_empty(roll_number, "Roll number"),
            "course": require_non_empty(course, "Course"),
        }
        self._check_unique(subject_id, roll_number=values["roll_number"], reg_number=values["reg_number"])

        row = self._store.insert(STUDENTS, values)
        invalidate_students(self._cache, subject_id)
        invalidate_reports(self._cache, subject_id)
        return Student.from_row(row)

    def update_student(self, student_id: str, changes: Mapping[str, Any]) -> Student:
        current = self.get_student(student_id)
        patch = {k: require_non_empty(changes[k], k.replace("_", " ").capitalize()) for k in _EDITABLE if k in changes}
        if not patch:
            raise ValidationError("Nothing to update")

        self._check_unique(
            current.subject_id,
            roll_number=patch.get("roll_number", current.roll_number),
            reg_number=patch.get("reg_number", current.reg_number),
            exclude_id=student_id,
        )
        row = self._store.update(STUDENTS, student_id, patch)
        invalidate_students(self._cache, current.subject_id)
        invalidate_reports(self._cache, current.subject_id)
        return Student.from_row(row)

    def delete_student(self, student_id: str) -> None:
        current = self.get_student(student_id)
        self._store.delete(STUDENTS, student_id)
        invalidate_students(self._cache, current.subject_id)
        invalidate_reports(self._cache, current.subject_id)
        invalidate_student_history(self._cache, student_id)
        # attendance rows cascade with the student
        self._cache.clear_by_prefix(f"attendance:{current.subject_id}:")
