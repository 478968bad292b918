from __future__ import annotations

import logging
from typing import Optional

from ..cache.data_cache import DataCache
from ..cache.invalidation import invalidate_student_history, invalidate_subject_scope, invalidate_subjects
from ..common.validators import require_non_empty
from ..core.exceptions import AuthorizationError, NotFoundError
from ..queries.resource import ResourceQuery
from ..queries.resources import subjects_query
from ..store.repository import STUDENTS, SUBJECTS, BackingStore, eq, select_one
from .model import Subject

logger = logging.getLogger(__name__)


class SubjectService:
    def __init__(self, store: BackingStore, cache: DataCache):
        self._store = store
        self._cache = cache

    def list_query(self, teacher_id: Optional[str]) -> ResourceQuery[list[Subject]]:
        return subjects_query(self._store, self._cache, teacher_id).load()

    def get_owned(self, subject_id: str, teacher_id: str) -> Subject:
        """Return the subject if *teacher_id* owns it.

        The cached subject list answers most lookups; the store is only hit
        for subjects outside it.
        """

        query = self.list_query(teacher_id)
        for subject in query.data or []:
            if subject.subject_id == subject_id:
                return subject

        row = select_one(self._store, SUBJECTS, [eq("id", subject_id)])
        if not row:
            raise NotFoundError("Subject not found")
        subject = Subject.from_row(row)
        if subject.teacher_id != teacher_id:
            raise AuthorizationError("You do not have access to this subject")
        return subject

    def create_subject(
        self,
        *,
        teacher_id: str,
        name: str,
        code: str,
        academic_year: str,
        semester: str,
        description: Optional[str] = None,
    ) -> Subject:
        row = self._store.insert(
            SUBJECTS,
            {
                "teacher_id": teacher_id,
                "name": require_non_empty(name, "Subject name"),
                "code": require_non_empty(code, "Subject code").upper(),
                "academic_year": require_non_empty(academic_year, "Academic year"),
                "semester": require_non_empty(semester, "Semester"),
                "description": (description or "").strip() or None,
            },
        )
        invalidate_subjects(self._cache, teacher_id)
        return Subject.from_row(row)

    def delete_subject(self, *, subject_id: str, teacher_id: str) -> None:
        self.get_owned(subject_id, teacher_id)
        # history keys are per student, so collect the roster before it cascades away
        student_ids = [str(r["id"]) for r in self._store.select(STUDENTS, [eq("subject_id", subject_id)])]
        self._store.delete(SUBJECTS, subject_id)
        invalidate_subjects(self._cache, teacher_id)
        invalidate_subject_scope(self._cache, subject_id)
        for student_id in student_ids:
            invalidate_student_history(self._cache, student_id)
        logger.info("deleted subject %s", subject_id)
