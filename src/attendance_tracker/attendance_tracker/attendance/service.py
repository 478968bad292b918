from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Union

from ..cache.data_cache import DataCache
from ..cache.invalidation import invalidate_attendance, invalidate_reports, invalidate_student_history
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SUBMIT_MAX_WORKERS
from ..core.enums import AttendanceStatus, QueryStatus
from ..core.exceptions import ConflictError, UnsavedChangesError, ValidationError
from ..queries.resource import ResourceQuery
from ..queries.resources import attendance_query, students_query
from ..store.repository import ATTENDANCE, BackingStore
from ..students.model import Student
from .model import AttendanceRecord, AttendanceStats
from .pending import PendingEditBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one batch submit; ``failures`` maps student id to the write error."""

    written: tuple[str, ...] = ()
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def has_conflict(self) -> bool:
        return any(isinstance(e, ConflictError) for e in self.failures.values())

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "written": list(self.written),
            "failed": {sid: str(err) for sid, err in self.failures.items()},
        }


class AttendanceMarkingSession:
    """One editing session: a subject on a day, its roster, and staged edits."""

    def __init__(
        self,
        store: BackingStore,
        cache: DataCache,
        buffer: PendingEditBuffer,
        *,
        marked_by: str,
        max_workers: int = DEFAULT_SUBMIT_MAX_WORKERS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._cache = cache
        self._max_workers = max(1, int(max_workers))
        self._clock = clock
        self.buffer = buffer
        self.marked_by = marked_by
        self.students: ResourceQuery[list[Student]] = students_query(store, cache, buffer.subject_id)
        self.attendance: ResourceQuery[list[AttendanceRecord]] = self._attendance_query()

    def _attendance_query(self) -> ResourceQuery[list[AttendanceRecord]]:
        return attendance_query(self._store, self._cache, self.buffer.subject_id, self.buffer.work_date)

    @property
    def subject_id(self) -> str:
        return self.buffer.subject_id

    @property
    def work_date(self) -> date:
        return self.buffer.work_date

    def open(self) -> "AttendanceMarkingSession":
        self.students.load()
        self.attendance.load()
        return self

    @property
    def roster(self) -> list[Student]:
        return sorted(self.students.data or [], key=lambda s: s.roll_sort_key)

    @property
    def authoritative(self) -> dict[str, AttendanceRecord]:
        return {r.student_id: r for r in (self.attendance.data or [])}

    @property
    def has_unsaved_changes(self) -> bool:
        return self.buffer.has_unsaved_changes

    @property
    def pending_count(self) -> int:
        return len(self.buffer)

    def stage_change(self, student_id: str, status: Union[AttendanceStatus, str]) -> None:
        try:
            status = AttendanceStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid attendance status: {status!r}")
        if self.students.data is not None and student_id not in {s.student_id for s in self.students.data}:
            raise ValidationError("Student is not enrolled in this subject")
        self.buffer.stage_change(student_id, status)

    def effective_status(self, student_id: str) -> Optional[AttendanceStatus]:
        return self.buffer.effective_status(student_id, self.authoritative)

    def discard(self) -> None:
        self.buffer.discard()

    def change_date(self, work_date: Union[date, str], *, confirmed: bool = False) -> None:
        """Switch to another day; staged edits need ``confirmed`` to be dropped."""

        self.buffer.rescope(self.subject_id, work_date, confirmed=confirmed)
        self.attendance.dispose()
        self.attendance = self._attendance_query()
        self.attendance.load()

    def leave(self, *, confirmed: bool = False) -> None:
        if self.has_unsaved_changes and not confirmed:
            raise UnsavedChangesError(self.pending_count)
        self.buffer.discard()
        self.students.dispose()
        self.attendance.dispose()

    def _write(self, student_id: str, status: AttendanceStatus, existing: Optional[AttendanceRecord]) -> dict:
        marked_at = self._clock()
        if existing is not None:
            return self._store.update(
                ATTENDANCE,
                existing.attendance_id,
                {"status": status.value, "marked_by": self.marked_by, "marked_at": marked_at},
            )
        return self._store.insert(
            ATTENDANCE,
            {
                "student_id": student_id,
                "subject_id": self.subject_id,
                "date": self.work_date,
                "status": status.value,
                "marked_by": self.marked_by,
                "marked_at": marked_at,
            },
        )

    def submit(self) -> SubmitResult:
        """Write every staged change, one store call each, all at once.

        The buffer is cleared only when every write succeeds. On any failure it
        is left intact so the user can resubmit; nothing is retried here.
        Raises the load error, with no writes issued, when the day's current
        records cannot be read.
        """

        changes = self.buffer.changes
        if not changes:
            return SubmitResult()

        if self.attendance.status != QueryStatus.SUCCESS:
            # update-or-insert needs the current rows; write nothing without them
            self.attendance.refetch()
            if self.attendance.error is not None:
                raise self.attendance.error

        authoritative = self.authoritative
        failures: dict[str, Exception] = {}
        written: list[str] = []

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(changes))) as pool:
            futures = {
                sid: pool.submit(self._write, sid, status, authoritative.get(sid))
                for sid, status in changes.items()
            }
            for sid, fut in futures.items():
                try:
                    fut.result()
                except Exception as exc:
                    failures[sid] = exc
                else:
                    written.append(sid)

        # rows that did land become authoritative for the next submit
        invalidate_attendance(self._cache, self.subject_id, self.work_date)
        invalidate_reports(self._cache, self.subject_id)
        for sid in written:
            invalidate_student_history(self._cache, sid)

        if failures:
            logger.warning(
                "attendance submit for %s on %s: %d of %d writes failed (students: %s)",
                self.subject_id,
                self.work_date.isoformat(),
                len(failures),
                len(changes),
                ", ".join(sorted(failures)),
            )
        else:
            self.buffer.discard()
            logger.info(
                "attendance submit for %s on %s: %d records saved",
                self.subject_id,
                self.work_date.isoformat(),
                len(written),
            )

        self.attendance.refetch()
        return SubmitResult(written=tuple(written), failures=failures)

    def stats(self, students: Optional[list[Student]] = None) -> AttendanceStats:
        students = self.roster if students is None else students
        present = absent = 0
        for s in students:
            status = self.effective_status(s.student_id)
            if status == AttendanceStatus.PRESENT:
                present += 1
            elif status == AttendanceStatus.ABSENT:
                absent += 1
        total = len(students)
        return AttendanceStats(present=present, absent=absent, unmarked=total - present - absent, total=total)

    def grouped_by_course(self) -> dict[str, list[Student]]:
        groups: dict[str, list[Student]] = {}
        for s in self.roster:
            groups.setdefault(s.course, []).append(s)
        return dict(sorted(groups.items()))

    def view(self, *, group_by: str = "roll") -> dict:
        """Everything the marking screen renders, as plain data."""

        if group_by == "course":
            groups = self.grouped_by_course()
        else:
            groups = {"All Students": self.roster}

        return {
            "subject_id": self.subject_id,
            "date": self.work_date,
            "loading": self.students.loading or self.attendance.loading,
            "error": next((str(q.error) for q in (self.students, self.attendance) if q.error), None),
            "has_unsaved_changes": self.has_unsaved_changes,
            "pending_count": self.pending_count,
            "stats": self.stats().to_dict(),
            "groups": [
                {
                    "name": name,
                    "stats": self.stats(members).to_dict(),
                    "students": [
                        {
                            "id": s.student_id,
                            "name": s.name,
                            "roll_number": s.roll_number,
                            "reg_number": s.reg_number,
                            "course": s.course,
                            "status": self.effective_status(s.student_id),
                            "pending": s.student_id in self.buffer,
                        }
                        for s in members
                    ],
                }
                for name, members in groups.items()
            ],
        }


class AttendanceService:
    """Builds marking sessions bound to the shared store and cache."""

    def __init__(
        self,
        store: BackingStore,
        cache: DataCache,
        *,
        max_workers: int = DEFAULT_SUBMIT_MAX_WORKERS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._cache = cache
        self._max_workers = max_workers
        self._clock = clock

    def open_session(self, buffer: PendingEditBuffer, *, marked_by: str) -> AttendanceMarkingSession:
        return AttendanceMarkingSession(
            self._store,
            self._cache,
            buffer,
            marked_by=marked_by,
            max_workers=self._max_workers,
            clock=self._clock,
        ).open()

    def today(self) -> date:
        return self._clock().date()
