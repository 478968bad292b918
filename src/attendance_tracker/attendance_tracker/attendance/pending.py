"""Staging area for attendance edits that have not been written yet.

The buffer only ever holds proposed statuses. Authoritative records live in
the attendance query; the two are merged at display time by
``effective_status`` and never mixed otherwise.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Union

from ..common.datetime_utils import as_date
from ..core.enums import AttendanceStatus
from ..core.exceptions import UnsavedChangesError
from .model import AttendanceRecord


def effective_status(
    pending: Mapping[str, AttendanceStatus],
    authoritative: Mapping[str, AttendanceRecord],
    student_id: str,
) -> Optional[AttendanceStatus]:
    """Pending value if staged, else the fetched status, else None (unmarked)."""

    staged = pending.get(student_id)
    if staged is not None:
        return staged
    record = authoritative.get(student_id)
    return record.status if record else None


class PendingEditBuffer:
    """Staged status changes for one subject on one day."""

    def __init__(self, subject_id: str, work_date: Union[date, str]):
        self.subject_id = subject_id
        self.work_date = as_date(work_date)
        self._changes: dict[str, AttendanceStatus] = {}
        self.has_unsaved_changes = False

    def __len__(self) -> int:
        return len(self._changes)

    def __contains__(self, student_id: object) -> bool:
        return student_id in self._changes

    @property
    def changes(self) -> dict[str, AttendanceStatus]:
        return dict(self._changes)

    def get(self, student_id: str) -> Optional[AttendanceStatus]:
        return self._changes.get(student_id)

    def stage_change(self, student_id: str, status: Union[AttendanceStatus, str]) -> None:
        self._changes[student_id] = AttendanceStatus(status)
        self.has_unsaved_changes = True

    def effective_status(
        self, student_id: str, authoritative: Mapping[str, AttendanceRecord]
    ) -> Optional[AttendanceStatus]:
        return effective_status(self._changes, authoritative, student_id)

    def discard(self) -> None:
        self._changes.clear()
        self.has_unsaved_changes = False

    def is_scoped_to(self, subject_id: str, work_date: Union[date, str]) -> bool:
        return self.subject_id == subject_id and self.work_date == as_date(work_date)

    def rescope(self, subject_id: str, work_date: Union[date, str], *, confirmed: bool = False) -> None:
        """Move the buffer to another subject/day, dropping staged edits.

        Raises ``UnsavedChangesError`` instead when edits are staged and the
        caller has not confirmed discarding them.
        """

        if self.is_scoped_to(subject_id, work_date):
            return
        if self.has_unsaved_changes and not confirmed:
            raise UnsavedChangesError(len(self._changes))
        self.discard()
        self.subject_id = subject_id
        self.work_date = as_date(work_date)

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "date": self.work_date.isoformat(),
            "changes": {sid: st.value for sid, st in self._changes.items()},
            "unsaved": self.has_unsaved_changes,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "PendingEditBuffer":
        buf = cls(str(data["subject_id"]), data["date"])
        for sid, st in (data.get("changes") or {}).items():
            buf._changes[str(sid)] = AttendanceStatus(st)
        buf.has_unsaved_changes = bool(data.get("unsaved", bool(buf._changes)))
        return buf
