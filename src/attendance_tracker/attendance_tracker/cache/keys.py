"""Cache-key builders, one per resource class.

Every function is pure: the same arguments always give the same string, which
is what lets an invalidation after a write hit the entry the next read uses.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Mapping, Optional, Union

from ..common.datetime_utils import to_iso_date


def subjects_key(teacher_id: str) -> str:
    return f"subjects:{teacher_id}"


def students_key(subject_id: str) -> str:
    return f"students:{subject_id}"


def attendance_key(subject_id: str, work_date: Union[date, str]) -> str:
    return f"attendance:{subject_id}:{to_iso_date(work_date)}"


def teacher_key(user_id: str) -> str:
    return f"teacher:{user_id}"


def reports_key(subject_id: str, date_range: str) -> str:
    return f"reports:{subject_id}:{date_range}"


def student_history_key(student_id: str, date_range: str) -> str:
    return f"history:{student_id}:{date_range}"


def subject_with_students_key(subject_id: str) -> str:
    return f"subject-with-students:{subject_id}"


def user_key(user_id: str, resource: str, params: Optional[Mapping[str, Any]] = None) -> str:
    key = f"user:{user_id}:{resource}"
    if params:
        # sort_keys keeps the key stable regardless of dict insertion order
        key += ":" + json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return key
