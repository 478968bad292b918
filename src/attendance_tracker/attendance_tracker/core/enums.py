from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the attendance table."""

    PRESENT = "present"
    ABSENT = "absent"


class DateRange(str, Enum):
    """Named reporting windows accepted by reports and student history."""

    CURRENT_MONTH = "current_month"
    LAST_MONTH = "last_month"
    LAST_3_MONTHS = "last_3_months"
    ALL_TIME = "all_time"


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"
