from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..core.constants import DEFAULT_DATE_RANGE
from ..core.enums import DateRange
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (expected YYYY-MM-DD): {value!r}")


def to_iso_date(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return parse_iso_date(value).strftime("%Y-%m-%d")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def sub_months(d: date, months: int) -> date:
    """Shift *d* back by whole months, clamping the day to the target month."""
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_date_range(label: Optional[str]) -> DateRange:
    try:
        return DateRange(label)
    except ValueError:
        return DateRange(DEFAULT_DATE_RANGE)


def resolve_date_range(label: Optional[str], *, today: date) -> tuple[Optional[date], Optional[date]]:
    """Turn a range label into inclusive (start, end) dates.

    ``all_time`` has no bounds and returns ``(None, None)``. Unknown labels
    fall back to the current month.
    """

    rng = parse_date_range(label)
    if rng == DateRange.LAST_MONTH:
        prev = sub_months(today, 1)
        return start_of_month(prev), end_of_month(prev)
    if rng == DateRange.LAST_3_MONTHS:
        return start_of_month(sub_months(today, 2)), end_of_month(today)
    if rng == DateRange.ALL_TIME:
        return None, None
    return start_of_month(today), end_of_month(today)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def as_date(value) -> date:
    """Accept a date, datetime or ISO string coming back from a store row."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value))


def as_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
