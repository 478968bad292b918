from __future__ import annotations

from datetime import date

import pytest

from attendance_tracker.core.exceptions import NotFoundError
from attendance_tracker.reports.service import ReportService
from attendance_tracker.reports.summary import build_student_history, build_subject_report

TODAY = date(2024, 3, 15)


def _mark(store, student_id, day, status):
    store.insert(
        "attendance",
        {"student_id": student_id, "subject_id": "subj1", "date": day, "status": status, "marked_by": "t1"},
    )


@pytest.fixture
def marked(roster):
    _mark(roster, "s1", date(2024, 3, 1), "present")
    _mark(roster, "s1", date(2024, 3, 4), "present")
    _mark(roster, "s2", date(2024, 3, 1), "absent")
    _mark(roster, "s2", date(2024, 3, 4), "present")
    _mark(roster, "s2", date(2024, 2, 20), "absent")
    return roster


def test_current_month_summary(marked):
    report = build_subject_report(marked, "subj1", "current_month", today=TODAY)

    by_student = {r.student_id: r for r in report.rows}
    assert (by_student["s1"].present_count, by_student["s1"].total_classes) == (2, 2)
    assert by_student["s1"].attendance_percentage == 100.0
    assert (by_student["s2"].present_count, by_student["s2"].absent_count) == (1, 1)
    assert by_student["s2"].attendance_percentage == 50.0
    assert report.average_percentage == 75.0
    assert report.high_attendance == 1
    assert report.low_attendance == 1


def test_daily_matrix_marks_unmarked_days(marked):
    report = build_subject_report(marked, "subj1", "current_month", today=TODAY)

    cells = {(c.date, c.student_id): c.status for c in report.daily}
    assert len(report.daily) == 31 * 2
    assert cells[(date(2024, 3, 1), "s2")] == "absent"
    assert cells[(date(2024, 3, 2), "s1")] == "unmarked"


def test_all_time_includes_older_records(marked):
    report = build_subject_report(marked, "subj1", "all_time", today=TODAY)

    s2 = next(r for r in report.rows if r.student_id == "s2")
    assert s2.total_classes == 3
    assert report.start_date is None
    assert len(report.daily) == 31 * 2


def test_student_without_records_has_zero_percentage(roster):
    report = build_subject_report(roster, "subj1", "last_month", today=TODAY)

    assert all(r.total_classes == 0 and r.attendance_percentage == 0.0 for r in report.rows)
    assert report.average_percentage == 0.0


def test_unknown_subject(store):
    with pytest.raises(NotFoundError):
        build_subject_report(store, "missing", "current_month", today=TODAY)


def test_student_history_newest_first(marked):
    history = build_student_history(marked, "s2", "last_3_months", today=TODAY)

    assert [r.date for r in history.records] == [date(2024, 3, 4), date(2024, 3, 1), date(2024, 2, 20)]
    assert (history.present_count, history.absent_count) == (1, 2)
    assert history.attendance_percentage == 33.33


def test_report_service_caches_per_range(marked, cache):
    service = ReportService(marked, cache, today=lambda: TODAY)

    first = service.report_query("subj1", "current_month")
    before = marked.count("attendance", "select")
    second = service.report_query("subj1", "current_month")

    assert second.data is first.data
    assert marked.count("attendance", "select") == before
    service.report_query("subj1", "last_month")
    assert marked.count("attendance", "select") == before + 1
