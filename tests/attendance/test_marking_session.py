from __future__ import annotations

import threading
from datetime import date, datetime

import pytest

from attendance_tracker.attendance.pending import PendingEditBuffer
from attendance_tracker.attendance.service import AttendanceMarkingSession, AttendanceService
from attendance_tracker.cache import keys
from attendance_tracker.core.enums import AttendanceStatus, QueryStatus
from attendance_tracker.core.exceptions import StoreError, UnsavedChangesError, ValidationError

DAY = date(2024, 3, 4)


def fixed_clock() -> datetime:
    return datetime(2024, 3, 4, 9, 30)


@pytest.fixture
def marking(roster, cache):
    return AttendanceMarkingSession(
        roster, cache, PendingEditBuffer("subj1", DAY), marked_by="t1", clock=fixed_clock
    ).open()


def _rows(store):
    return sorted(store.tables["attendance"].values(), key=lambda r: r["student_id"])


def test_open_loads_roster_sorted_by_roll(marking):
    assert [s.student_id for s in marking.roster] == ["s1", "s2"]
    assert marking.attendance.data == []
    assert marking.students.status == QueryStatus.SUCCESS


def test_stats_combine_pending_and_fetched(roster, cache):
    roster.insert(
        "attendance",
        {"student_id": "s1", "subject_id": "subj1", "date": DAY, "status": "present", "marked_by": "t1"},
    )
    marking = AttendanceMarkingSession(roster, cache, PendingEditBuffer("subj1", DAY), marked_by="t1").open()

    assert marking.stats().to_dict() == {"present": 1, "absent": 0, "unmarked": 1, "total": 2, "percentage": 50}

    marking.stage_change("s2", "absent")
    stats = marking.stats()
    assert (stats.present, stats.absent, stats.unmarked) == (1, 1, 0)


def test_stage_change_rejects_bad_status_and_unknown_student(marking):
    with pytest.raises(ValidationError):
        marking.stage_change("s1", "late")
    with pytest.raises(ValidationError):
        marking.stage_change("nobody", "present")
    assert not marking.has_unsaved_changes


def test_submit_inserts_clears_buffer_and_refetches(marking, roster, cache):
    marking.stage_change("s1", "present")
    marking.stage_change("s2", "absent")

    result = marking.submit()

    assert result.ok
    assert sorted(result.written) == ["s1", "s2"]
    assert not marking.has_unsaved_changes
    assert len(marking.buffer) == 0
    assert [(r["student_id"], r["status"], r["marked_by"]) for r in _rows(roster)] == [
        ("s1", "present", "t1"),
        ("s2", "absent", "t1"),
    ]
    assert {r.student_id: r.status for r in marking.attendance.data} == {
        "s1": AttendanceStatus.PRESENT,
        "s2": AttendanceStatus.ABSENT,
    }
    assert len(cache.get(keys.attendance_key("subj1", DAY))) == 2


def test_submit_updates_existing_rows_instead_of_inserting(marking, roster):
    marking.stage_change("s1", "present")
    marking.submit()

    marking.stage_change("s1", "absent")
    result = marking.submit()

    assert result.ok
    rows = _rows(roster)
    assert len(rows) == 1
    assert rows[0]["status"] == "absent"
    assert roster.count("attendance", "update") == 1


def test_submit_with_nothing_staged_makes_no_writes(marking, roster):
    result = marking.submit()

    assert result.ok
    assert result.written == ()
    assert roster.count("attendance", "insert") == 0


def test_partial_failure_keeps_buffer_and_flag(marking, roster):
    roster.fail_on("attendance", "insert", StoreError("boom"), when=lambda rec: rec["student_id"] == "s2")
    marking.stage_change("s1", "present")
    marking.stage_change("s2", "absent")

    result = marking.submit()

    assert not result.ok
    assert set(result.failures) == {"s2"}
    assert result.written == ("s1",)
    assert marking.has_unsaved_changes
    assert len(marking.buffer) == 2
    assert result.to_dict()["failed"] == {"s2": "boom"}

    # the row that did land is now authoritative, so a retry updates it
    roster.heal()
    retry = marking.submit()
    assert retry.ok
    assert len(_rows(roster)) == 2
    assert roster.count("attendance", "update") == 1


def test_duplicate_row_is_reported_as_conflict(marking, roster):
    # another session wrote s1 after this one loaded
    roster.insert(
        "attendance",
        {"student_id": "s1", "subject_id": "subj1", "date": DAY, "status": "absent", "marked_by": "t9"},
    )
    marking.stage_change("s1", "present")

    result = marking.submit()

    assert result.has_conflict
    assert marking.has_unsaved_changes


def test_submit_invalidates_reports_and_history(marking, cache):
    cache.set(keys.reports_key("subj1", "current_month"), {"stale": True}, 300)
    cache.set(keys.student_history_key("s1", "all_time"), {"stale": True}, 300)
    cache.set(keys.student_history_key("s2", "all_time"), {"untouched": True}, 300)
    marking.stage_change("s1", "present")

    marking.submit()

    assert keys.reports_key("subj1", "current_month") not in cache
    assert keys.student_history_key("s1", "all_time") not in cache
    assert keys.student_history_key("s2", "all_time") in cache


def test_writes_run_concurrently(roster, cache):
    seen = set()
    barrier = threading.Barrier(2, timeout=5)

    def hook(resource, op, payload):
        if resource == "attendance" and op == "insert":
            seen.add(threading.get_ident())
            barrier.wait()
        return None

    marking = AttendanceMarkingSession(
        roster, cache, PendingEditBuffer("subj1", DAY), marked_by="t1", max_workers=4
    ).open()
    marking.stage_change("s1", "present")
    marking.stage_change("s2", "present")
    roster.fail_when = hook

    assert marking.submit().ok
    assert len(seen) == 2


def test_change_date_requires_confirmation_when_dirty(marking):
    marking.stage_change("s1", "present")

    with pytest.raises(UnsavedChangesError):
        marking.change_date("2024-03-05")
    assert marking.work_date == DAY

    marking.change_date("2024-03-05", confirmed=True)
    assert marking.work_date == date(2024, 3, 5)
    assert not marking.has_unsaved_changes
    assert marking.attendance.key == keys.attendance_key("subj1", "2024-03-05")


def test_leave_guards_unsaved_changes(marking):
    marking.stage_change("s2", "absent")

    with pytest.raises(UnsavedChangesError) as exc:
        marking.leave()
    assert exc.value.pending_count == 1

    marking.leave(confirmed=True)
    assert not marking.has_unsaved_changes
    assert marking.attendance.disposed


def test_view_groups_by_course(marking):
    marking.stage_change("s1", "present")

    view = marking.view(group_by="course")

    assert [g["name"] for g in view["groups"]] == ["BA", "BSc"]
    ana = view["groups"][1]["students"][0]
    assert ana["status"] == AttendanceStatus.PRESENT
    assert ana["pending"] is True
    assert view["pending_count"] == 1


def test_service_opens_sessions_with_shared_cache(roster, cache):
    service = AttendanceService(roster, cache, clock=fixed_clock)

    first = service.open_session(PendingEditBuffer("subj1", DAY), marked_by="t1")
    service.open_session(PendingEditBuffer("subj1", DAY), marked_by="t1")

    assert first.roster
    assert roster.count("students", "select") == 1
    assert service.today() == DAY


def _fail_first_attendance_reads(store, times):
    remaining = [times]

    def hook(resource, op, payload):
        if resource == "attendance" and op == "select" and remaining[0] > 0:
            remaining[0] -= 1
            return StoreError("read timeout")
        return None

    store.fail_when = hook


def test_submit_reloads_records_before_writing_when_load_failed(roster, cache):
    roster.insert(
        "attendance",
        {"id": "a1", "student_id": "s1", "subject_id": "subj1", "date": DAY, "status": "absent", "marked_by": "t1"},
    )
    _fail_first_attendance_reads(roster, 1)
    marking = AttendanceMarkingSession(roster, cache, PendingEditBuffer("subj1", DAY), marked_by="t1").open()
    assert marking.attendance.status == QueryStatus.FAILURE
    marking.stage_change("s1", "present")

    result = marking.submit()

    assert result.ok
    assert not result.has_conflict
    assert [r["status"] for r in _rows(roster)] == ["present"]
    assert roster.count("attendance", "update") == 1
    assert roster.count("attendance", "insert") == 0


def test_submit_writes_nothing_when_records_cannot_be_read(roster, cache):
    _fail_first_attendance_reads(roster, 2)
    marking = AttendanceMarkingSession(roster, cache, PendingEditBuffer("subj1", DAY), marked_by="t1").open()
    marking.stage_change("s1", "present")

    with pytest.raises(StoreError):
        marking.submit()

    assert roster.count("attendance", "insert") == 0
    assert roster.count("attendance", "update") == 0
    assert marking.has_unsaved_changes
