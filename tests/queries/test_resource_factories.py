from __future__ import annotations

from datetime import date

import pytest

from attendance_tracker.cache import keys
from attendance_tracker.core.exceptions import NotFoundError, StoreError
from attendance_tracker.queries import resources


def test_subjects_query_is_keyed_by_teacher(store, cache, roster):
    q = resources.subjects_query(store, cache, "t1").load()

    assert q.key == keys.subjects_key("t1")
    assert [s.code for s in q.data] == ["PHY101"]
    assert cache.get(keys.subjects_key("t1")) == q.data


def test_missing_scope_gives_disabled_query(store, cache):
    for q in (
        resources.subjects_query(store, cache, None),
        resources.students_query(store, cache, ""),
        resources.attendance_query(store, cache, "subj1", None),
        resources.teacher_profile_query(store, cache, None),
    ):
        q.load()
        assert not q.enabled
        assert not q.loading
    assert store.calls == []


def test_students_query_second_load_hits_cache(store, cache, roster):
    resources.students_query(store, cache, "subj1").load()
    before = store.count("students", "select")

    q = resources.students_query(store, cache, "subj1").load()

    assert [s.student_id for s in q.data] == ["s1", "s2"]
    assert store.count("students", "select") == before


def test_attendance_query_accepts_date_or_string(store, cache, roster):
    store.insert(
        "attendance",
        {"student_id": "s1", "subject_id": "subj1", "date": "2024-03-04", "status": "present", "marked_by": "t1"},
    )

    q = resources.attendance_query(store, cache, "subj1", date(2024, 3, 4)).load()

    assert q.key == "attendance:subj1:2024-03-04"
    assert [r.student_id for r in q.data] == ["s1"]
    assert resources.attendance_query(store, cache, "subj1", "2024-03-05").load().data == []


def test_missing_teacher_profile_is_cached_as_none(store, cache):
    q = resources.teacher_profile_query(store, cache, "ghost").load()
    assert q.data is None
    assert q.error is None

    resources.teacher_profile_query(store, cache, "ghost").load()
    assert store.count("teachers", "select") == 1


def test_subject_with_students_unknown_subject_fails(store, cache):
    q = resources.subject_with_students_query(store, cache, "nope").load()

    assert isinstance(q.error, NotFoundError)
    assert keys.subject_with_students_key("nope") not in cache


def test_store_failure_surfaces_on_query(store, cache, roster):
    store.fail_on("students", "select", StoreError("timeout"))

    q = resources.students_query(store, cache, "subj1").load()

    assert isinstance(q.error, StoreError)
    assert keys.students_key("subj1") not in cache


@pytest.mark.parametrize("label,expected", [("last_month", "last_month"), ("bogus", "current_month"), (None, "current_month")])
def test_report_query_normalises_range_label(store, cache, roster, label, expected):
    q = resources.attendance_report_query(store, cache, "subj1", label, today=date(2024, 3, 15))

    assert q.key == keys.reports_key("subj1", expected)
