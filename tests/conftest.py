from __future__ import annotations

import itertools
import threading
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Mapping, Optional, Sequence

import pytest

from attendance_tracker.cache.data_cache import DataCache
from attendance_tracker.core.exceptions import ConflictError, NotFoundError
from attendance_tracker.store.repository import Filter, OrderBy

_UNIQUE = {
    "teachers": [("email",)],
    "subjects": [("teacher_id", "code")],
    "students": [("subject_id", "roll_number"), ("subject_id", "reg_number")],
    "attendance": [("student_id", "subject_id", "date")],
}


def _norm(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _matches(row: Mapping[str, Any], f: Filter) -> bool:
    actual = _norm(row.get(f.column))
    if f.op == "eq":
        return actual == _norm(f.value)
    if f.op == "gte":
        return actual is not None and actual >= _norm(f.value)
    if f.op == "lte":
        return actual is not None and actual <= _norm(f.value)
    if f.op == "in":
        return actual in {_norm(v) for v in f.value}
    raise ValueError(f.op)


class InMemoryStore:
    """Dict-backed BackingStore with the same uniqueness rules as schema.sql.

    ``fail_when(resource, op, payload)`` may return an exception to raise,
    which lets tests inject read or write failures per call.
    """

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = {k: {} for k in _UNIQUE}
        self.calls: list[tuple[str, str]] = []
        self.fail_when: Optional[Callable[[str, str, Any], Optional[Exception]]] = None
        self._lock = threading.Lock()
        self._tick = itertools.count()

    def _maybe_fail(self, resource: str, op: str, payload: Any) -> None:
        self.calls.append((resource, op))
        if self.fail_when is not None:
            exc = self.fail_when(resource, op, payload)
            if exc is not None:
                raise exc

    def _check_unique(self, resource: str, row: dict, exclude: Optional[str] = None) -> None:
        for cols in _UNIQUE[resource]:
            key = tuple(_norm(row.get(c)) for c in cols)
            for rid, other in self.tables[resource].items():
                if rid != exclude and tuple(_norm(other.get(c)) for c in cols) == key:
                    raise ConflictError(f"Duplicate entry for {resource}.{'/'.join(cols)}")

    def _now(self) -> datetime:
        return datetime(2024, 1, 1, 8, 0) + timedelta(seconds=next(self._tick))

    def select(
        self,
        resource: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        self._maybe_fail(resource, "select", filters)
        with self._lock:
            rows = [dict(r) for r in self.tables[resource].values() if all(_matches(r, f) for f in filters)]
        for o in reversed(list(order_by)):
            rows.sort(key=lambda r: _norm(r.get(o.column)), reverse=o.descending)
        return rows[:limit] if limit is not None else rows

    def insert(self, resource: str, record: Mapping[str, Any]) -> dict:
        self._maybe_fail(resource, "insert", record)
        with self._lock:
            row = dict(record)
            row.setdefault("id", str(uuid.uuid4()))
            now = self._now()
            row.setdefault("created_at", now)
            row.setdefault("updated_at", now)
            self._check_unique(resource, row)
            self.tables[resource][row["id"]] = row
            return dict(row)

    def update(self, resource: str, record_id: str, patch: Mapping[str, Any]) -> dict:
        self._maybe_fail(resource, "update", (record_id, patch))
        with self._lock:
            current = self.tables[resource].get(record_id)
            if current is None:
                raise NotFoundError(f"{resource} {record_id} not found")
            row = {**current, **patch, "updated_at": self._now()}
            self._check_unique(resource, row, exclude=record_id)
            self.tables[resource][record_id] = row
            return dict(row)

    def delete(self, resource: str, record_id: str) -> None:
        self._maybe_fail(resource, "delete", record_id)
        with self._lock:
            self.tables[resource].pop(record_id, None)

    def count(self, resource: str, op: str) -> int:
        return sum(1 for c in self.calls if c == (resource, op))

    def fail_on(self, resource: str, op: str, exc: Exception, when: Callable[[Any], bool] = lambda _p: True) -> None:
        def _hook(r: str, o: str, payload: Any) -> Optional[Exception]:
            if r == resource and o == op and when(payload):
                return exc
            return None

        self.fail_when = _hook

    def heal(self) -> None:
        self.fail_when = None


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> DataCache:
    return DataCache(clock=clock)


@pytest.fixture
def roster(store):
    """One teacher, one subject, two students (s1, s2)."""

    store.insert("teachers", {"id": "t1", "email": "ada@example.edu", "name": "Ada", "password_hash": "x"})
    store.insert(
        "subjects",
        {"id": "subj1", "teacher_id": "t1", "name": "Physics", "code": "PHY101", "academic_year": "2024", "semester": "1"},
    )
    store.insert(
        "students",
        {"id": "s1", "subject_id": "subj1", "name": "Ana", "reg_number": "R-1", "roll_number": "1", "course": "BSc"},
    )
    store.insert(
        "students",
        {"id": "s2", "subject_id": "subj1", "name": "Ben", "reg_number": "R-2", "roll_number": "2", "course": "BA"},
    )
    return store
