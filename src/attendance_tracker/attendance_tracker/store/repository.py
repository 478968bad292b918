from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence

# Resource kinds understood by every backing store.
TEACHERS = "teachers"
SUBJECTS = "subjects"
STUDENTS = "students"
ATTENDANCE = "attendance"


@dataclass(frozen=True)
class Filter:
    column: str
    value: Any
    op: str = "eq"  # eq | gte | lte | in


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


def eq(column: str, value: Any) -> Filter:
    return Filter(column, value, "eq")


def gte(column: str, value: Any) -> Filter:
    return Filter(column, value, "gte")


def lte(column: str, value: Any) -> Filter:
    return Filter(column, value, "lte")


def is_in(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, tuple(values), "in")


class BackingStore(Protocol):
    """Keyed-record CRUD over the system of record.

    Lưu ý (DIP): services depend on this interface, never on a concrete
    database. Implementations raise ``StoreError`` (``ConflictError`` for
    uniqueness violations) and ``NotFoundError`` for a missing id on update.
    """

    def select(
        self,
        resource: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        raise NotImplementedError

    def insert(self, resource: str, record: Mapping[str, Any]) -> dict:
        raise NotImplementedError

    def update(self, resource: str, record_id: str, patch: Mapping[str, Any]) -> dict:
        raise NotImplementedError

    def delete(self, resource: str, record_id: str) -> None:
        raise NotImplementedError


def select_one(store: BackingStore, resource: str, filters: Sequence[Filter]) -> Optional[dict]:
    rows = store.select(resource, filters, limit=1)
    return rows[0] if rows else None
