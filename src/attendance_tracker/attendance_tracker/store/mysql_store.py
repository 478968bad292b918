from __future__ import annotations

import re
import uuid
from typing import Any, Mapping, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import ATTENDANCE, STUDENTS, SUBJECTS, TEACHERS, BackingStore, Filter, OrderBy

# resource kind -> table name; everything else is rejected
_TABLES = {
    TEACHERS: "teachers",
    SUBJECTS: "subjects",
    STUDENTS: "students",
    ATTENDANCE: "attendance",
}

_IDENT = re.compile(r"^[a-z_][a-z0-9_]*$")

_OPS = {"eq": "=", "gte": ">=", "lte": "<="}


def _table(resource: str) -> str:
    try:
        return _TABLES[resource]
    except KeyError:
        raise ValidationError(f"Unknown resource: {resource!r}")


def _column(name: str) -> str:
    if not _IDENT.match(name or ""):
        raise ValidationError(f"Invalid column name: {name!r}")
    return f"`{name}`"


def _where(filters: Sequence[Filter]) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for f in filters:
        col = _column(f.column)
        if f.op == "in":
            values = list(f.value)
            if not values:
                clauses.append("1=0")
                continue
            clauses.append(f"{col} IN ({', '.join(['%s'] * len(values))})")
            params.extend(values)
        elif f.op in _OPS:
            clauses.append(f"{col} {_OPS[f.op]} %s")
            params.append(f.value)
        else:
            raise ValidationError(f"Unsupported filter operator: {f.op!r}")
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def _translate(exc: mysql.connector.Error) -> StoreError:
    if exc.errno == errorcode.ER_DUP_ENTRY:
        return ConflictError(exc.msg or "Duplicate entry")
    return StoreError(exc.msg or str(exc))


class MySQLBackingStore(BackingStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def select(
        self,
        resource: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        where, params = _where(filters)
        sql = f"SELECT * FROM {_table(resource)}{where}"
        if order_by:
            sql += " ORDER BY " + ", ".join(
                f"{_column(o.column)} {'DESC' if o.descending else 'ASC'}" for o in order_by
            )
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, tuple(params))
                return fetchall(cur)
        except mysql.connector.Error as exc:
            raise _translate(exc) from exc

    def _get(self, cur, table: str, record_id: str) -> Optional[dict]:
        cur.execute(f"SELECT * FROM {table} WHERE id=%s", (record_id,))
        return fetchone(cur)

    def insert(self, resource: str, record: Mapping[str, Any]) -> dict:
        table = _table(resource)
        values = dict(record)
        values.setdefault("id", str(uuid.uuid4()))
        cols = [_column(c) for c in values]

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                    tuple(values.values()),
                )
                return self._get(cur, table, values["id"]) or values
        except mysql.connector.Error as exc:
            raise _translate(exc) from exc

    def update(self, resource: str, record_id: str, patch: Mapping[str, Any]) -> dict:
        table = _table(resource)
        if not patch:
            raise ValidationError("Nothing to update")
        assignments = ", ".join(f"{_column(c)}=%s" for c in patch)

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE {table} SET {assignments} WHERE id=%s",
                    (*patch.values(), record_id),
                )
                row = self._get(cur, table, record_id)
        except mysql.connector.Error as exc:
            raise _translate(exc) from exc

        if row is None:
            raise NotFoundError(f"{resource} {record_id} not found")
        return row

    def delete(self, resource: str, record_id: str) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"DELETE FROM {_table(resource)} WHERE id=%s", (record_id,))
        except mysql.connector.Error as exc:
            raise _translate(exc) from exc
