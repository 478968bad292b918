from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from .connection import DatabaseConnection

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema files (handles ';' inside quotes).
    buf: list[str] = []
    quote: str | None = None
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path = SCHEMA_PATH) -> int:
    """Create the database (if needed) and run every statement in schema.sql.

    Returns the number of statements executed.
    """

    ensure_database_exists(conn_factory)
    sql = Path(schema_path).read_text(encoding="utf-8")
    sql = _strip_line_comments(_strip_create_db_and_use(sql))

    conn = conn_factory.connect()
    executed = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            executed += 1
        conn.commit()
    finally:
        conn.close()
    return executed


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
