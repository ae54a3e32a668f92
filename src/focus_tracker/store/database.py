from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "tasks": ("id", "user_id", "title", "completed", "tags", "priority", "color", "created_at"),
    "focus_sessions": ("id", "user_id", "duration", "created_at"),
    "profiles": ("id", "full_name", "email", "updated_at"),
}
BOOL_COLUMNS = {"completed"}
JSON_COLUMNS = {"tags"}


def _encode_value(column: str, value: Any) -> Any:
    if column in BOOL_COLUMNS and value is not None:
        return 1 if value else 0
    if column in JSON_COLUMNS and value is not None:
        return json.dumps(list(value))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return value


def _decode_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    for column in BOOL_COLUMNS & data.keys():
        data[column] = bool(data[column])
    for column in JSON_COLUMNS & data.keys():
        raw = data[column]
        try:
            data[column] = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            data[column] = []
    return data


class Database:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """
            )
            current = {row["version"] for row in conn.execute("SELECT version FROM schema_migrations")}

            migrations: dict[int, str] = {
                1: """
                    CREATE TABLE profiles (
                        id TEXT PRIMARY KEY,
                        full_name TEXT,
                        email TEXT,
                        updated_at TEXT NOT NULL
                    );

                    CREATE TABLE tasks (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        completed INTEGER NOT NULL DEFAULT 0,
                        tags TEXT NOT NULL DEFAULT '[]',
                        priority TEXT CHECK(priority IS NULL OR priority IN ('low', 'medium', 'high')),
                        created_at TEXT NOT NULL
                    );

                    CREATE INDEX idx_tasks_user_created ON tasks(user_id, created_at);

                    CREATE TABLE focus_sessions (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        duration INTEGER NOT NULL CHECK(duration > 0),
                        created_at TEXT NOT NULL
                    );

                    CREATE INDEX idx_focus_sessions_user_created ON focus_sessions(user_id, created_at);
                """,
                2: """
                    ALTER TABLE tasks ADD COLUMN color TEXT;
                """,
            }

            now = datetime.now().isoformat(timespec="seconds")
            for version in sorted(migrations):
                if version in current:
                    continue
                conn.executescript(migrations[version])
                conn.execute(
                    "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                    (version, now),
                )

    def table_exists(self, table: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table,),
            ).fetchone()
        return row is not None

    def insert_row(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        columns = _checked_columns(table, values)
        payload = dict(values)
        if "id" not in payload:
            payload["id"] = uuid.uuid4().hex
            columns = ("id",) + columns
        placeholders = ", ".join("?" for _ in columns)
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO {table}({', '.join(columns)}) VALUES ({placeholders})",
                [_encode_value(c, payload[c]) for c in columns],
            )
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (payload["id"],)).fetchone()
        assert row is not None
        return _decode_row(row)

    def select_rows(
        self,
        table: str,
        equals: dict[str, Any] | None = None,
        since: tuple[str, datetime] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        conditions, params = _where(table, equals or {})
        if since is not None:
            column, start = since
            _checked_columns(table, {column: None})
            conditions.append(f"{column} >= ?")
            params.append(_encode_value(column, start))

        query = f"SELECT * FROM {table}"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        if order_by is not None:
            _checked_columns(table, {order_by: None})
            query += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(1, int(limit)))

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_decode_row(r) for r in rows]

    def update_rows(self, table: str, values: dict[str, Any], equals: dict[str, Any]) -> list[dict[str, Any]]:
        if not equals:
            raise ValueError("update requires at least one filter")
        columns = _checked_columns(table, values)
        if not columns:
            return self.select_rows(table, equals=equals)
        conditions, params = _where(table, equals)
        assignments = ", ".join(f"{c} = ?" for c in columns)
        with self._connect() as conn:
            ids = [
                r["id"]
                for r in conn.execute(f"SELECT id FROM {table} WHERE {' AND '.join(conditions)}", params).fetchall()
            ]
            if not ids:
                return []
            conn.execute(
                f"UPDATE {table} SET {assignments} WHERE {' AND '.join(conditions)}",
                [_encode_value(c, values[c]) for c in columns] + params,
            )
            marks = ", ".join("?" for _ in ids)
            rows = conn.execute(f"SELECT * FROM {table} WHERE id IN ({marks})", ids).fetchall()
        return [_decode_row(r) for r in rows]

    def delete_rows(self, table: str, equals: dict[str, Any]) -> int:
        if not equals:
            raise ValueError("delete requires at least one filter")
        conditions, params = _where(table, equals)
        with self._connect() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE {' AND '.join(conditions)}", params)
        return int(cur.rowcount)


def _checked_columns(table: str, values: dict[str, Any]) -> tuple[str, ...]:
    known = TABLE_COLUMNS.get(table)
    if known is None:
        raise ValueError(f"unknown table: {table}")
    unknown = [c for c in values if c not in known]
    if unknown:
        raise ValueError(f"unknown columns for {table}: {', '.join(unknown)}")
    return tuple(values)


def _where(table: str, equals: dict[str, Any]) -> tuple[list[str], list[Any]]:
    columns = _checked_columns(table, equals)
    return [f"{c} = ?" for c in columns], [_encode_value(c, equals[c]) for c in columns]
