from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Iterable, List, Optional, Tuple

from .models import NoteEntity, TodoEntity, UserEntity
from .query import ListQuery, TodoFilter
from .repositories import Repository, check_changes, new_id

# Columns holding JSON documents rather than scalars.
_JSON_COLUMNS = ("tags", "assigned_users", "notes")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todos (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NULL,
        priority TEXT NOT NULL CHECK (priority IN ('low', 'medium', 'high')),
        completed INTEGER NOT NULL DEFAULT 0,
        tags TEXT NOT NULL DEFAULT '[]',
        assigned_users TEXT NOT NULL DEFAULT '[]',
        notes TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_todos_user_id ON todos(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_todos_priority ON todos(priority)",
    "CREATE INDEX IF NOT EXISTS idx_todos_completed ON todos(completed)",
    "CREATE INDEX IF NOT EXISTS idx_todos_created_at ON todos(created_at)",
)


def _dt_to_text(value: datetime) -> str:
    # Fixed-width timestamps keep lexicographic and chronological order identical.
    return value.isoformat(timespec="microseconds")


def _casefold(value: Optional[str]) -> str:
    return (value or "").casefold()


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def filter_to_sql(todo_filter: TodoFilter) -> Tuple[str, List[Any]]:
    """
    Translate a TodoFilter into a WHERE clause and its parameters.
    Used for both the COUNT and the page query.
    """
    clauses = ["user_id = ?"]
    params: List[Any] = [todo_filter.user_id]

    if todo_filter.priorities:
        clauses.append(f"priority IN ({_placeholders(len(todo_filter.priorities))})")
        params.extend(todo_filter.priorities)

    if todo_filter.tags:
        clauses.append(
            "EXISTS (SELECT 1 FROM json_each(todos.tags) AS t "
            f"WHERE t.value IN ({_placeholders(len(todo_filter.tags))}))"
        )
        params.extend(todo_filter.tags)

    if todo_filter.search:
        # Substring search on title and description, Unicode case-insensitive
        clauses.append("(instr(casefold(title), ?) > 0 OR instr(casefold(description), ?) > 0)")
        needle = todo_filter.search.casefold()
        params.extend([needle, needle])

    return "WHERE " + " AND ".join(clauses), params


class SQLiteRepository(Repository):
    """
    SQLite-backed document store. Scalar fields are columns; tags, assignees
    and notes are JSON arrays stored alongside them.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> UserEntity:
        return {"id": row["id"], "username": row["username"], "name": row["name"]}

    @staticmethod
    def _row_to_todo(row: sqlite3.Row) -> TodoEntity:
        notes: List[NoteEntity] = [
            {
                "id": n["id"],
                "content": n["content"],
                "user_id": n.get("user_id"),
                "created_at": datetime.fromisoformat(n["created_at"]),
            }
            for n in json.loads(row["notes"])
        ]
        return {
            "id": row["id"],
            "title": row["title"],
            "description": row["description"],
            "priority": row["priority"],
            "completed": bool(row["completed"]),
            "user_id": row["user_id"],
            "tags": json.loads(row["tags"]),
            "assigned_users": json.loads(row["assigned_users"]),
            "notes": notes,
            "created_at": datetime.fromisoformat(row["created_at"]),
            "updated_at": datetime.fromisoformat(row["updated_at"]),
        }

    @staticmethod
    def _note_to_json(note: NoteEntity) -> str:
        return json.dumps(
            {
                "id": note["id"],
                "content": note["content"],
                "user_id": note["user_id"],
                "created_at": _dt_to_text(note["created_at"]),
            }
        )

    def _to_column(self, name: str, value: Any) -> Any:
        if name == "notes":
            return "[" + ", ".join(self._note_to_json(n) for n in value) + "]"
        if name in _JSON_COLUMNS:
            return json.dumps(list(value))
        if name == "completed":
            return 1 if value else 0
        if isinstance(value, datetime):
            return _dt_to_text(value)
        return value

    def _fetch_todo(self, conn: sqlite3.Connection, todo_id: str) -> Optional[TodoEntity]:
        row = conn.execute("SELECT * FROM todos WHERE id = ?", (todo_id,)).fetchone()
        return self._row_to_todo(row) if row else None

    # users

    def add_user(self, username: str, name: str, user_id: Optional[str] = None) -> UserEntity:
        user: UserEntity = {"id": user_id or new_id(), "username": username, "name": name}
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO users (id, username, name) VALUES (?, ?, ?)",
                (user["id"], user["username"], user["name"]),
            )
        return user

    def list_users(self) -> List[UserEntity]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY username").fetchall()
            return [self._row_to_user(r) for r in rows]

    def find_users_by_ids(self, user_ids: Iterable[str]) -> List[UserEntity]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM users WHERE id IN ({_placeholders(len(ids))})", ids
            ).fetchall()
            return [self._row_to_user(r) for r in rows]

    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
            return self._row_to_user(row) if row else None

    # todos

    def insert_todo(self, fields: Dict[str, Any]) -> TodoEntity:
        document = {**fields, "id": new_id()}
        columns = [
            "id", "user_id", "title", "description", "priority", "completed",
            "tags", "assigned_users", "notes", "created_at", "updated_at",
        ]
        values = [self._to_column(c, document.get(c, [] if c in _JSON_COLUMNS else None)) for c in columns]
        with self._conn() as conn:
            conn.execute(
                f"INSERT INTO todos ({', '.join(columns)}) VALUES ({_placeholders(len(columns))})",
                values,
            )
            created = self._fetch_todo(conn, document["id"])
            assert created is not None
            return created

    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        with self._conn() as conn:
            return self._fetch_todo(conn, todo_id)

    def update_todo(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        check_changes(changes)
        with self._conn() as conn:
            if changes:
                names = sorted(changes)
                assignments = ", ".join(f"{n} = ?" for n in names)
                params = [self._to_column(n, changes[n]) for n in names]
                cur = conn.execute(f"UPDATE todos SET {assignments} WHERE id = ?", [*params, todo_id])
                if cur.rowcount == 0:
                    return None
            return self._fetch_todo(conn, todo_id)

    def delete_todo(self, todo_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
            return cur.rowcount > 0

    def push_note(self, todo_id: str, note: NoteEntity) -> Optional[TodoEntity]:
        with self._conn() as conn:
            cur = conn.execute(
                "UPDATE todos SET notes = json_insert(notes, '$[#]', json(?)) WHERE id = ?",
                (self._note_to_json(note), todo_id),
            )
            if cur.rowcount == 0:
                return None
            return self._fetch_todo(conn, todo_id)

    def find_todos(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        where_sql, params = filter_to_sql(query.filter)
        with self._conn() as conn:
            count_row = conn.execute(f"SELECT COUNT(*) AS cnt FROM todos {where_sql}", params).fetchone()
            total = int(count_row["cnt"]) if count_row else 0
            # past the last match; also keeps huge offsets out of SQLite's int64 binding
            if query.offset >= total:
                return [], total
            rows = conn.execute(
                f"""
                SELECT * FROM todos
                {where_sql}
                ORDER BY created_at DESC, seq DESC
                LIMIT ? OFFSET ?
                """,
                [*params, max(query.limit, 0), query.offset],
            ).fetchall()
            return [self._row_to_todo(r) for r in rows], total

    def find_all_todos(self, todo_filter: TodoFilter) -> List[TodoEntity]:
        where_sql, params = filter_to_sql(todo_filter)
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM todos {where_sql} ORDER BY created_at DESC, seq DESC", params
            ).fetchall()
            return [self._row_to_todo(r) for r in rows]

    def distinct_tags(self, user_id: str) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT t.value AS tag
                FROM todos, json_each(todos.tags) AS t
                WHERE todos.user_id = ?
                ORDER BY tag
                """,
                (user_id,),
            ).fetchall()
            return [r["tag"] for r in rows]
