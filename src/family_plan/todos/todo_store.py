# todos/todo_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from ..errors import StoreError
from .todo_models import (
    Member,
    RecurrenceFrequency,
    RecurrenceRule,
    Source,
    Todo,
    TodoStatus,
)

logger = logging.getLogger(__name__)

# Columns a caller may change through update_todo_fields().
UPDATABLE_TODO_FIELDS = frozenset(
    {"title", "notes", "category", "tags", "time_of_day", "status", "completed_at", "cleared_at"}
)


class TodoStore:
    """
    SQLite store for members, sources, recurrence rules and todos.

    Schema handling follows a migration-safe approach:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns on `todos`
    - add columns with ALTER TABLE only when needed

    Connections:
    - each call opens its own short-lived connection
    - multi-step work (reconciliation, reactivation) goes through transaction(),
      which holds a `BEGIN IMMEDIATE` write lock until commit/rollback;
      write methods accept that connection via `conn=`
    - every sqlite3.Error (and integer overflow on bind) surfaces as StoreError
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TodoStore ready db=%s total=%s", self._db_path, self.count_todos())

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Shutdown hook (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One write transaction. Commits on success, rolls back on any exception.

        BEGIN IMMEDIATE takes the database write lock up front, so two transactions
        (even from different processes) never interleave their writes.
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except (sqlite3.Error, OverflowError) as exc:
            with contextlib.suppress(sqlite3.Error):
                conn.execute("ROLLBACK")
            raise StoreError(str(exc)) from exc
        except BaseException:
            with contextlib.suppress(sqlite3.Error):
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def _session(self, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        with self.transaction() as own:
            yield own

    @contextlib.contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            yield conn
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS members (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    slug TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    color_hex TEXT,
                    timezone TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT NOT NULL UNIQUE,
                    checksum TEXT NOT NULL,
                    last_synced_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS recurrence_rules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
                    source_id INTEGER REFERENCES sources(id) ON DELETE CASCADE,
                    source_key TEXT,
                    title TEXT NOT NULL,
                    frequency TEXT NOT NULL,
                    days_of_week TEXT NOT NULL DEFAULT '[]',
                    day_of_month INTEGER,
                    time_of_day TEXT,
                    timezone TEXT,
                    raw TEXT NOT NULL DEFAULT ''
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS todos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'PENDING',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cols = {row["name"] for row in conn.execute("PRAGMA table_info(todos)").fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                conn.execute(f"ALTER TABLE todos ADD COLUMN {name} {decl}")
                logger.info("TodoStore migration: added column %s", name)

            add_col("notes", "TEXT")
            add_col("category", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT '[]'")
            add_col("time_of_day", "TEXT")
            add_col("timezone", "TEXT")
            add_col("source_id", "INTEGER REFERENCES sources(id) ON DELETE CASCADE")
            add_col("source_key", "TEXT")
            add_col("source_line", "INTEGER")
            add_col(
                "recurrence_rule_id",
                "INTEGER REFERENCES recurrence_rules(id) ON DELETE SET NULL",
            )
            add_col("meta", "TEXT NOT NULL DEFAULT '{}'")
            add_col("completed_at", "REAL")
            add_col("cleared_at", "REAL")

            conn.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_rules_source_key "
                "ON recurrence_rules(source_id, source_key)"
            )
            conn.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_todos_source_key ON todos(source_id, source_key)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_todos_status ON todos(status, cleared_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_todos_member ON todos(member_id)")

    @staticmethod
    def _json_dumps(value: Any, empty: str) -> str:
        if not value:
            return empty
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode %r; storing %s.", value, empty)
            return empty

    @staticmethod
    def _json_loads(s: str | None, expected: type) -> Any:
        if not s:
            return expected()
        try:
            val = json.loads(s)
        except ValueError:
            return expected()
        return val if isinstance(val, expected) else expected()

    @staticmethod
    def _row_to_member(row: sqlite3.Row) -> Member:
        return Member(
            id=int(row["id"]),
            slug=str(row["slug"]),
            name=str(row["name"] or row["slug"]),
            color_hex=row["color_hex"],
            timezone=row["timezone"],
        )

    @staticmethod
    def _row_to_source(row: sqlite3.Row) -> Source:
        return Source(
            id=int(row["id"]),
            path=str(row["path"]),
            checksum=str(row["checksum"]),
            last_synced_at=float(row["last_synced_at"] or 0.0),
        )

    def _row_to_rule(self, row: sqlite3.Row) -> RecurrenceRule:
        return RecurrenceRule(
            id=int(row["id"]),
            member_id=int(row["member_id"]),
            source_id=row["source_id"],
            source_key=row["source_key"],
            title=str(row["title"] or ""),
            frequency=RecurrenceFrequency.from_db(row["frequency"]),
            days_of_week=[d for d in self._json_loads(row["days_of_week"], list) if isinstance(d, str)],
            day_of_month=row["day_of_month"],
            time_of_day=row["time_of_day"],
            timezone=row["timezone"],
            raw=str(row["raw"] or ""),
        )

    def _row_to_todo(self, row: sqlite3.Row) -> Todo:
        return Todo(
            id=int(row["id"]),
            member_id=int(row["member_id"]),
            member_slug=str(row["member_slug"]),
            title=str(row["title"] or ""),
            status=TodoStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            notes=row["notes"],
            category=row["category"],
            tags=[t for t in self._json_loads(row["tags"], list) if isinstance(t, str)],
            time_of_day=row["time_of_day"],
            timezone=row["timezone"],
            source_id=row["source_id"],
            source_key=row["source_key"],
            source_line=row["source_line"],
            recurrence_rule_id=row["recurrence_rule_id"],
            meta=self._json_loads(row["meta"], dict),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            cleared_at=float(row["cleared_at"]) if row["cleared_at"] is not None else None,
        )

    _TODO_SELECT = "SELECT t.*, m.slug AS member_slug FROM todos t JOIN members m ON m.id = t.member_id"

    # ---- counts / reads ----

    def count_todos(self, *, conn: sqlite3.Connection | None = None) -> int:
        if conn is not None:
            (n,) = conn.execute("SELECT COUNT(*) FROM todos").fetchone()
            return int(n)
        with self._reader() as c:
            (n,) = c.execute("SELECT COUNT(*) FROM todos").fetchone()
            return int(n)

    def get_member_by_slug(self, slug: str) -> Member | None:
        with self._reader() as conn:
            row = conn.execute("SELECT * FROM members WHERE slug = ?", (slug,)).fetchone()
            return self._row_to_member(row) if row else None

    def list_members(self) -> list[Member]:
        with self._reader() as conn:
            rows = conn.execute("SELECT * FROM members ORDER BY slug ASC").fetchall()
            return [self._row_to_member(r) for r in rows]

    def list_sources(self) -> list[Source]:
        with self._reader() as conn:
            rows = conn.execute("SELECT * FROM sources ORDER BY path ASC").fetchall()
            return [self._row_to_source(r) for r in rows]

    def get_rules(self, rule_ids: Iterable[int]) -> dict[int, RecurrenceRule]:
        ids = sorted({int(i) for i in rule_ids})
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with self._reader() as conn:
            rows = conn.execute(
                f"SELECT * FROM recurrence_rules WHERE id IN ({placeholders})", ids
            ).fetchall()
            return {int(r["id"]): self._row_to_rule(r) for r in rows}

    def get_todo(self, todo_id: int) -> Todo | None:
        with self._reader() as conn:
            row = conn.execute(f"{self._TODO_SELECT} WHERE t.id = ?", (int(todo_id),)).fetchone()
            return self._row_to_todo(row) if row else None

    def list_todos(
        self,
        *,
        member_slug: str | None = None,
        status: TodoStatus | None = None,
        include_cleared: bool = False,
    ) -> list[Todo]:
        """
        Todos ordered by member slug, category, time of day, title (NULLs first).
        Cleared todos are hidden unless include_cleared is set.
        """
        where: list[str] = []
        params: list[Any] = []

        if member_slug:
            where.append("m.slug = ?")
            params.append(member_slug)
        if status is not None:
            where.append("t.status = ?")
            params.append(status.value)
        if not include_cleared:
            where.append("t.cleared_at IS NULL")

        sql = self._TODO_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY m.slug ASC, t.category ASC, t.time_of_day ASC, t.title ASC, t.id ASC"

        with self._reader() as conn:
            return [self._row_to_todo(r) for r in conn.execute(sql, params).fetchall()]

    # ---- reconciliation upserts ----

    def upsert_member(
        self,
        *,
        slug: str,
        name: str | None = None,
        color_hex: str | None = None,
        timezone: str | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> Member:
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO members(slug, name, color_hex, timezone)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(slug) DO UPDATE SET
                    name = excluded.name,
                    color_hex = excluded.color_hex,
                    timezone = excluded.timezone
                """,
                (slug, name or slug, color_hex, timezone),
            )
            row = c.execute("SELECT * FROM members WHERE slug = ?", (slug,)).fetchone()
            return self._row_to_member(row)

    def upsert_source(
        self,
        *,
        path: str,
        checksum: str,
        now_ts: float | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> Source:
        ts = time.time() if now_ts is None else float(now_ts)
        with self._session(conn) as c:
            c.execute(
                """
                INSERT INTO sources(path, checksum, last_synced_at)
                VALUES (?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    checksum = excluded.checksum,
                    last_synced_at = excluded.last_synced_at
                """,
                (path, checksum, ts),
            )
            row = c.execute("SELECT * FROM sources WHERE path = ?", (path,)).fetchone()
            return self._row_to_source(row)

    def upsert_recurrence_rule(
        self,
        *,
        member_id: int,
        source_id: int,
        source_key: str,
        title: str,
        frequency: RecurrenceFrequency,
        days_of_week: Iterable[str] = (),
        day_of_month: int | None = None,
        time_of_day: str | None = None,
        timezone: str | None = None,
        raw: str = "",
        conn: sqlite3.Connection | None = None,
    ) -> int:
        """Insert or update the rule identified by (source_id, source_key); returns its id."""
        values = (
            int(member_id),
            title,
            frequency.value,
            self._json_dumps(list(days_of_week), "[]"),
            day_of_month,
            time_of_day,
            timezone,
            raw,
        )
        with self._session(conn) as c:
            row = c.execute(
                "SELECT id FROM recurrence_rules WHERE source_id = ? AND source_key = ?",
                (int(source_id), source_key),
            ).fetchone()

            if row is not None:
                rule_id = int(row["id"])
                c.execute(
                    """
                    UPDATE recurrence_rules
                    SET member_id = ?, title = ?, frequency = ?, days_of_week = ?,
                        day_of_month = ?, time_of_day = ?, timezone = ?, raw = ?
                    WHERE id = ?
                    """,
                    (*values, rule_id),
                )
                return rule_id

            cur = c.execute(
                """
                INSERT INTO recurrence_rules(
                    member_id, title, frequency, days_of_week,
                    day_of_month, time_of_day, timezone, raw,
                    source_id, source_key
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*values, int(source_id), source_key),
            )
            if cur.lastrowid is None:
                raise StoreError("SQLite did not return lastrowid for recurrence_rules insert")
            return int(cur.lastrowid)

    def upsert_todo(
        self,
        *,
        member_id: int,
        source_id: int,
        source_key: str,
        title: str,
        notes: str | None = None,
        category: str | None = None,
        tags: Iterable[str] = (),
        time_of_day: str | None = None,
        timezone: str | None = None,
        source_line: int | None = None,
        recurrence_rule_id: int | None = None,
        meta: Mapping[str, Any] | None = None,
        now_ts: float | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> tuple[int, bool]:
        """
        Insert or update the todo identified by (source_id, source_key).

        Content fields are overwritten; status / completed_at / cleared_at of an
        existing row are left alone. New rows start PENDING.

        Returns (todo_id, created).
        """
        ts = time.time() if now_ts is None else float(now_ts)
        values = (
            int(member_id),
            title,
            notes,
            category,
            self._json_dumps(list(tags), "[]"),
            time_of_day,
            timezone,
            source_line,
            recurrence_rule_id,
            self._json_dumps(dict(meta or {}), "{}"),
        )
        with self._session(conn) as c:
            row = c.execute(
                "SELECT id FROM todos WHERE source_id = ? AND source_key = ?",
                (int(source_id), source_key),
            ).fetchone()

            if row is not None:
                todo_id = int(row["id"])
                c.execute(
                    """
                    UPDATE todos
                    SET member_id = ?, title = ?, notes = ?, category = ?, tags = ?,
                        time_of_day = ?, timezone = ?, source_line = ?,
                        recurrence_rule_id = ?, meta = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (*values, ts, todo_id),
                )
                return todo_id, False

            cur = c.execute(
                """
                INSERT INTO todos(
                    member_id, title, notes, category, tags,
                    time_of_day, timezone, source_line,
                    recurrence_rule_id, meta,
                    source_id, source_key, status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*values, int(source_id), source_key, TodoStatus.PENDING.value, ts, ts),
            )
            if cur.lastrowid is None:
                raise StoreError("SQLite did not return lastrowid for todos insert")
            return int(cur.lastrowid), True

    # ---- reconciliation deletes ----

    def delete_all(self, *, conn: sqlite3.Connection | None = None) -> None:
        """Wipe todos, rules, sources and members."""
        with self._session(conn) as c:
            c.execute("DELETE FROM todos")
            c.execute("DELETE FROM recurrence_rules")
            c.execute("DELETE FROM sources")
            c.execute("DELETE FROM members")

    def delete_unseen_todos(
        self, source_id: int, keep_keys: Iterable[str], *, conn: sqlite3.Connection | None = None
    ) -> int:
        return self._delete_unseen("todos", source_id, keep_keys, conn)

    def delete_unseen_rules(
        self, source_id: int, keep_keys: Iterable[str], *, conn: sqlite3.Connection | None = None
    ) -> int:
        return self._delete_unseen("recurrence_rules", source_id, keep_keys, conn)

    def _delete_unseen(
        self,
        table: str,
        source_id: int,
        keep_keys: Iterable[str],
        conn: sqlite3.Connection | None,
    ) -> int:
        keys = sorted(set(keep_keys))
        sql = f"DELETE FROM {table} WHERE source_id = ?"
        params: list[Any] = [int(source_id)]
        if keys:
            sql += f" AND (source_key IS NULL OR source_key NOT IN ({','.join('?' for _ in keys)}))"
            params.extend(keys)
        with self._session(conn) as c:
            return int(c.execute(sql, params).rowcount)

    def delete_unseen_sources(
        self, keep_paths: Iterable[str], *, conn: sqlite3.Connection | None = None
    ) -> int:
        """Delete sources not in keep_paths; their todos and rules go with them (ON DELETE CASCADE)."""
        paths = sorted(set(keep_paths))
        sql = "DELETE FROM sources"
        if paths:
            sql += f" WHERE path NOT IN ({','.join('?' for _ in paths)})"
        with self._session(conn) as c:
            return int(c.execute(sql, paths).rowcount)

    def delete_unused_members(
        self, keep_slugs: Iterable[str], *, conn: sqlite3.Connection | None = None
    ) -> int:
        """Delete members not in keep_slugs that no longer own any todo."""
        slugs = sorted(set(keep_slugs))
        sql = "DELETE FROM members WHERE NOT EXISTS (SELECT 1 FROM todos t WHERE t.member_id = members.id)"
        if slugs:
            sql += f" AND slug NOT IN ({','.join('?' for _ in slugs)})"
        with self._session(conn) as c:
            return int(c.execute(sql, slugs).rowcount)

    # ---- single todo mutations ----

    def add_todo(
        self,
        *,
        member_id: int,
        title: str,
        notes: str | None = None,
        category: str | None = None,
        tags: Iterable[str] = (),
        time_of_day: str | None = None,
        timezone: str | None = None,
        status: TodoStatus = TodoStatus.PENDING,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        with self.transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO todos(
                    member_id, title, notes, category, tags,
                    time_of_day, timezone, status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(member_id),
                    title.strip(),
                    notes,
                    category,
                    self._json_dumps(list(tags), "[]"),
                    time_of_day,
                    timezone,
                    status.value,
                    now,
                    now,
                ),
            )
            if cur.lastrowid is None:
                raise StoreError("SQLite did not return lastrowid for todos insert")
            todo_id = int(cur.lastrowid)
        logger.debug("Todo added id=%s member_id=%s title=%r", todo_id, member_id, title)
        return todo_id

    def update_todo_fields(self, todo_id: int, fields: Mapping[str, Any]) -> bool:
        """
        Set the given columns on one todo. Returns False when the todo does not exist.

        Keys must come from UPDATABLE_TODO_FIELDS; `tags` is JSON-encoded, `status`
        accepts a TodoStatus.
        """
        unknown = set(fields) - UPDATABLE_TODO_FIELDS
        if unknown:
            raise ValueError(f"cannot update todo fields: {', '.join(sorted(unknown))}")

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name == "tags":
                value = self._json_dumps(list(value or []), "[]")
            elif name == "status":
                value = TodoStatus(value).value
            assignments.append(f"{name} = ?")
            params.append(value)

        assignments.append("updated_at = ?")
        params.append(time.time())
        params.append(int(todo_id))

        with self.transaction() as conn:
            cur = conn.execute(f"UPDATE todos SET {', '.join(assignments)} WHERE id = ?", params)
            return cur.rowcount == 1

    def clear_finished(self, *, member_slug: str | None = None, now_ts: float | None = None) -> int:
        """Stamp cleared_at on DONE, not-yet-cleared todos (optionally for one member)."""
        ts = time.time() if now_ts is None else float(now_ts)
        sql = "UPDATE todos SET cleared_at = ?, updated_at = ? WHERE status = ? AND cleared_at IS NULL"
        params: list[Any] = [ts, ts, TodoStatus.DONE.value]
        if member_slug:
            sql += " AND member_id IN (SELECT id FROM members WHERE slug = ?)"
            params.append(member_slug)
        with self.transaction() as conn:
            return int(conn.execute(sql, params).rowcount)

    # ---- recurrence ----

    def list_reactivation_candidates(
        self, *, conn: sqlite3.Connection | None = None
    ) -> list[tuple[Todo, RecurrenceRule]]:
        """DONE todos with a completion time and an attached recurrence rule."""
        with self._session(conn) as c:
            rows = c.execute(
                f"""
                {self._TODO_SELECT}
                WHERE t.status = ?
                  AND t.completed_at IS NOT NULL
                  AND t.recurrence_rule_id IS NOT NULL
                ORDER BY t.id ASC
                """,
                (TodoStatus.DONE.value,),
            ).fetchall()
            todos = [self._row_to_todo(r) for r in rows]
            if not todos:
                return []

            rule_ids = sorted({int(t.recurrence_rule_id) for t in todos if t.recurrence_rule_id is not None})
            placeholders = ",".join("?" for _ in rule_ids)
            rule_rows = c.execute(
                f"SELECT * FROM recurrence_rules WHERE id IN ({placeholders})", rule_ids
            ).fetchall()
            rules = {int(r["id"]): self._row_to_rule(r) for r in rule_rows}

        return [
            (t, rules[int(t.recurrence_rule_id)])
            for t in todos
            if t.recurrence_rule_id is not None and int(t.recurrence_rule_id) in rules
        ]

    def reactivate_todos(
        self,
        todo_ids: Iterable[int],
        *,
        now_ts: float | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        """Batch reset to PENDING, clearing completed_at and cleared_at."""
        ids = sorted({int(i) for i in todo_ids})
        if not ids:
            return 0
        ts = time.time() if now_ts is None else float(now_ts)
        placeholders = ",".join("?" for _ in ids)
        with self._session(conn) as c:
            cur = c.execute(
                f"""
                UPDATE todos
                SET status = ?, completed_at = NULL, cleared_at = NULL, updated_at = ?
                WHERE id IN ({placeholders})
                """,
                (TodoStatus.PENDING.value, ts, *ids),
            )
            return int(cur.rowcount)
