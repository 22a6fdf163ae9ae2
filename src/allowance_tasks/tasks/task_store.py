# src/allowance_tasks/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from .task_errors import DuplicateInstanceError, MalformedRowError
from .task_models import (
    ChildMember,
    Recurrence,
    TaskDefinition,
    TaskInstance,
    utcnow,
)

logger = logging.getLogger(__name__)

ROLE_CHILD = "child"
ROLE_PARENT = "parent"


class TaskStore:
    """
    SQLite store for profiles, task definitions and task instances.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    UNIQUE(task_id, assignee_id, due_date) on task_instances is the
    authoritative guard against duplicate instances.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "allowance.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_instances()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s instances=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    family_id TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'child',
                    full_name TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    family_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    value_cents INTEGER NOT NULL DEFAULT 0,
                    recurrence TEXT NOT NULL DEFAULT 'none',
                    recurrence_day INTEGER,
                    recurrence_time TEXT,
                    active INTEGER NOT NULL DEFAULT 1,
                    assignees TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_instances (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    assignee_id TEXT NOT NULL,
                    due_date TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at TEXT NOT NULL,
                    UNIQUE (task_id, assignee_id, due_date)
                )
                """
            )

            # Migrations (safe): add columns introduced after the first release.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added tasks.%s", name)

            add_col("recurrence_day", "INTEGER")
            add_col("recurrence_time", "TEXT")
            add_col("assignees", "TEXT NOT NULL DEFAULT '[]'")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_active_recurrence ON tasks(active, recurrence)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_profiles_family_role ON profiles(family_id, role)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _assignees_to_str(assignees: Iterable[str] | None) -> str:
        return json.dumps([str(a) for a in (assignees or [])], ensure_ascii=False)

    @staticmethod
    def _task_row(row: sqlite3.Row) -> dict[str, Any]:
        data = dict(row)
        data["active"] = bool(data.get("active"))
        return data

    def _map_tasks(self, rows: Iterable[sqlite3.Row]) -> list[TaskDefinition]:
        out: list[TaskDefinition] = []
        for r in rows:
            try:
                out.append(TaskDefinition.from_row(self._task_row(r)))
            except MalformedRowError:
                logger.warning("Skipping malformed task row id=%s", r["id"], exc_info=True)
        return out

    @staticmethod
    def _map_children(rows: Iterable[sqlite3.Row]) -> list[ChildMember]:
        out: list[ChildMember] = []
        for r in rows:
            try:
                out.append(ChildMember.from_row(dict(r)))
            except MalformedRowError:
                logger.warning("Skipping malformed profile row id=%s", r["id"], exc_info=True)
        return out

    # ---- read API (used by the generator) ----

    def list_active_recurring_tasks(self) -> list[TaskDefinition]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE active = 1
                  AND recurrence != 'none'
                ORDER BY created_at ASC
                """
            )
            return self._map_tasks(cur.fetchall())
        finally:
            conn.close()

    def list_children(self) -> list[ChildMember]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT id, family_id FROM profiles WHERE role = ? ORDER BY id ASC",
                (ROLE_CHILD,),
            )
            return self._map_children(cur.fetchall())
        finally:
            conn.close()

    def get_task(self, task_id: str) -> TaskDefinition | None:
        if not task_id:
            return None

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
            row = cur.fetchone()
            if row is None:
                return None
            return TaskDefinition.from_row(self._task_row(row))
        finally:
            conn.close()

    def find_children(self, ids: Iterable[str], family_id: str) -> list[ChildMember]:
        wanted = [str(i) for i in ids]
        if not wanted or not family_id:
            return []

        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in wanted)
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT id, family_id
                FROM profiles
                WHERE id IN ({placeholders})
                  AND role = ?
                  AND family_id = ?
                """,
                (*wanted, ROLE_CHILD, str(family_id)),
            )
            return self._map_children(cur.fetchall())
        finally:
            conn.close()

    def instance_exists(self, task_id: str, assignee_id: str, due_date: date) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT 1
                FROM task_instances
                WHERE task_id = ?
                  AND assignee_id = ?
                  AND due_date = ?
                LIMIT 1
                """,
                (str(task_id), str(assignee_id), due_date.isoformat()),
            )
            return cur.fetchone() is not None
        finally:
            conn.close()

    # ---- write API ----

    def insert_instances(self, instances: Sequence[TaskInstance]) -> list[TaskInstance]:
        """
        Insert all instances in a single transaction.

        Raises DuplicateInstanceError (and writes nothing) if any row violates
        UNIQUE(task_id, assignee_id, due_date).
        """
        if not instances:
            return []

        conn = self._get_conn()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO task_instances(id, task_id, assignee_id, due_date, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            i.id,
                            i.task_id,
                            i.assignee_id,
                            i.due_date.isoformat(),
                            i.status.value,
                            i.created_at.isoformat(),
                        )
                        for i in instances
                    ],
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateInstanceError(str(e)) from e
        finally:
            conn.close()

        logger.debug("Inserted %d task instances", len(instances))
        return list(instances)

    # ---- seeding / inspection helpers (CLI, tests) ----

    def add_profile(
        self,
        *,
        family_id: str,
        role: str = ROLE_CHILD,
        full_name: str = "",
        profile_id: str | None = None,
    ) -> str:
        if not family_id or not family_id.strip():
            raise ValueError("family_id is required")
        if role not in (ROLE_CHILD, ROLE_PARENT):
            raise ValueError(f"unknown role: {role}")

        pid = profile_id or str(uuid.uuid4())
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO profiles(id, family_id, role, full_name, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (pid, family_id.strip(), role, full_name.strip(), utcnow().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Profile added id=%s family=%s role=%s", pid, family_id, role)
        return pid

    def add_task(
        self,
        *,
        family_id: str,
        title: str,
        recurrence: Recurrence = Recurrence.NONE,
        description: str = "",
        value_cents: int = 0,
        recurrence_day: int | None = None,
        recurrence_time: time | None = None,
        active: bool = True,
        assignees: Iterable[str] | None = None,
        created_at: datetime | None = None,
        task_id: str | None = None,
    ) -> str:
        if not family_id or not family_id.strip():
            raise ValueError("family_id is required")
        if not title or not title.strip():
            raise ValueError("title is required")
        if recurrence_day is not None and not 0 <= int(recurrence_day) <= 6:
            raise ValueError("recurrence_day must be within 0-6 (0 = Sunday)")
        if int(value_cents) < 0:
            raise ValueError("value_cents must be >= 0")

        tid = task_id or str(uuid.uuid4())
        created = created_at or utcnow()

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, family_id, title, description, value_cents,
                    recurrence, recurrence_day, recurrence_time,
                    active, assignees, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tid,
                    family_id.strip(),
                    title.strip(),
                    description.strip(),
                    int(value_cents),
                    Recurrence(recurrence).value,
                    recurrence_day,
                    recurrence_time.isoformat() if recurrence_time else None,
                    1 if active else 0,
                    self._assignees_to_str(assignees),
                    created.isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Task added id=%s family=%s recurrence=%s", tid, family_id, recurrence)
        return tid

    def set_task_active(self, task_id: str, active: bool) -> None:
        """Soft delete / restore. Existing instances are left untouched."""
        conn = self._get_conn()
        try:
            conn.execute("UPDATE tasks SET active = ? WHERE id = ?", (1 if active else 0, str(task_id)))
            conn.commit()
        finally:
            conn.close()

    def count_instances(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM task_instances")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def list_instances(
        self,
        *,
        task_id: str | None = None,
        due_date: date | None = None,
    ) -> list[TaskInstance]:
        clauses: list[str] = []
        params: list[Any] = []
        if task_id is not None:
            clauses.append("task_id = ?")
            params.append(str(task_id))
        if due_date is not None:
            clauses.append("due_date = ?")
            params.append(due_date.isoformat())

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"SELECT * FROM task_instances {where} ORDER BY due_date ASC, assignee_id ASC",
                params,
            )
            return [TaskInstance.from_row(dict(r)) for r in cur.fetchall()]
        finally:
            conn.close()

