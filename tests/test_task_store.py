# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from allowance_tasks.tasks.task_errors import DuplicateInstanceError
from allowance_tasks.tasks.task_models import Recurrence, TaskInstance
from allowance_tasks.tasks.task_store import ROLE_PARENT, TaskStore


def test_reads_map_to_typed_records(store: TaskStore, family) -> None:
    store.add_task(
        family_id="fam-1",
        title="Feed the cat",
        recurrence=Recurrence.WEEKLY,
        recurrence_day=3,
        assignees=["bia"],
        value_cents=500,
        task_id="t-weekly",
    )
    store.add_task(family_id="fam-1", title="One-off", task_id="t-once")
    store.add_task(
        family_id="fam-1",
        title="Retired",
        recurrence=Recurrence.DAILY,
        active=False,
        task_id="t-off",
    )

    tasks = {t.id: t for t in store.list_active_recurring_tasks()}
    assert set(tasks) == {"t-daily", "t-weekly"}
    weekly = tasks["t-weekly"]
    assert weekly.recurrence == Recurrence.WEEKLY
    assert weekly.recurrence_day == 3
    assert weekly.assignees == ("bia",)
    assert weekly.value_cents == 500

    assert store.get_task("t-once") is not None
    assert store.get_task("missing") is None

    children = store.list_children()
    assert {(c.id, c.family_id) for c in children} == {
        ("ana", "fam-1"),
        ("bia", "fam-1"),
        ("caio", "fam-2"),
    }
    assert {c.id for c in store.find_children(["ana", "caio", "p1"], "fam-1")} == {"ana"}


def test_uniqueness_constraint_rejects_batch(store: TaskStore, family) -> None:
    due = date(2024, 3, 2)
    store.insert_instances([TaskInstance(task_id="t-daily", assignee_id="ana", due_date=due)])
    assert store.instance_exists("t-daily", "ana", due)
    assert not store.instance_exists("t-daily", "bia", due)

    with pytest.raises(DuplicateInstanceError):
        store.insert_instances(
            [
                TaskInstance(task_id="t-daily", assignee_id="bia", due_date=due),
                TaskInstance(task_id="t-daily", assignee_id="ana", due_date=due),
            ]
        )
    assert store.count_instances() == 1


def test_soft_delete_keeps_existing_instances(store: TaskStore, family) -> None:
    store.insert_instances(
        [TaskInstance(task_id="t-daily", assignee_id="ana", due_date=date(2024, 3, 2))]
    )
    store.set_task_active("t-daily", False)

    assert store.list_active_recurring_tasks() == []
    assert len(store.list_instances(task_id="t-daily")) == 1


def test_malformed_task_rows_are_skipped(store: TaskStore, family) -> None:
    conn = sqlite3.connect(str(store.db_path))
    try:
        conn.execute(
            """
            INSERT INTO tasks(id, family_id, title, recurrence, recurrence_day, created_at)
            VALUES ('bad-day', 'fam-1', 'x', 'weekly', 9, ?)
            """,
            (datetime.now(timezone.utc).isoformat(),),
        )
        conn.execute(
            """
            INSERT INTO tasks(id, family_id, title, recurrence, created_at)
            VALUES ('bad-kind', 'fam-1', 'x', 'hourly', ?)
            """,
            (datetime.now(timezone.utc).isoformat(),),
        )
        conn.commit()
    finally:
        conn.close()

    assert [t.id for t in store.list_active_recurring_tasks()] == ["t-daily"]


def test_add_task_validates_input(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.add_task(family_id="fam-1", title="x", recurrence_day=7)
    with pytest.raises(ValueError):
        store.add_task(family_id="", title="x")
    with pytest.raises(ValueError):
        store.add_profile(family_id="fam-1", role="admin")
    assert store.add_profile(family_id="fam-1", role=ROLE_PARENT)


def test_old_schema_is_migrated(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            family_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            value_cents INTEGER NOT NULL DEFAULT 0,
            recurrence TEXT NOT NULL DEFAULT 'none',
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        "INSERT INTO tasks(id, family_id, title, recurrence, created_at) VALUES ('t', 'f', 'x', 'daily', ?)",
        (datetime.now(timezone.utc).isoformat(),),
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    (task,) = store.list_active_recurring_tasks()
    assert task.recurrence_day is None
    assert task.assignees == ()
