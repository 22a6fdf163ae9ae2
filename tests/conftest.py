# tests/conftest.py

from __future__ import annotations

from datetime import datetime, time, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from allowance_tasks.core.state import AppState
from allowance_tasks.tasks.task_models import Recurrence
from allowance_tasks.tasks.task_store import ROLE_PARENT, TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI/web layers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="allowance-tasks-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "allowance.sqlite3",
        log_dir=tmp_path,
        timezone="UTC",
        run_at=time(0, 5),
        run_on_start=True,
        sweep_workers=1,
        http_host="127.0.0.1",
        http_port=8080,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.db_path)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    """AppState wired with a real SQLite store (its behaviour is part of what we test)."""
    return AppState(settings=settings, task_store=store)


@pytest.fixture()
def family(store: TaskStore) -> SimpleNamespace:
    """
    Two families:
    - fam-1: parent p1, children ana + bia
    - fam-2: child caio
    """
    store.add_profile(family_id="fam-1", role=ROLE_PARENT, full_name="Parent", profile_id="p1")
    store.add_profile(family_id="fam-1", full_name="Ana", profile_id="ana")
    store.add_profile(family_id="fam-1", full_name="Bia", profile_id="bia")
    store.add_profile(family_id="fam-2", full_name="Caio", profile_id="caio")

    daily = store.add_task(
        family_id="fam-1",
        title="Make the bed",
        value_cents=200,
        recurrence=Recurrence.DAILY,
        created_at=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        task_id="t-daily",
    )
    return SimpleNamespace(family_id="fam-1", children=["ana", "bia"], other_child="caio", daily=daily)
