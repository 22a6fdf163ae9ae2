# src/allowance_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The resolver/materializer/manual path depend on this Protocol instead of a
concrete backend, so the storage collaborator stays swappable and tests can
use an in-memory fake.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Protocol

from ..tasks.task_models import ChildMember, TaskDefinition, TaskInstance


class TaskRepo(Protocol):
    # Sweep reads
    def list_active_recurring_tasks(self) -> list[TaskDefinition]: ...
    def list_children(self) -> list[ChildMember]: ...

    # Manual path reads
    def get_task(self, task_id: str) -> TaskDefinition | None: ...
    def find_children(self, ids: Iterable[str], family_id: str) -> list[ChildMember]: ...

    # Writes
    def instance_exists(self, task_id: str, assignee_id: str, due_date: date) -> bool: ...
    def insert_instances(self, instances: Sequence[TaskInstance]) -> list[TaskInstance]:
        """
        Insert all rows in one transaction.

        Raises DuplicateInstanceError if any row violates the
        (task_id, assignee_id, due_date) uniqueness constraint; nothing is written then.
        """
        ...
