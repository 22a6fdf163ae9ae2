# src/allowance_tasks/tasks/manual.py

from __future__ import annotations

"""
Manual assignment path.

A parent assigns a task to specific children for a specific date. The
resolver is bypassed and the request is validated all-or-nothing: either every
assignee gets an instance or nobody does.

Unlike the automatic sweep, existing instances are NOT looked up first. A
repeated request for the same task/children/date is rejected by the store's
uniqueness constraint as a whole batch.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..core.ports import TaskRepo
from .task_errors import (
    AssigneeMismatchError,
    DuplicateInstanceError,
    InstanceInsertError,
    InvalidRequestError,
    TaskNotFoundError,
)
from .task_models import InstanceStatus, TaskInstance, parse_due_date

logger = logging.getLogger(__name__)

MANUAL_KEYS = ("task_id", "daughter_ids", "due_date")


@dataclass(slots=True, frozen=True)
class ManualRequest:
    task_id: str
    assignee_ids: tuple[str, ...]
    due_date: date

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ManualRequest:
        task_id = payload.get("task_id")
        ids = payload.get("daughter_ids")
        due_raw = payload.get("due_date")

        if not task_id or not ids or not isinstance(ids, list) or not due_raw:
            raise InvalidRequestError("task_id, daughter_ids (array) and due_date are required")
        if not all(isinstance(i, str) and i.strip() for i in ids):
            raise InvalidRequestError("daughter_ids must be a list of non-empty strings")
        try:
            due = parse_due_date(due_raw)
        except ValueError as e:
            raise InvalidRequestError(f"due_date must be YYYY-MM-DD, got {due_raw!r}") from e

        return cls(task_id=str(task_id), assignee_ids=tuple(ids), due_date=due)


@dataclass(slots=True)
class ManualResult:
    instances: list[TaskInstance] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.instances)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "created_instances": [i.to_dict() for i in self.instances],
            "count": self.count,
        }


def is_manual_payload(payload: Mapping[str, Any] | None) -> bool:
    """Any manual key in the body selects the manual path (and its validation)."""
    if not payload:
        return False
    return any(k in payload for k in MANUAL_KEYS)


def assign_task_instances(repo: TaskRepo, request: ManualRequest) -> ManualResult:
    """
    Validate and create one pending instance per assignee.

    Raises:
    - TaskNotFoundError if the task id is unknown,
    - AssigneeMismatchError if any id is not a child of the task's family,
    - InstanceInsertError if the batch insert fails (nothing written).
    """
    task = repo.get_task(request.task_id)
    if task is None:
        raise TaskNotFoundError(request.task_id)

    found = repo.find_children(request.assignee_ids, task.family_id)
    found_ids = {c.id for c in found}
    # Duplicate ids in the request count as a mismatch: one row per listed id is promised.
    if len(found) != len(request.assignee_ids) or not found_ids.issuperset(request.assignee_ids):
        missing = [i for i in request.assignee_ids if i not in found_ids]
        logger.info(
            "Manual assign rejected task=%s family=%s missing=%s",
            task.id,
            task.family_id,
            missing,
        )
        raise AssigneeMismatchError(task.id, missing)

    instances = [
        TaskInstance(
            task_id=task.id,
            assignee_id=assignee_id,
            due_date=request.due_date,
            status=InstanceStatus.PENDING,
        )
        for assignee_id in request.assignee_ids
    ]

    try:
        created = repo.insert_instances(instances)
    except DuplicateInstanceError as e:
        logger.warning("Manual assign hit existing instance task=%s due=%s", task.id, request.due_date)
        raise InstanceInsertError("failed to create task instances") from e
    except Exception as e:
        logger.exception("Manual assign insert failed task=%s", task.id)
        raise InstanceInsertError("failed to create task instances") from e

    logger.info(
        "Manual assign task=%s due=%s created=%s",
        task.id,
        request.due_date,
        len(created),
    )
    return ManualResult(instances=list(created))
