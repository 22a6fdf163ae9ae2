# src/allowance_tasks/tasks/task_errors.py

from __future__ import annotations


class TaskGeneratorError(Exception):
    """Base class for errors raised by the instance generator."""

    http_status = 500


class InvalidRequestError(TaskGeneratorError):
    """Manual request is missing fields or carries malformed values."""

    http_status = 400


class TaskNotFoundError(TaskGeneratorError):
    http_status = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class AssigneeMismatchError(TaskGeneratorError):
    """One or more assignees are not children of the task's family."""

    http_status = 400

    def __init__(self, task_id: str, missing: list[str]) -> None:
        super().__init__(
            "one or more assignees were not found or do not belong to the task's family"
        )
        self.task_id = task_id
        self.missing = missing


class MalformedRowError(TaskGeneratorError):
    """A storage row could not be mapped to a typed record."""


class DuplicateInstanceError(TaskGeneratorError):
    """Insert hit the (task_id, assignee_id, due_date) uniqueness constraint."""

    http_status = 409


class InstanceInsertError(TaskGeneratorError):
    """A manual batch insert failed; nothing was written."""
