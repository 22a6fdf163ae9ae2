# src/allowance_tasks/tasks/task_models.py

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import StrEnum
from typing import Any, Mapping

from .task_errors import MalformedRowError


class Recurrence(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class InstanceStatus(StrEnum):
    """
    Instance lifecycle status.

    Only PENDING is ever written by the generator; the other transitions belong
    to the approval workflow in the app.
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def from_db(cls, raw: str | None) -> InstanceStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sunday_weekday(d: date) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday (the app's convention)."""
    return d.isoweekday() % 7


def parse_due_date(raw: Any) -> date:
    """Parse a calendar date (YYYY-MM-DD). Raises ValueError on anything else."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"not a calendar date: {raw!r}")
    return date.fromisoformat(raw.strip())


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, (int, float)):
        dt = datetime.fromtimestamp(float(raw), tz=timezone.utc)
    elif isinstance(raw, str) and raw.strip():
        dt = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"not a timestamp: {raw!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _require_id(row: Mapping[str, Any], key: str, kind: str) -> str:
    raw = row.get(key)
    if raw is None or str(raw).strip() == "":
        raise MalformedRowError(f"{kind} row without {key}: {dict(row)!r}")
    return str(raw)


def _parse_assignees(raw: Any) -> tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRowError(f"assignees is not a JSON list: {raw!r}") from e
    if not isinstance(raw, (list, tuple)):
        raise MalformedRowError(f"assignees must be a list, got {type(raw).__name__}")
    return tuple(str(a) for a in raw if a is not None and str(a).strip())


@dataclass(slots=True, frozen=True)
class TaskDefinition:
    id: str
    family_id: str
    title: str
    recurrence: Recurrence
    created_at: datetime

    description: str = ""
    value_cents: int = 0
    recurrence_day: int | None = None
    recurrence_time: time | None = None
    active: bool = True
    assignees: tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TaskDefinition:
        """
        Map a loosely typed storage row to a TaskDefinition.

        Raises MalformedRowError instead of letting bad data reach the resolver.
        """
        task_id = _require_id(row, "id", "task")
        family_id = _require_id(row, "family_id", "task")

        try:
            recurrence = Recurrence(str(row.get("recurrence") or "none"))
        except ValueError as e:
            raise MalformedRowError(
                f"task {task_id}: unknown recurrence {row.get('recurrence')!r}"
            ) from e

        day_raw = row.get("recurrence_day")
        recurrence_day: int | None = None
        if day_raw is not None and day_raw != "":
            try:
                recurrence_day = int(day_raw)
            except (TypeError, ValueError) as e:
                raise MalformedRowError(f"task {task_id}: bad recurrence_day {day_raw!r}") from e
            if not 0 <= recurrence_day <= 6:
                raise MalformedRowError(
                    f"task {task_id}: recurrence_day {recurrence_day} outside 0-6"
                )

        time_raw = row.get("recurrence_time")
        recurrence_time: time | None = None
        if time_raw:
            try:
                recurrence_time = (
                    time_raw if isinstance(time_raw, time) else time.fromisoformat(str(time_raw))
                )
            except ValueError as e:
                raise MalformedRowError(f"task {task_id}: bad recurrence_time {time_raw!r}") from e

        try:
            created_at = _parse_timestamp(row.get("created_at"))
        except ValueError as e:
            raise MalformedRowError(f"task {task_id}: bad created_at") from e

        try:
            value_cents = int(row.get("value_cents") or 0)
        except (TypeError, ValueError) as e:
            raise MalformedRowError(f"task {task_id}: bad value_cents") from e

        return cls(
            id=task_id,
            family_id=family_id,
            title=str(row.get("title") or ""),
            description=str(row.get("description") or ""),
            value_cents=value_cents,
            recurrence=recurrence,
            recurrence_day=recurrence_day,
            recurrence_time=recurrence_time,
            active=bool(row.get("active", True)),
            assignees=_parse_assignees(row.get("assignees")),
            created_at=created_at,
        )


@dataclass(slots=True, frozen=True)
class ChildMember:
    id: str
    family_id: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ChildMember:
        return cls(
            id=_require_id(row, "id", "profile"),
            family_id=_require_id(row, "family_id", "profile"),
        )


@dataclass(slots=True, frozen=True)
class TaskInstance:
    task_id: str
    assignee_id: str
    due_date: date
    status: InstanceStatus = InstanceStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple[str, str, date]:
        return (self.task_id, self.assignee_id, self.due_date)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TaskInstance:
        inst_id = _require_id(row, "id", "task_instance")
        try:
            due = parse_due_date(row.get("due_date"))
            created_at = _parse_timestamp(row.get("created_at"))
        except ValueError as e:
            raise MalformedRowError(f"task_instance {inst_id}: bad date") from e
        return cls(
            id=inst_id,
            task_id=_require_id(row, "task_id", "task_instance"),
            assignee_id=_require_id(row, "assignee_id", "task_instance"),
            due_date=due,
            status=InstanceStatus.from_db(row.get("status")),
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (matches the app's `daughter_id` vocabulary)."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "daughter_id": self.assignee_id,
            "due_date": self.due_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
