# src/allowance_tasks/tasks/recurrence.py

from __future__ import annotations

"""
Recurrence resolver.

Pure function of (run date, task definition) -> the single due date a sweep
should materialize, or None. Every sweep targets *tomorrow* so instances exist
before they become due.

Two rules are kept exactly as the app has always applied them:
- a daily task with a fixed weekday only fires when tomorrow is that weekday
  (it behaves weekly);
- a monthly task created on a day a month does not have (e.g. the 31st) never
  fires in that month.
"""

from datetime import date, timedelta, tzinfo

from .task_models import Recurrence, TaskDefinition, sunday_weekday

WEEKLY_SCAN_DAYS = 14


def anniversary_day(task: TaskDefinition, tz: tzinfo | None = None) -> int:
    """Day-of-month of the task's creation, in the generator's timezone."""
    created = task.created_at.astimezone(tz) if tz is not None else task.created_at
    return created.day


def _daily(tomorrow: date, weekday: int | None) -> date | None:
    if weekday is None:
        return tomorrow
    return tomorrow if sunday_weekday(tomorrow) == weekday else None


def _weekly(tomorrow: date, weekday: int | None) -> date | None:
    if weekday is None:
        return tomorrow + timedelta(days=7)
    for offset in range(WEEKLY_SCAN_DAYS):
        candidate = tomorrow + timedelta(days=offset)
        if sunday_weekday(candidate) == weekday:
            return candidate
    return None


def _monthly(tomorrow: date, day_of_month: int) -> date | None:
    return tomorrow if tomorrow.day == day_of_month else None


def resolve_due_date(today: date, task: TaskDefinition, tz: tzinfo | None = None) -> date | None:
    """
    Return the due date to materialize for `task` on a sweep run on `today`.

    daily   -> tomorrow (or tomorrow only if it is the fixed weekday)
    weekly  -> first fixed weekday in [tomorrow, tomorrow + 13], else tomorrow + 7
    monthly -> tomorrow when its day-of-month equals the creation day
    none    -> None
    """
    tomorrow = today + timedelta(days=1)

    if task.recurrence == Recurrence.DAILY:
        return _daily(tomorrow, task.recurrence_day)
    if task.recurrence == Recurrence.WEEKLY:
        return _weekly(tomorrow, task.recurrence_day)
    if task.recurrence == Recurrence.MONTHLY:
        return _monthly(tomorrow, anniversary_day(task, tz))
    return None
