# tests/test_recurrence.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from allowance_tasks.tasks.recurrence import anniversary_day, resolve_due_date
from allowance_tasks.tasks.task_models import Recurrence, sunday_weekday

from .fakes import make_task

# 2024-03-01 is a Friday, so the sweep's "tomorrow" is Saturday (6).
FRIDAY = date(2024, 3, 1)


def test_sunday_weekday_convention() -> None:
    assert sunday_weekday(date(2024, 3, 3)) == 0  # Sunday
    assert sunday_weekday(date(2024, 3, 4)) == 1  # Monday
    assert sunday_weekday(date(2024, 3, 2)) == 6  # Saturday


@pytest.mark.parametrize(
    "today, expected",
    [
        (FRIDAY, date(2024, 3, 2)),
        (date(2024, 2, 28), date(2024, 2, 29)),
        (date(2024, 12, 31), date(2025, 1, 1)),
    ],
)
def test_daily_without_weekday_targets_tomorrow(today: date, expected: date) -> None:
    assert resolve_due_date(today, make_task(recurrence=Recurrence.DAILY)) == expected


def test_daily_with_weekday_only_fires_on_that_weekday() -> None:
    saturday_task = make_task(recurrence=Recurrence.DAILY, recurrence_day=6)
    monday_task = make_task(recurrence=Recurrence.DAILY, recurrence_day=1)

    assert resolve_due_date(FRIDAY, saturday_task) == date(2024, 3, 2)
    assert resolve_due_date(FRIDAY, monday_task) is None

    # Over a week it fires exactly once: a daily task with a weekday behaves weekly.
    hits = [
        resolve_due_date(FRIDAY + timedelta(days=i), monday_task) for i in range(7)
    ]
    assert [h for h in hits if h is not None] == [date(2024, 3, 4)]


@pytest.mark.parametrize(
    "weekday, expected",
    [
        (6, date(2024, 3, 2)),  # tomorrow itself
        (0, date(2024, 3, 3)),
        (5, date(2024, 3, 8)),
    ],
)
def test_weekly_with_weekday_scans_forward(weekday: int, expected: date) -> None:
    task = make_task(recurrence=Recurrence.WEEKLY, recurrence_day=weekday)
    assert resolve_due_date(FRIDAY, task) == expected


@pytest.mark.parametrize("weekday", range(7))
def test_weekly_with_weekday_is_within_two_weeks_and_matches(weekday: int) -> None:
    for i in range(10):
        today = FRIDAY + timedelta(days=i)
        tomorrow = today + timedelta(days=1)
        due = resolve_due_date(today, make_task(recurrence=Recurrence.WEEKLY, recurrence_day=weekday))
        assert due is not None
        assert tomorrow <= due < tomorrow + timedelta(days=14)
        assert sunday_weekday(due) == weekday


def test_weekly_without_weekday_is_tomorrow_plus_seven() -> None:
    task = make_task(recurrence=Recurrence.WEEKLY)
    for i in range(40):
        today = FRIDAY + timedelta(days=i)
        assert resolve_due_date(today, task) == today + timedelta(days=8)


def test_monthly_fires_on_creation_anniversary_only() -> None:
    task = make_task(
        recurrence=Recurrence.MONTHLY,
        created_at=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
    )
    assert resolve_due_date(date(2024, 3, 14), task) == date(2024, 3, 15)
    assert resolve_due_date(date(2024, 3, 15), task) is None

    start = date(2024, 1, 1)
    hits = []
    for i in range(366):
        due = resolve_due_date(start + timedelta(days=i), task)
        if due is not None:
            hits.append(due)
    assert len(hits) == 12
    assert all(h.day == 15 for h in hits)


def test_monthly_created_on_31st_never_fires_in_short_months() -> None:
    task = make_task(
        recurrence=Recurrence.MONTHLY,
        created_at=datetime(2024, 1, 31, 8, 0, tzinfo=timezone.utc),
    )
    april = [resolve_due_date(date(2024, 3, 31) + timedelta(days=i), task) for i in range(30)]
    assert all(d is None for d in april)
    assert resolve_due_date(date(2024, 3, 30), task) == date(2024, 3, 31)


def test_monthly_anniversary_uses_generator_timezone() -> None:
    task = make_task(
        recurrence=Recurrence.MONTHLY,
        created_at=datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc),
    )
    assert anniversary_day(task) == 15
    assert anniversary_day(task, ZoneInfo("Asia/Tokyo")) == 16
    assert resolve_due_date(date(2024, 2, 15), task, ZoneInfo("Asia/Tokyo")) == date(2024, 2, 16)


def test_none_recurrence_has_no_candidate() -> None:
    assert resolve_due_date(FRIDAY, make_task(recurrence=Recurrence.NONE)) is None


def test_resolver_is_deterministic() -> None:
    task = make_task(recurrence=Recurrence.WEEKLY, recurrence_day=3)
    assert {resolve_due_date(FRIDAY, task) for _ in range(5)} == {date(2024, 3, 6)}
