# src/allowance_tasks/tasks/task_generator.py

from __future__ import annotations

"""
Daily generator loop.

Runs the automatic sweep once per day at a configured local time, so the
generator can be hosted as a long-running process instead of behind an
external cron/HTTP trigger. A missed or repeated run is harmless: the sweep
is idempotent for a given day.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo

from ..core.ports import TaskRepo
from .materializer import SweepResult, run_recurring_sweep

logger = logging.getLogger(__name__)


def local_today(tz: tzinfo, now: datetime | None = None) -> date:
    """The run date in the generator's timezone."""
    now = now or datetime.now(tz)
    return now.astimezone(tz).date()


def seconds_until(now: datetime, run_at: time) -> float:
    """Seconds from `now` to the next occurrence of `run_at` (same tz as `now`)."""
    target = now.replace(hour=run_at.hour, minute=run_at.minute, second=run_at.second, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def run_task_generator(
        task_store: TaskRepo,
        *,
        tz: tzinfo,
        run_at: time = time(0, 5),
        run_on_start: bool = True,
        workers: int = 1,
        clock: Callable[[], datetime] | None = None,
        on_result: Callable[[SweepResult], None] | None = None,
) -> None:
    """
    Daily loop:
    - optionally sweep immediately on start,
    - sleep until the next run_at (local time in tz),
    - sweep for the local date, repeat.

    A failing sweep is logged and retried at the next run time.
    To stop the loop, cancel the coroutine/task.
    """
    now_fn = clock or (lambda: datetime.now(tz))
    first = True

    while True:
        if not (first and run_on_start):
            delay = seconds_until(now_fn(), run_at)
            logger.info("Next sweep in %.0fs (run_at=%s)", delay, run_at.isoformat())
            await asyncio.sleep(delay)
        first = False

        today = local_today(tz, now_fn())
        try:
            result = await asyncio.to_thread(
                run_recurring_sweep,
                task_store,
                today=today,
                tz=tz,
                workers=workers,
            )
        except Exception:
            logger.exception("Sweep failed run_date=%s", today)
            continue

        if on_result is not None:
            on_result(result)
