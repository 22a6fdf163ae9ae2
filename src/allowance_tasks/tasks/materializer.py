# src/allowance_tasks/tasks/materializer.py

from __future__ import annotations

"""
Instance materializer and the automatic sweep.

For every active recurring task:
- resolve the eligible assignees (explicit list intersected with the family's
  children, or every child of the family),
- ask the resolver for the due date,
- create each missing (task, assignee, due_date) instance as pending.

Each triple is independent: a failure is logged and skipped, the sweep goes on.
The store's uniqueness constraint is the authoritative duplicate guard; the
existence check here only avoids pointless inserts.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, tzinfo
from enum import Enum

from ..core.ports import TaskRepo
from .recurrence import resolve_due_date
from .task_errors import DuplicateInstanceError
from .task_models import ChildMember, InstanceStatus, Recurrence, TaskDefinition, TaskInstance

logger = logging.getLogger(__name__)


class TripleOutcome(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class Triple:
    task_id: str
    assignee_id: str
    due_date: date


@dataclass(slots=True)
class SweepResult:
    run_date: date
    created: int = 0
    existing: int = 0
    planned: int = 0
    failed: int = 0
    tasks_seen: int = 0
    tasks_skipped: int = 0
    dry_run: bool = False
    created_instances: list[TaskInstance] = field(default_factory=list)
    planned_triples: list[Triple] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.dry_run:
            return f"Would create {self.planned} recurring task instances"
        return f"Created {self.created} recurring task instances"

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message, "created": self.created}


def resolve_assignees(
    task: TaskDefinition,
    children_by_family: dict[str, list[ChildMember]],
) -> list[str]:
    """
    Assignee ids for `task`.

    Explicit assignees are kept only if they are still children of the task's
    family (members may have left); no explicit list means every child.
    """
    family = children_by_family.get(task.family_id, [])
    if task.assignees:
        wanted = set(task.assignees)
        return [c.id for c in family if c.id in wanted]
    return [c.id for c in family]


def group_children(children: Iterable[ChildMember]) -> dict[str, list[ChildMember]]:
    out: dict[str, list[ChildMember]] = defaultdict(list)
    for c in children:
        out[c.family_id].append(c)
    return out


def plan_triples(
    tasks: Iterable[TaskDefinition],
    children: Iterable[ChildMember],
    *,
    today: date,
    tz: tzinfo | None = None,
) -> list[Triple]:
    """Resolver + assignee resolution for every task; no storage access."""
    by_family = group_children(children)
    triples: list[Triple] = []
    for task in tasks:
        if not task.active or task.recurrence == Recurrence.NONE:
            continue
        due = resolve_due_date(today, task, tz)
        if due is None:
            logger.debug("Task %s (%s) not due for run_date=%s", task.id, task.recurrence, today)
            continue
        for assignee_id in resolve_assignees(task, by_family):
            triples.append(Triple(task.id, assignee_id, due))
    return triples


def materialize_triple(repo: TaskRepo, triple: Triple) -> tuple[TripleOutcome, TaskInstance | None]:
    """
    Create the instance for one triple unless it already exists.

    Never raises: any failure is logged and reported as FAILED.
    """
    try:
        if repo.instance_exists(triple.task_id, triple.assignee_id, triple.due_date):
            logger.debug("Instance exists task=%s assignee=%s due=%s", *_fmt(triple))
            return TripleOutcome.EXISTING, None

        inst = TaskInstance(
            task_id=triple.task_id,
            assignee_id=triple.assignee_id,
            due_date=triple.due_date,
            status=InstanceStatus.PENDING,
        )
        try:
            repo.insert_instances([inst])
        except DuplicateInstanceError:
            # Lost a race with a concurrent run; the row is there, which is all we want.
            logger.info("Instance created concurrently task=%s assignee=%s due=%s", *_fmt(triple))
            return TripleOutcome.EXISTING, None

        logger.debug("Instance created id=%s task=%s assignee=%s due=%s", inst.id, *_fmt(triple))
        return TripleOutcome.CREATED, inst
    except Exception:
        logger.exception("materialize failed task=%s assignee=%s due=%s", *_fmt(triple))
        return TripleOutcome.FAILED, None


def _fmt(t: Triple) -> tuple[str, str, str]:
    return (t.task_id, t.assignee_id, t.due_date.isoformat())


def materialize(
    repo: TaskRepo,
    triples: Sequence[Triple],
    result: SweepResult,
    *,
    workers: int = 1,
) -> SweepResult:
    if workers > 1 and len(triples) > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="materialize") as pool:
            outcomes = list(pool.map(lambda t: materialize_triple(repo, t), triples))
    else:
        outcomes = [materialize_triple(repo, t) for t in triples]

    for outcome, inst in outcomes:
        if outcome == TripleOutcome.CREATED and inst is not None:
            result.created += 1
            result.created_instances.append(inst)
        elif outcome == TripleOutcome.EXISTING:
            result.existing += 1
        else:
            result.failed += 1
    return result


def run_recurring_sweep(
    repo: TaskRepo,
    *,
    today: date,
    tz: tzinfo | None = None,
    dry_run: bool = False,
    workers: int = 1,
) -> SweepResult:
    """
    Automatic sweep for run date `today`.

    Safe to re-run any number of times for the same day: existing instances are
    skipped, so a second run creates nothing. Read failures of the task or
    member lists propagate (the whole invocation fails); per-triple failures
    do not.
    """
    result = SweepResult(run_date=today, dry_run=dry_run)

    tasks = repo.list_active_recurring_tasks()
    children = repo.list_children()
    result.tasks_seen = len(tasks)

    triples = plan_triples(tasks, children, today=today, tz=tz)
    result.tasks_skipped = len(tasks) - len({t.task_id for t in triples})

    if dry_run:
        for t in triples:
            try:
                exists = repo.instance_exists(t.task_id, t.assignee_id, t.due_date)
            except Exception:
                logger.exception("existence check failed task=%s assignee=%s due=%s", *_fmt(t))
                result.failed += 1
                continue
            if exists:
                result.existing += 1
            else:
                result.planned += 1
                result.planned_triples.append(t)
    else:
        materialize(repo, triples, result, workers=workers)

    logger.info(
        "Sweep run_date=%s tasks=%s triples=%s tasks_skipped=%s created=%s existing=%s planned=%s failed=%s",
        today,
        result.tasks_seen,
        len(triples),
        result.tasks_skipped,
        result.created,
        result.existing,
        result.planned,
        result.failed,
    )
    return result
