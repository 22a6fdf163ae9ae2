# src/allowance_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs one of:
- sweep:    one automatic sweep (optionally for another date / as a dry run),
- assign:   manual assignment of a task to children for a date,
- serve:    the HTTP trigger endpoint,
- schedule: the daily generator loop.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.manual import ManualRequest, assign_task_instances
from ..tasks.materializer import run_recurring_sweep
from ..tasks.task_errors import TaskGeneratorError
from ..tasks.task_generator import local_today, run_task_generator
from ..tasks.task_models import parse_due_date

logger = logging.getLogger(__name__)


def _date_arg(raw: str):
    try:
        return parse_due_date(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {raw!r}") from e


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="allowance-tasks",
        description="Create chore task instances from recurring task definitions.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("sweep", help="Run the automatic sweep once.")
    sp.add_argument("--date", type=_date_arg, default=None,
                    help="Run date (default: today in ALLOWANCE_TIMEZONE). Instances target the next day.")
    sp.add_argument("--dry-run", action="store_true", help="Show planned instances without writing.")

    ap_assign = sub.add_parser("assign", help="Assign a task to children for a due date.")
    ap_assign.add_argument("task_id")
    ap_assign.add_argument("due_date")
    ap_assign.add_argument("child_ids", nargs="+", metavar="CHILD_ID")

    serve = sub.add_parser("serve", help="Serve the HTTP trigger endpoint.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    sub.add_parser("schedule", help="Run the sweep every day at ALLOWANCE_RUN_AT.")
    return ap


def cmd_sweep(state: AppState, args: argparse.Namespace) -> int:
    today = args.date or local_today(state.tz)
    result = run_recurring_sweep(
        state.task_store,
        today=today,
        tz=state.tz,
        dry_run=args.dry_run,
        workers=state.sweep_workers,
    )
    if args.dry_run:
        for t in result.planned_triples:
            print(f"  would create task={t.task_id} child={t.assignee_id} due={t.due_date.isoformat()}")
    print(result.message)
    return 1 if result.failed else 0


def cmd_assign(state: AppState, args: argparse.Namespace) -> int:
    payload = {"task_id": args.task_id, "daughter_ids": list(args.child_ids), "due_date": args.due_date}
    try:
        result = assign_task_instances(state.task_store, ManualRequest.from_payload(payload))
    except TaskGeneratorError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_serve(state: AppState, args: argparse.Namespace) -> int:
    from ..web.app import create_app

    app = create_app(state)
    host = args.host or state.settings.http_host
    port = args.port or state.settings.http_port
    logger.info("Serving on http://%s:%s", host, port)
    app.run(host=host, port=port)
    return 0


def cmd_schedule(state: AppState, args: argparse.Namespace) -> int:
    settings = state.settings
    try:
        asyncio.run(
            run_task_generator(
                state.task_store,
                tz=state.tz,
                run_at=settings.run_at,
                run_on_start=settings.run_on_start,
                workers=state.sweep_workers,
            )
        )
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    return 0


COMMANDS = {
    "sweep": cmd_sweep,
    "assign": cmd_assign,
    "serve": cmd_serve,
    "schedule": cmd_schedule,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s (%s)...", settings.app_name, args.command)
    state = create_initial_state(settings=settings)
    return COMMANDS[args.command](state, args)


if __name__ == "__main__":
    sys.exit(main())
