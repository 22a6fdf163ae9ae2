# src/allowance_tasks/web/app.py

from __future__ import annotations

"""
HTTP invocation surface.

POST with no body (or a body without manual keys) runs the automatic sweep;
POST with {task_id, daughter_ids, due_date} runs the manual assignment path.
All origins are allowed (the mobile app calls this directly).
"""

import logging
from datetime import datetime, timezone

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from ..core.state import AppState
from ..tasks.manual import ManualRequest, assign_task_instances, is_manual_payload
from ..tasks.materializer import run_recurring_sweep
from ..tasks.task_errors import InvalidRequestError, TaskGeneratorError
from ..tasks.task_generator import local_today
from ..tasks.task_models import parse_due_date

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def _state() -> AppState:
    return current_app.config["APP_STATE"]


def _run_date(state: AppState):
    raw = request.args.get("date")
    if not raw:
        return local_today(state.tz)
    try:
        return parse_due_date(raw)
    except ValueError as e:
        raise InvalidRequestError(f"date must be YYYY-MM-DD, got {raw!r}") from e


def create_task_instances():
    state = _state()

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = None

    if is_manual_payload(body):
        req = ManualRequest.from_payload(body)
        result = assign_task_instances(state.task_store, req)
        return jsonify(result.to_dict()), 200

    result = run_recurring_sweep(
        state.task_store,
        today=_run_date(state),
        tz=state.tz,
        workers=state.sweep_workers,
    )
    return jsonify(result.to_dict()), 200


def healthz():
    return jsonify({"ok": True, "time": datetime.now(timezone.utc).isoformat()}), 200


def create_app(state: AppState) -> Flask:
    app = Flask(__name__)
    app.config["APP_STATE"] = state

    CORS(
        app,
        resources={r"/*": {"origins": "*"}},
        allow_headers=CORS_ALLOW_HEADERS,
        send_wildcard=True,
    )

    for rule in ("/", "/create-task-instances"):
        app.add_url_rule(
            rule,
            endpoint=f"create_task_instances{rule.replace('/', '_')}",
            view_func=create_task_instances,
            methods=["POST"],
        )
    app.add_url_rule("/healthz", view_func=healthz, methods=["GET"])

    @app.errorhandler(TaskGeneratorError)
    def _generator_error(e: TaskGeneratorError):
        logger.info("Request rejected status=%s error=%s", e.http_status, e)
        return jsonify({"error": str(e)}), e.http_status

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        logger.exception("Error in create-task-instances")
        return jsonify({"error": str(e)}), 500

    return app
