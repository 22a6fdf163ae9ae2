# src/allowance_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Components receive settings injected; get_settings() is only for entrypoints.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "ALLOWANCE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_time(name: str, default: time) -> time:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return time.fromisoformat(raw.strip())
    except ValueError:
        return default


def _env_timezone(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip() or default
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return raw


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    log_dir: Path

    # ---- Generator ----
    timezone: str
    run_at: time
    run_on_start: bool
    sweep_workers: int

    # ---- HTTP ----
    http_host: str
    http_port: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "allowance-tasks") or "allowance-tasks"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/allowance"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "allowance.sqlite3")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)

        timezone = _env_timezone(_k("TIMEZONE"), "UTC")
        run_at = _env_time(_k("RUN_AT"), time(0, 5))
        run_on_start = _env_bool(_k("RUN_ON_START"), True)
        sweep_workers = max(1, _env_int(_k("SWEEP_WORKERS"), 1))

        http_host = _env(_k("HTTP_HOST"), "127.0.0.1")
        http_port = _env_int(_k("HTTP_PORT"), 8080)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            log_dir=log_dir,
            timezone=timezone,
            run_at=run_at,
            run_on_start=run_on_start,
            sweep_workers=sweep_workers,
            http_host=http_host,
            http_port=http_port,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Build settings once per process (loads .env on first call)."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
