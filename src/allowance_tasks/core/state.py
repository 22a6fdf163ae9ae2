# src/allowance_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

from .ports import TaskRepo


@dataclass
class AppState:
    # Settings (real Settings or a SimpleNamespace in tests).
    settings: Any
    task_store: TaskRepo

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(str(getattr(self.settings, "timezone", "UTC") or "UTC"))

    @property
    def sweep_workers(self) -> int:
        return max(1, int(getattr(self.settings, "sweep_workers", 1) or 1))
