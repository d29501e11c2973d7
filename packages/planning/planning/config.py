from __future__ import annotations

import os
from dataclasses import dataclass


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"0", "false", "off", "no"}:
        return False
    if normalized in {"1", "true", "on", "yes"}:
        return True
    return default


@dataclass(frozen=True)
class PlanningConfig:
    strict_choices: bool = False
    planning_status: str = "planning"
    spec_title: str = "Task Specification"

    @classmethod
    def from_env(cls) -> "PlanningConfig":
        return cls(
            strict_choices=_read_bool_env("PLANNING_STRICT_CHOICES", False),
            planning_status=os.getenv("PLANNING_TASK_STATUS", "planning"),
            spec_title=os.getenv("PLANNING_SPEC_TITLE", "Task Specification"),
        )
