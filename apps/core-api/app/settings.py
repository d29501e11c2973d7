"""服务设置：只从环境变量读取一次（启动时）。"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple

_DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://localhost:8000")


def _read_list_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_name: str = "Task Planning API"
    cors_origins: Tuple[str, ...] = field(default=_DEFAULT_CORS_ORIGINS)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            app_name=os.getenv("TASK_PLANNING_APP_NAME", "Task Planning API"),
            cors_origins=_read_list_env("TASK_PLANNING_CORS_ORIGINS", _DEFAULT_CORS_ORIGINS),
        )
