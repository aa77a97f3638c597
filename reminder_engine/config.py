"""Engine configuration from environment variables.

Variables:
    REMINDER_TICK_SECONDS          - Scheduler loop period (default: 60)
    REMINDER_TOAST_TTL_MS          - Toast lifetime in milliseconds (default: 5000)
    REMINDER_IDLE_TIMEOUT_MINUTES  - Inactivity timeout (default: 15)
    REMINDER_IDLE_CHECK_SECONDS    - Inactivity check period (default: 60)
    REMINDER_SETTINGS_FILE         - Local reminder preference file (default: reminder_settings.json)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class EngineConfig:
    tick_seconds: int = 60
    toast_ttl_ms: int = 5000
    idle_timeout_minutes: int = 15
    idle_check_seconds: int = 60
    settings_file: Path = Path("reminder_settings.json")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if env is None else env
        return cls(
            tick_seconds=_positive_int(env, "REMINDER_TICK_SECONDS", cls.tick_seconds),
            toast_ttl_ms=_positive_int(env, "REMINDER_TOAST_TTL_MS", cls.toast_ttl_ms),
            idle_timeout_minutes=_positive_int(env, "REMINDER_IDLE_TIMEOUT_MINUTES", cls.idle_timeout_minutes),
            idle_check_seconds=_positive_int(env, "REMINDER_IDLE_CHECK_SECONDS", cls.idle_check_seconds),
            settings_file=Path(env.get("REMINDER_SETTINGS_FILE") or cls.settings_file),
        )
