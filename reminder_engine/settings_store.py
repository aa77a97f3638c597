"""Local reminder preference stores."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from reminder_engine.adapters.json_adapter import parse_settings, settings_to_dict
from reminder_engine.schema import ReminderSettings

logger = logging.getLogger(__name__)


class MemorySettingsStore:
    """Keeps settings in memory only."""

    def __init__(self, settings: ReminderSettings | None = None):
        self._settings = settings or ReminderSettings()

    def load(self) -> ReminderSettings:
        return self._settings

    def save(self, settings: ReminderSettings) -> None:
        self._settings = settings


class JsonSettingsStore:
    """Reminder preferences persisted to a small JSON file."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> ReminderSettings:
        if not self._path.exists():
            return ReminderSettings()
        try:
            with open(self._path, encoding="utf-8") as handle:
                payload = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"Could not read reminder settings from {self._path}, using defaults: {exc}")
            return ReminderSettings()
        return parse_settings(payload)

    def save(self, settings: ReminderSettings) -> None:
        """Atomically write settings via a temp file."""

        with self._lock:
            tmp_file = self._path.with_suffix(".tmp")
            with open(tmp_file, "w", encoding="utf-8") as handle:
                json.dump(settings_to_dict(settings), handle, indent=2)
            os.replace(str(tmp_file), str(self._path))
