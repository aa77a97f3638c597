"""Replay a portal snapshot over virtual time and print the notifications."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reminder_engine.adapters import csv_adapter, json_adapter
from reminder_engine.config import EngineConfig
from reminder_engine.schema import Role, Viewer
from reminder_engine.settings_store import JsonSettingsStore
from reminder_engine.simulation import replay


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay reminder scheduling for one viewer")
    parser.add_argument("--data", required=True, help="Path to a JSON snapshot")
    parser.add_argument("--timetable", help="Optional timetable CSV, replaces the snapshot courses")
    parser.add_argument("--start", required=True, help="Virtual start time, ISO format")
    parser.add_argument("--minutes", type=int, default=120, help="Minutes to simulate")
    parser.add_argument("--viewer-id", default="viewer")
    parser.add_argument("--role", choices=[role.value for role in Role], default=Role.STUDENT.value)
    parser.add_argument("--class-id", help="Viewer class (ignored for ADMIN)")
    parser.add_argument(
        "--settings-file",
        help="Reminder preferences JSON (defaults to REMINDER_SETTINGS_FILE); snapshot settings apply if missing",
    )
    parser.add_argument("--idle", action="store_true", help="Simulate a viewer who never interacts")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    snapshot = json_adapter.parse(args.data)
    if args.timetable:
        snapshot.courses = csv_adapter.parse(args.timetable)

    config = EngineConfig.from_env()
    settings_path = Path(args.settings_file) if args.settings_file else config.settings_file
    settings_store = JsonSettingsStore(settings_path) if settings_path.exists() else None

    viewer = Viewer(args.viewer_id, Role(args.role), args.class_id)
    result = replay(
        snapshot,
        viewer,
        datetime.fromisoformat(args.start),
        args.minutes,
        keep_alive=not args.idle,
        config=config,
        settings_store=settings_store,
    )

    report = {
        "notifications": [
            {
                "at": item.created_at.isoformat(),
                "kind": item.kind.value,
                "message": item.message,
                "target_page": item.target_page,
                "resource_id": item.resource_id,
            }
            for item in result["notifications"]
        ],
        "ended_at": result["ended_at"].isoformat() if result["ended_at"] else None,
        "logout_notice": result["logout_notice"],
    }
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
