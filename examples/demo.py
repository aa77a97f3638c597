"""Demo script for reminder-engine."""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from reminder_engine.adapters.json_adapter import parse
from reminder_engine.schema import Role, Viewer
from reminder_engine.simulation import replay


def main() -> None:
    snapshot = parse("examples/sample_snapshot.json")
    viewer = Viewer("u3", Role.STUDENT, "c1")

    active = replay(snapshot, viewer, datetime(2025, 1, 6, 7, 30), minutes=120)
    for item in active["notifications"]:
        print(f"{item.created_at:%H:%M} [{item.kind.value}] {item.message}")

    idle = replay(snapshot, viewer, datetime(2025, 1, 6, 7, 30), minutes=60, keep_alive=False)
    print("Idle session ended at:", idle["ended_at"])
    print("Sign-in page notice:", idle["logout_notice"])


if __name__ == "__main__":
    main()
