"""CSV adapter for weekly timetables."""

from __future__ import annotations

import csv

from reminder_engine.evaluator import parse_start_time
from reminder_engine.schema import Course

_REQUIRED_FIELDS = {"id", "subject", "day_of_week", "start_time", "class_id"}


def _parse_row(row: dict, row_number: int) -> Course:
    missing = sorted(field for field in _REQUIRED_FIELDS if not (row.get(field) or "").strip())
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    try:
        day_of_week = int(row["day_of_week"])
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: invalid day_of_week") from exc
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"Row {row_number}: day_of_week must be between 0 (Sunday) and 6")

    start_time = row["start_time"].strip()
    try:
        parse_start_time(start_time)
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: malformed start_time") from exc

    end_raw = row.get("end_time")
    room_raw = row.get("room")

    return Course(
        id=row["id"].strip(),
        subject=row["subject"].strip(),
        room=room_raw.strip() if room_raw else "",
        day_of_week=day_of_week,
        start_time=start_time,
        class_id=row["class_id"].strip(),
        end_time=end_raw.strip() if end_raw else None,
    )


def parse(file_path: str) -> list[Course]:
    """Parse a timetable CSV file into courses."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        courses: list[Course] = []
        for row_number, row in enumerate(reader, start=2):
            courses.append(_parse_row(row, row_number))
        return courses
