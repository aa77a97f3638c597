"""JSON adapter for portal snapshots and reminder settings."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Optional

from reminder_engine.schema import Course, Exam, Meet, ReminderSettings

logger = logging.getLogger(__name__)

_COURSE_FIELDS = {"id", "subject", "day_of_week", "start_time", "class_id"}
_EXAM_FIELDS = {"id", "subject", "date", "class_id"}
_MEET_FIELDS = {"id", "subject", "date", "class_id"}

# camelCase spellings used by the web client
_ALIASES = {
    "dayOfWeek": "day_of_week",
    "startTime": "start_time",
    "endTime": "end_time",
    "classId": "class_id",
    "durationMinutes": "duration_minutes",
    "teacherName": "teacher_name",
    "occursAt": "date",
}

_SETTINGS_KEYS = {
    "enabled": "enabled",
    "courseDelay": "course_delay_minutes",
    "courseDelayMinutes": "course_delay_minutes",
    "course_delay_minutes": "course_delay_minutes",
    "examDelay": "exam_delay_minutes",
    "examDelayMinutes": "exam_delay_minutes",
    "exam_delay_minutes": "exam_delay_minutes",
    "meetDelay": "meet_delay_minutes",
    "meetDelayMinutes": "meet_delay_minutes",
    "meet_delay_minutes": "meet_delay_minutes",
}


@dataclass
class Snapshot:
    """Everything the reminder core reads from one portal data load."""

    courses: list[Course] = field(default_factory=list)
    exams: list[Exam] = field(default_factory=list)
    meets: list[Meet] = field(default_factory=list)
    settings: Optional[ReminderSettings] = None


def _normalize(item: dict) -> dict:
    return {_ALIASES.get(key, key): value for key, value in item.items()}


def _require(item: dict, required: set, label: str) -> None:
    missing = sorted(name for name in required if item.get(name) in (None, ""))
    if missing:
        raise ValueError(f"{label}: missing required fields {missing}")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp into a naive local datetime."""

    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def _parse_course(item: dict, index: int) -> Course:
    label = f"Course {index}"
    _require(item, _COURSE_FIELDS, label)
    try:
        day_of_week = int(item["day_of_week"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid day_of_week") from exc
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"{label}: day_of_week out of range {day_of_week}")

    end_time = item.get("end_time")
    return Course(
        id=str(item["id"]).strip(),
        subject=str(item["subject"]).strip(),
        room=str(item.get("room") or "").strip(),
        day_of_week=day_of_week,
        start_time=str(item["start_time"]).strip(),
        class_id=str(item["class_id"]).strip(),
        end_time=str(end_time).strip() if end_time else None,
    )


def _parse_exam(item: dict, index: int) -> Exam:
    label = f"Exam {index}"
    _require(item, _EXAM_FIELDS, label)
    try:
        occurs_at = parse_timestamp(item["date"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: malformed date") from exc
    try:
        duration = int(item.get("duration_minutes") or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid duration_minutes") from exc

    return Exam(
        id=str(item["id"]).strip(),
        subject=str(item["subject"]).strip(),
        room=str(item.get("room") or "").strip(),
        occurs_at=occurs_at,
        duration_minutes=duration,
        class_id=str(item["class_id"]).strip(),
        notes=item.get("notes") or None,
    )


def _parse_meet(item: dict, index: int) -> Meet:
    label = f"Meet {index}"
    _require(item, _MEET_FIELDS, label)
    try:
        occurs_at = parse_timestamp(item["date"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: malformed date") from exc

    return Meet(
        id=str(item["id"]).strip(),
        subject=str(item["subject"]).strip(),
        teacher_name=str(item.get("teacher_name") or "").strip(),
        occurs_at=occurs_at,
        class_id=str(item["class_id"]).strip(),
        link=item.get("link") or None,
    )


def _parse_rows(rows: Any, parser, name: str) -> list:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ValueError(f"'{name}' must be a list of objects")

    parsed = []
    for index, item in enumerate(rows, start=1):
        if not isinstance(item, dict):
            logger.warning(f"Skipping {name} row {index}: not an object")
            continue
        try:
            parsed.append(parser(_normalize(item), index))
        except ValueError as exc:
            logger.warning(f"Skipping {name} row: {exc}")
    return parsed


def parse_settings(payload: Any) -> ReminderSettings:
    """Build settings from a loose mapping; unknown keys are ignored, bad values keep defaults."""

    defaults = ReminderSettings()
    if not isinstance(payload, dict):
        return defaults

    values = {item.name: getattr(defaults, item.name) for item in fields(ReminderSettings)}
    for key, raw in payload.items():
        name = _SETTINGS_KEYS.get(key)
        if name is None:
            continue
        if name == "enabled":
            if isinstance(raw, bool):
                values[name] = raw
            continue
        if isinstance(raw, bool):
            continue
        try:
            minutes = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid reminder setting {key}={raw!r}")
            continue
        if minutes < 0:
            logger.warning(f"Ignoring negative reminder setting {key}={raw!r}")
            continue
        values[name] = minutes
    return ReminderSettings(**values)


def settings_to_dict(settings: ReminderSettings) -> dict:
    return {
        "enabled": settings.enabled,
        "courseDelay": settings.course_delay_minutes,
        "examDelay": settings.exam_delay_minutes,
        "meetDelay": settings.meet_delay_minutes,
    }


def parse_payload(payload: Any) -> Snapshot:
    """Parse an already-decoded snapshot object; malformed rows are skipped."""

    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object with courses/exams/meets lists")

    settings_raw = payload.get("settings")
    return Snapshot(
        courses=_parse_rows(payload.get("courses"), _parse_course, "courses"),
        exams=_parse_rows(payload.get("exams"), _parse_exam, "exams"),
        meets=_parse_rows(payload.get("meets"), _parse_meet, "meets"),
        settings=parse_settings(settings_raw) if settings_raw is not None else None,
    )


def parse(file_path: str) -> Snapshot:
    """Parse a JSON snapshot file."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return parse_payload(payload)
