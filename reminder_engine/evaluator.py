"""Reminder evaluation: which alerts are due right now."""

from __future__ import annotations

import logging
from datetime import datetime, time

from reminder_engine.catalog import EventCatalog
from reminder_engine.dedup import DedupTracker, course_key, exam_key, meet_key
from reminder_engine.schema import AlertIntent, Course, Exam, Meet, NotificationKind, ReminderSettings

logger = logging.getLogger(__name__)

TIMETABLE_PAGE = "timetable"
EXAMS_PAGE = "exams"
MEET_PAGE = "meet"


def portal_weekday(moment: datetime) -> int:
    """Weekday number used by courses: 0 = Sunday, 1 = Monday ... 6 = Saturday."""

    return (moment.weekday() + 1) % 7


def parse_start_time(value: str) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) start time."""

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"malformed start time {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"start time out of range {value!r}")
    return time(hour, minute)


def lead_minutes(target: datetime, now: datetime) -> int:
    """Whole minutes from now until target, rounded down."""

    return int((target - now).total_seconds() // 60)


def format_lead(diff: int) -> str:
    """Render a lead time, switching to hours above one hour."""

    if diff <= 60:
        return f"{diff} min"
    hours, minutes = divmod(diff, 60)
    if not minutes:
        return f"{hours}h"
    return f"{hours}h{minutes:02d}"


def _in_window(diff: int, delay: int) -> bool:
    return 0 < diff <= delay


def _course_alert(course: Course, now: datetime, settings: ReminderSettings, tracker: DedupTracker):
    if course.day_of_week != portal_weekday(now):
        return None
    course_instant = datetime.combine(now.date(), parse_start_time(course.start_time))
    diff = lead_minutes(course_instant, now)
    if not _in_window(diff, settings.course_delay_minutes):
        return None
    key = course_key(course, now.date())
    if not tracker.consume(key):
        return None
    return AlertIntent(
        key=key,
        message=f"Reminder: {course.subject} in {diff} min ({course.room})",
        kind=NotificationKind.INFO,
        target_page=TIMETABLE_PAGE,
        resource_id=course.id,
    )


def _exam_alert(exam: Exam, now: datetime, settings: ReminderSettings, tracker: DedupTracker):
    diff = lead_minutes(_occurrence(exam.occurs_at), now)
    if not _in_window(diff, settings.exam_delay_minutes):
        return None
    key = exam_key(exam)
    if not tracker.consume(key):
        return None
    return AlertIntent(
        key=key,
        message=f"Exam reminder: {exam.subject} in {format_lead(diff)}",
        kind=NotificationKind.WARNING,
        target_page=EXAMS_PAGE,
        resource_id=exam.id,
    )


def _meet_alert(meet: Meet, now: datetime, settings: ReminderSettings, tracker: DedupTracker):
    diff = lead_minutes(_occurrence(meet.occurs_at), now)
    if not _in_window(diff, settings.meet_delay_minutes):
        return None
    key = meet_key(meet)
    if not tracker.consume(key):
        return None
    return AlertIntent(
        key=key,
        message=f"Video reminder: {meet.subject} starts in {diff} min",
        kind=NotificationKind.INFO,
        target_page=MEET_PAGE,
        resource_id=meet.id,
    )


def _occurrence(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"missing occurrence time {value!r}")


def evaluate(
    now: datetime,
    catalog: EventCatalog,
    settings: ReminderSettings,
    tracker: DedupTracker,
) -> list[AlertIntent]:
    """Return newly due alerts (courses, then exams, then meets) and consume their keys."""

    if not settings.enabled:
        return []

    checks = (
        [(_course_alert, course) for course in catalog.courses]
        + [(_exam_alert, exam) for exam in catalog.exams]
        + [(_meet_alert, meet) for meet in catalog.meets]
    )

    alerts: list[AlertIntent] = []
    for check, entity in checks:
        try:
            alert = check(entity, now, settings, tracker)
        except (TypeError, ValueError) as exc:
            logger.debug(f"Skipping {type(entity).__name__} {getattr(entity, 'id', '?')}: {exc}")
            continue
        if alert is not None:
            alerts.append(alert)

    if alerts:
        logger.debug(f"{len(alerts)} reminder(s) due at {now:%Y-%m-%d %H:%M}")
    return alerts
