from datetime import datetime, timedelta

from reminder_engine.catalog import EventCatalog
from reminder_engine.dedup import DedupTracker
from reminder_engine.evaluator import evaluate, format_lead, portal_weekday
from reminder_engine.schema import Course, Exam, Meet, NotificationKind, ReminderSettings

# 2025-01-06 is a Monday (day_of_week 1)
MONDAY_0750 = datetime(2025, 1, 6, 7, 50)


def course(course_id="c1", day=1, start="08:00", room="B12"):
    return Course(course_id, "Algorithms", room, day, start, "cls1")


def exam(exam_id="e1", occurs_at=None):
    return Exam(exam_id, "SQL Databases", "Amphi A", occurs_at or MONDAY_0750 + timedelta(hours=2), 120, "cls1")


def meet(meet_id="m1", occurs_at=None):
    return Meet(meet_id, "Advanced React", "M. Diop", occurs_at or MONDAY_0750 + timedelta(minutes=20), "cls1")


def test_portal_weekday_counts_from_sunday():
    assert portal_weekday(MONDAY_0750) == 1
    assert portal_weekday(datetime(2025, 1, 5, 12, 0)) == 0
    assert portal_weekday(datetime(2025, 1, 11, 12, 0)) == 6


def test_course_alert_once_per_day():
    catalog = EventCatalog(courses=(course(),))
    tracker = DedupTracker()
    settings = ReminderSettings(course_delay_minutes=15)

    alerts = evaluate(MONDAY_0750, catalog, settings, tracker)
    assert [a.message for a in alerts] == ["Reminder: Algorithms in 10 min (B12)"]
    assert alerts[0].kind == NotificationKind.INFO
    assert alerts[0].target_page == "timetable"
    assert alerts[0].resource_id == "c1"

    assert evaluate(datetime(2025, 1, 6, 7, 52), catalog, settings, tracker) == []


def test_course_fires_again_next_week():
    catalog = EventCatalog(courses=(course(),))
    tracker = DedupTracker()
    settings = ReminderSettings(course_delay_minutes=15)

    assert len(evaluate(MONDAY_0750, catalog, settings, tracker)) == 1
    assert len(evaluate(MONDAY_0750 + timedelta(days=7), catalog, settings, tracker)) == 1


def test_course_other_weekday_ignored():
    catalog = EventCatalog(courses=(course(day=2),))
    assert evaluate(MONDAY_0750, catalog, ReminderSettings(), DedupTracker()) == []


def test_window_bounds():
    settings = ReminderSettings(course_delay_minutes=10)
    catalog = EventCatalog(courses=(course(),))

    # diff == delay fires
    assert len(evaluate(MONDAY_0750, catalog, settings, DedupTracker())) == 1
    # diff == delay + 1 does not
    assert evaluate(datetime(2025, 1, 6, 7, 49), catalog, settings, DedupTracker()) == []
    # started or already passed
    assert evaluate(datetime(2025, 1, 6, 8, 0), catalog, settings, DedupTracker()) == []
    assert evaluate(datetime(2025, 1, 6, 8, 5), catalog, settings, DedupTracker()) == []


def test_exam_scenario_fires_once_inside_window():
    start = MONDAY_0750
    catalog = EventCatalog(exams=(exam(occurs_at=start + timedelta(minutes=90)),))
    settings = ReminderSettings(exam_delay_minutes=60)
    tracker = DedupTracker()

    assert evaluate(start, catalog, settings, tracker) == []

    alerts = evaluate(start + timedelta(minutes=35), catalog, settings, tracker)
    assert [a.message for a in alerts] == ["Exam reminder: SQL Databases in 55 min"]
    assert alerts[0].kind == NotificationKind.WARNING
    assert alerts[0].target_page == "exams"

    for minute in range(36, 90):
        assert evaluate(start + timedelta(minutes=minute), catalog, settings, tracker) == []


def test_exam_does_not_refire_when_delay_grows():
    catalog = EventCatalog(exams=(exam(occurs_at=MONDAY_0750 + timedelta(minutes=30)),))
    tracker = DedupTracker()

    assert len(evaluate(MONDAY_0750, catalog, ReminderSettings(exam_delay_minutes=45), tracker)) == 1
    assert evaluate(MONDAY_0750, catalog, ReminderSettings(exam_delay_minutes=600), tracker) == []


def test_exam_lead_in_hours():
    catalog = EventCatalog(exams=(exam(occurs_at=MONDAY_0750 + timedelta(minutes=150)),))
    alerts = evaluate(MONDAY_0750, catalog, ReminderSettings(), DedupTracker())
    assert alerts[0].message == "Exam reminder: SQL Databases in 2h30"


def test_format_lead():
    assert format_lead(45) == "45 min"
    assert format_lead(60) == "60 min"
    assert format_lead(120) == "2h"
    assert format_lead(61) == "1h01"


def test_meet_alert():
    catalog = EventCatalog(meets=(meet(),))
    alerts = evaluate(MONDAY_0750, catalog, ReminderSettings(meet_delay_minutes=30), DedupTracker())
    assert [a.message for a in alerts] == ["Video reminder: Advanced React starts in 20 min"]
    assert alerts[0].target_page == "meet"


def test_order_is_courses_exams_meets():
    catalog = EventCatalog(
        courses=(course("c1"), course("c2", start="08:05")),
        exams=(exam(),),
        meets=(meet(),),
    )
    alerts = evaluate(MONDAY_0750, catalog, ReminderSettings(), DedupTracker())
    assert [a.resource_id for a in alerts] == ["c1", "c2", "e1", "m1"]


def test_disabled_consumes_nothing():
    catalog = EventCatalog(courses=(course(),), exams=(exam(),), meets=(meet(),))
    tracker = DedupTracker()

    assert evaluate(MONDAY_0750, catalog, ReminderSettings(enabled=False), tracker) == []
    assert len(tracker) == 0
    assert len(evaluate(MONDAY_0750, catalog, ReminderSettings(), tracker)) == 3


def test_malformed_entities_are_skipped():
    catalog = EventCatalog(
        courses=(course("bad", start="8h"), course("worse", start="25:00"), course("good")),
        exams=(Exam("e-bad", "X", "R", None, 60, "cls1"), exam()),
    )
    alerts = evaluate(MONDAY_0750, catalog, ReminderSettings(), DedupTracker())
    assert [a.resource_id for a in alerts] == ["good", "e1"]
