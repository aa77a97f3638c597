from datetime import datetime, timedelta

import pytest

from reminder_engine.catalog import CatalogFeed
from reminder_engine.config import EngineConfig
from reminder_engine.scheduling import SchedulerState
from reminder_engine.schema import Course, Exam, NotificationKind, ReminderSettings, Role, Viewer
from reminder_engine.session import ReminderSession
from reminder_engine.settings_store import MemorySettingsStore
from reminder_engine.simulation import ManualClock, ManualTimerHost
from reminder_engine.watchdog import ActivityBus, WatchdogState

MONDAY_0750 = datetime(2025, 1, 6, 7, 50)
STUDENT = Viewer("u3", Role.STUDENT, "cls1")


class Harness:
    def __init__(self, settings=None, audit=None):
        self.clock = ManualClock(MONDAY_0750)
        self.timers = ManualTimerHost(self.clock)
        self.feed = CatalogFeed(STUDENT)
        self.activity = ActivityBus()
        self.ended = []
        self.audit_log = []
        self.settings_store = MemorySettingsStore(settings)
        self.session = ReminderSession(
            self.feed,
            end_session=lambda: self.ended.append(self.clock()),
            timers=self.timers,
            clock=self.clock,
            settings_store=self.settings_store,
            audit=audit or (lambda *entry: self.audit_log.append(entry)),
            activity=self.activity,
        )


def test_open_shows_due_reminders_immediately():
    h = Harness()
    h.feed.publish(courses=[Course("c1", "Algorithms", "B12", 1, "08:00", "cls1")])
    with h.session:
        assert [n.message for n in h.session.store.toasts] == ["Reminder: Algorithms in 10 min (B12)"]
        assert h.session.store.history[0].target_page == "timetable"


def test_other_class_events_are_not_visible():
    h = Harness()
    h.feed.publish(courses=[Course("c9", "Robotics", "TP2", 1, "08:00", "cls2")])
    with h.session:
        assert h.session.store.history == ()


def test_published_exam_alerts_without_waiting_for_tick():
    h = Harness()
    with h.session:
        h.timers.advance(seconds=5)
        h.feed.publish(exams=[Exam("e1", "SQL", "Amphi A", h.clock() + timedelta(minutes=40), 120, "cls1")])
        assert [n.message for n in h.session.store.history] == ["Exam reminder: SQL in 40 min"]
        assert h.session.store.history[0].kind == NotificationKind.WARNING


def test_update_settings_persists_and_notifies():
    h = Harness()
    with h.session:
        h.session.update_settings(ReminderSettings(enabled=False))
        assert h.settings_store.load() == ReminderSettings(enabled=False)
        assert h.session.store.history[0].message == "Reminder preferences updated"
        assert h.session.store.history[0].kind == NotificationKind.SUCCESS
        assert h.session.scheduler.state == SchedulerState.IDLE


def test_close_releases_everything():
    h = Harness()
    h.session.open()
    h.session.emit("hello")
    h.session.close()

    assert h.timers.pending == 0
    assert h.activity.listener_count() == 0
    assert h.session.scheduler.state == SchedulerState.IDLE
    assert h.session.watchdog.state == WatchdogState.TERMINATED
    assert not h.session.is_open


def test_logout_audits_and_ends_session_once():
    h = Harness()
    h.session.open()
    h.session.logout()
    h.session.logout()

    assert h.ended == [MONDAY_0750]
    assert h.audit_log == [("LOGOUT", "Signed out", "INFO")]
    assert h.timers.pending == 0


def test_inactivity_routes_through_logout():
    h = Harness()
    h.session.open()
    h.timers.advance(minutes=15)

    assert h.ended == [MONDAY_0750 + timedelta(minutes=15)]
    assert h.audit_log == [("LOGOUT", "Signed out after inactivity", "WARNING")]
    assert h.session.watchdog.notice.consume() == "You were signed out after 15 minutes of inactivity."
    assert h.timers.pending == 0


def test_activity_keeps_session_alive():
    h = Harness()
    with h.session:
        for _ in range(40):
            h.activity.dispatch("mousemove")
            h.timers.advance(minutes=1)
        assert h.ended == []


def test_audit_failure_is_ignored():
    def failing_audit(*_):
        raise RuntimeError("audit table unavailable")

    h = Harness(audit=failing_audit)
    h.session.open()
    h.session.logout()
    assert h.ended == [MONDAY_0750]


def test_notification_operations_delegate_to_store():
    h = Harness()
    with h.session:
        first = h.session.emit("a")
        second = h.session.emit("b", NotificationKind.ERROR)
        h.session.dismiss(first.id)
        h.session.mark_read(second.id)
        assert [n.id for n in h.session.store.toasts] == [second.id]
        assert h.session.store.unread_count == 1
        h.session.mark_all_read()
        h.session.delete(first.id)
        assert [n.id for n in h.session.store.history] == [second.id]
        h.session.clear()
        assert h.session.store.history == ()


def test_config_intervals_are_applied():
    clock = ManualClock(MONDAY_0750)
    timers = ManualTimerHost(clock)
    ended = []
    session = ReminderSession(
        CatalogFeed(STUDENT),
        end_session=lambda: ended.append(clock()),
        timers=timers,
        clock=clock,
        config=EngineConfig(idle_timeout_minutes=5, idle_check_seconds=30),
    )
    with session:
        timers.advance(minutes=6)
    assert ended == [MONDAY_0750 + timedelta(minutes=5)]


def test_closed_session_cannot_be_reopened():
    h = Harness()
    h.session.open()
    h.session.close()

    with pytest.raises(RuntimeError):
        h.session.open()
    assert h.timers.pending == 0
    assert not h.session.is_open


def test_emits_after_close_schedule_nothing():
    h = Harness()
    with h.session:
        pass

    h.session.emit("late")
    h.session.update_settings(ReminderSettings(course_delay_minutes=5))

    assert h.session.store.toasts == ()
    assert [n.message for n in h.session.store.history] == ["Reminder preferences updated", "late"]
    assert h.timers.pending == 0
