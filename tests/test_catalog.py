from datetime import datetime

from reminder_engine.catalog import CatalogFeed, scope_catalog
from reminder_engine.schema import Course, Exam, Meet, Role, Viewer

COURSES = [
    Course("c1", "Algorithms", "B12", 1, "08:00", "cls1"),
    Course("c2", "Statistics", "D4", 1, "08:00", "cls2"),
]
EXAMS = [Exam("e1", "SQL", "Amphi A", datetime(2025, 1, 8, 9, 0), 120, "cls2")]
MEETS = [Meet("m1", "React", "M. Diop", datetime(2025, 1, 6, 18, 0), "cls1")]


def test_student_sees_own_class_only():
    catalog = scope_catalog(Viewer("u3", Role.STUDENT, "cls1"), COURSES, EXAMS, MEETS)
    assert [c.id for c in catalog.courses] == ["c1"]
    assert catalog.exams == ()
    assert [m.id for m in catalog.meets] == ["m1"]


def test_admin_sees_everything():
    catalog = scope_catalog(Viewer("u1", Role.ADMIN), COURSES, EXAMS, MEETS)
    assert len(catalog) == 4


def test_viewer_without_class_sees_nothing():
    catalog = scope_catalog(Viewer("u9", Role.RESPONSIBLE), COURSES, EXAMS, MEETS)
    assert len(catalog) == 0


def test_feed_publish_notifies_and_unsubscribes():
    feed = CatalogFeed(Viewer("u3", Role.STUDENT, "cls2"))
    calls = []
    unsubscribe = feed.subscribe(lambda: calls.append(len(feed.current())))

    feed.publish(COURSES, EXAMS, MEETS)
    assert calls == [2]

    unsubscribe()
    feed.publish(COURSES)
    assert calls == [2]
    assert [c.id for c in feed.current().courses] == ["c2"]
