"""Viewer-scoped, read-only views of courses, exams and meets."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from reminder_engine.schema import Course, Exam, Meet, Viewer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventCatalog:
    """Snapshot of the events visible to one viewer, in catalog order."""

    courses: tuple[Course, ...] = ()
    exams: tuple[Exam, ...] = ()
    meets: tuple[Meet, ...] = ()

    def __len__(self) -> int:
        return len(self.courses) + len(self.exams) + len(self.meets)


def _visible(viewer: Viewer, items: Iterable) -> tuple:
    if viewer.is_elevated:
        return tuple(items)
    if not viewer.class_id:
        return ()
    return tuple(item for item in items if item.class_id == viewer.class_id)


def scope_catalog(
    viewer: Viewer,
    courses: Iterable[Course] = (),
    exams: Iterable[Exam] = (),
    meets: Iterable[Meet] = (),
) -> EventCatalog:
    """Restrict events to the viewer's class, or keep all of them for an elevated viewer."""

    return EventCatalog(
        courses=_visible(viewer, courses),
        exams=_visible(viewer, exams),
        meets=_visible(viewer, meets),
    )


class CatalogFeed:
    """Holds the current scoped catalog and tells subscribers when it changes."""

    def __init__(self, viewer: Viewer, catalog: EventCatalog | None = None):
        self.viewer = viewer
        self._lock = threading.Lock()
        self._catalog = catalog or EventCatalog()
        self._subscribers: list[Callable[[], None]] = []

    def current(self) -> EventCatalog:
        with self._lock:
            return self._catalog

    def publish(
        self,
        courses: Iterable[Course] = (),
        exams: Iterable[Exam] = (),
        meets: Iterable[Meet] = (),
    ) -> EventCatalog:
        """Replace the snapshot with freshly loaded rows and notify subscribers."""

        catalog = scope_catalog(self.viewer, courses, exams, meets)
        with self._lock:
            self._catalog = catalog
            subscribers = list(self._subscribers)
        logger.debug(f"Catalog published for viewer {self.viewer.id}: {len(catalog)} visible events")
        for callback in subscribers:
            callback()
        return catalog

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback; returns a function that unregisters it."""

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe
