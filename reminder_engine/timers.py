"""Timer hosts and scoped release handles."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerHost(Protocol):
    """Something that can run callbacks later, once or periodically."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


class ScopedHandle:
    """Single handle bundling release actions (timers, listeners).

    ``release()`` runs every action once, in reverse registration order, and is
    safe to call repeatedly. Usable as a context manager.
    """

    def __init__(self, *releases: Callable[[], None]):
        self._lock = threading.Lock()
        self._releases: list[Callable[[], None]] = list(releases)
        self._released = False

    def add(self, release: Callable[[], None]) -> None:
        with self._lock:
            if not self._released:
                self._releases.append(release)
                return
        release()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            releases, self._releases = self._releases, []
        for action in reversed(releases):
            action()

    def __enter__(self) -> "ScopedHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class _JobHandle:
    def __init__(self, job):
        self._job = job

    def cancel(self) -> None:
        try:
            self._job.remove()
        except JobLookupError:
            # one-shot job already ran, or cancelled twice
            pass


class APSchedulerHost:
    """Timer host backed by an APScheduler ``BackgroundScheduler``.

    Periodic jobs use ``max_instances=1`` so a slow tick is never overlapped
    by the next one, and ``coalesce=True`` so missed runs collapse into one.
    Late jobs always run (``misfire_grace_time=None``), so a toast expiry that
    comes due while the host is busy or suspended still removes the toast.
    """

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        self.scheduler = scheduler or BackgroundScheduler()

    def start(self) -> None:
        if not self.scheduler.running:
            logger.info("Starting APScheduler timer host")
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            logger.info("Stopping APScheduler timer host")
            self.scheduler.shutdown(wait=False)

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        job = self.scheduler.add_job(
            callback,
            trigger="date",
            run_date=datetime.now() + timedelta(seconds=delay_seconds),
            misfire_grace_time=None,
        )
        return _JobHandle(job)

    def call_every(self, interval_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        job = self.scheduler.add_job(
            callback,
            trigger="interval",
            seconds=interval_seconds,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        return _JobHandle(job)
