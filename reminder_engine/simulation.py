"""Deterministic virtual-time routines."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from reminder_engine.adapters.json_adapter import Snapshot
from reminder_engine.catalog import CatalogFeed
from reminder_engine.config import EngineConfig
from reminder_engine.schema import ReminderSettings, Viewer
from reminder_engine.session import ReminderSession, SettingsStore
from reminder_engine.settings_store import MemorySettingsStore


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self._now = start

    def __call__(self) -> datetime:
        return self._now

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        if moment < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = moment


@dataclass
class _Timer:
    due: datetime
    seq: int
    callback: Callable[[], None]
    interval: Optional[timedelta] = None
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerHost:
    """Timer host driven by a ManualClock; callbacks fire inside ``advance``."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._timers: list[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> _Timer:
        return self._add(timedelta(seconds=delay_seconds), callback, interval=None)

    def call_every(self, interval_seconds: float, callback: Callable[[], None]) -> _Timer:
        interval = timedelta(seconds=interval_seconds)
        return self._add(interval, callback, interval=interval)

    def _add(self, delay: timedelta, callback, interval) -> _Timer:
        timer = _Timer(due=self.clock.now() + delay, seq=next(self._seq), callback=callback, interval=interval)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float = 0, *, minutes: float = 0) -> None:
        """Move the clock forward, firing every timer that falls due on the way, in order."""

        target = self.clock.now() + timedelta(seconds=seconds, minutes=minutes)
        while True:
            self._timers = [timer for timer in self._timers if not timer.cancelled]
            due = [timer for timer in self._timers if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: (item.due, item.seq))
            self.clock.set(timer.due)
            if timer.interval is None:
                timer.cancelled = True
            else:
                timer.due = timer.due + timer.interval
                timer.seq = next(self._seq)
            timer.callback()
        self.clock.set(target)

    def advance_to(self, moment: datetime) -> None:
        self.advance((moment - self.clock.now()).total_seconds())


def replay(
    snapshot: Snapshot,
    viewer: Viewer,
    start: datetime,
    minutes: int,
    settings: Optional[ReminderSettings] = None,
    keep_alive: bool = True,
    config: Optional[EngineConfig] = None,
    settings_store: Optional[SettingsStore] = None,
) -> dict:
    """Run a virtual session over ``minutes`` and report what the viewer would have seen.

    Preferences come from ``settings_store`` when given, otherwise from
    ``settings``, the snapshot, or the defaults, in that order.
    """

    clock = ManualClock(start)
    timers = ManualTimerHost(clock)
    feed = CatalogFeed(viewer)
    feed.publish(snapshot.courses, snapshot.exams, snapshot.meets)
    if settings_store is None:
        settings_store = MemorySettingsStore(settings or snapshot.settings or ReminderSettings())

    ended_at: list[datetime] = []
    session = ReminderSession(
        feed,
        end_session=lambda: ended_at.append(clock()),
        timers=timers,
        clock=clock,
        settings_store=settings_store,
        config=config,
    )
    with session:
        for _ in range(int(minutes)):
            if ended_at:
                break
            if keep_alive:
                session.record_activity()
            timers.advance(minutes=1)

    return {
        "notifications": list(reversed(session.store.history)),
        "ended_at": ended_at[0] if ended_at else None,
        "logout_notice": session.watchdog.notice.consume(),
    }
