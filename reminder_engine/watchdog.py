"""Session inactivity watchdog."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Protocol

from reminder_engine.timers import ScopedHandle, TimerHost

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_MINUTES = 15
CHECK_SECONDS = 60
ACTIVITY_EVENTS = ("mousemove", "keydown", "click", "scroll", "touchstart")


class ActivitySource(Protocol):
    def add_listener(self, event: str, callback: Callable[[], None]) -> None: ...

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None: ...


class ActivityBus:
    """Minimal interaction event source that UI adapters feed with ``dispatch``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Callable[[], None]]] = defaultdict(list)

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

    def listener_count(self, event: Optional[str] = None) -> int:
        with self._lock:
            if event is not None:
                return len(self._listeners[event])
            return sum(len(callbacks) for callbacks in self._listeners.values())

    def dispatch(self, event: str) -> None:
        with self._lock:
            callbacks = list(self._listeners[event])
        for callback in callbacks:
            callback()


class LogoutNotice:
    """Read-once reason handed from a forced logout to the next signed-out view."""

    def __init__(self):
        self._lock = threading.Lock()
        self._message: Optional[str] = None

    def set(self, message: str) -> None:
        with self._lock:
            self._message = message

    def peek(self) -> Optional[str]:
        with self._lock:
            return self._message

    def consume(self) -> Optional[str]:
        with self._lock:
            message, self._message = self._message, None
            return message


def inactivity_message(minutes: int) -> str:
    return f"You were signed out after {minutes} minutes of inactivity."


class WatchdogState(str, Enum):
    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"


class InactivityWatchdog:
    """Ends the session once no interaction has been seen for the idle timeout."""

    def __init__(
        self,
        on_timeout: Callable[[], None],
        timers: TimerHost,
        clock: Callable[[], datetime] = datetime.now,
        activity: Optional[ActivitySource] = None,
        notice: Optional[LogoutNotice] = None,
        idle_timeout_minutes: int = IDLE_TIMEOUT_MINUTES,
        check_seconds: float = CHECK_SECONDS,
    ):
        self._on_timeout = on_timeout
        self._timers = timers
        self._clock = clock
        self._activity = activity
        self.notice = notice or LogoutNotice()
        self._idle_timeout_minutes = idle_timeout_minutes
        self._idle_timeout = timedelta(minutes=idle_timeout_minutes)
        self._check_seconds = check_seconds

        self._lock = threading.RLock()
        self._state = WatchdogState.TERMINATED
        self._handle: Optional[ScopedHandle] = None
        self.last_activity_at: Optional[datetime] = None

    @property
    def state(self) -> WatchdogState:
        return self._state

    def start(self) -> ScopedHandle:
        """Enter ACTIVE; the returned handle removes the listeners and the check timer."""

        with self._lock:
            if self._handle is not None:
                return self._handle
            self.last_activity_at = self._clock()
            self._state = WatchdogState.ACTIVE
            handle = ScopedHandle(self._mark_terminated)
            self._handle = handle
            self._attach_listeners(handle)
            timer = self._timers.call_every(self._check_seconds, lambda: self.check(handle))
            handle.add(timer.cancel)
        logger.info(f"Inactivity watchdog started (timeout {self._idle_timeout_minutes} min)")
        return handle

    def stop(self) -> None:
        with self._lock:
            handle = self._handle
        if handle is not None:
            handle.release()

    def record_activity(self) -> None:
        with self._lock:
            if self._state == WatchdogState.ACTIVE:
                self.last_activity_at = self._clock()

    def idle_for(self) -> timedelta:
        with self._lock:
            if self.last_activity_at is None:
                return timedelta(0)
            return self._clock() - self.last_activity_at

    def check(self, handle: Optional[ScopedHandle] = None) -> bool:
        """Run one idle check; returns True if it ended the session."""

        with self._lock:
            if self._state != WatchdogState.ACTIVE:
                return False
            if handle is not None and handle is not self._handle:
                return False
            if self.idle_for() < self._idle_timeout:
                return False
            self._state = WatchdogState.TERMINATED
            current = self._handle
        logger.info(f"No activity for {self._idle_timeout_minutes} min, ending session")
        current.release()
        self.notice.set(inactivity_message(self._idle_timeout_minutes))
        self._on_timeout()
        return True

    def _attach_listeners(self, handle: ScopedHandle) -> None:
        if self._activity is None:
            logger.warning("No activity source, inactivity watchdog is polling only")
            return
        for event in ACTIVITY_EVENTS:
            try:
                self._activity.add_listener(event, self.record_activity)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Could not listen for {event!r} ({exc}), falling back to polling")
                continue
            handle.add(lambda event=event: self._activity.remove_listener(event, self.record_activity))

    def _mark_terminated(self) -> None:
        with self._lock:
            self._state = WatchdogState.TERMINATED
            self._handle = None
        logger.info("Inactivity watchdog stopped")
