"""Per-session owner of the reminder loop, the watchdog and the notification store."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol

from reminder_engine.catalog import CatalogFeed
from reminder_engine.config import EngineConfig
from reminder_engine.notifications import NotificationStore
from reminder_engine.scheduling import ReminderScheduler
from reminder_engine.schema import AlertIntent, Notification, NotificationKind, ReminderSettings
from reminder_engine.settings_store import MemorySettingsStore
from reminder_engine.timers import ScopedHandle, TimerHost
from reminder_engine.watchdog import ActivitySource, InactivityWatchdog, LogoutNotice

logger = logging.getLogger(__name__)

AuditHook = Callable[[str, str, str], object]


class SettingsStore(Protocol):
    def load(self) -> ReminderSettings: ...

    def save(self, settings: ReminderSettings) -> None: ...


class ReminderSession:
    """Built at sign-in, torn down at sign-out.

    Use as a context manager (or ``open``/``close``) so the loop timer, the
    watchdog timer and the activity listeners are always released.
    """

    def __init__(
        self,
        feed: CatalogFeed,
        end_session: Callable[[], None],
        timers: TimerHost,
        clock: Callable[[], datetime] = datetime.now,
        settings_store: Optional[SettingsStore] = None,
        audit: Optional[AuditHook] = None,
        activity: Optional[ActivitySource] = None,
        notice: Optional[LogoutNotice] = None,
        config: Optional[EngineConfig] = None,
    ):
        config = config or EngineConfig()
        self.feed = feed
        self.viewer = feed.viewer
        self._end_session = end_session
        self._audit = audit
        self._settings_store = settings_store or MemorySettingsStore()
        self._settings = self._settings_store.load()

        self.store = NotificationStore(timers, clock=clock, toast_ttl_ms=config.toast_ttl_ms)
        self.scheduler = ReminderScheduler(
            catalog=feed.current,
            settings=lambda: self._settings,
            emit=self._emit_alert,
            timers=timers,
            clock=clock,
            tick_seconds=config.tick_seconds,
        )
        self.watchdog = InactivityWatchdog(
            on_timeout=self._end_for_inactivity,
            timers=timers,
            clock=clock,
            activity=activity,
            notice=notice,
            idle_timeout_minutes=config.idle_timeout_minutes,
            check_seconds=config.idle_check_seconds,
        )

        self._lock = threading.Lock()
        self._handle: Optional[ScopedHandle] = None
        self._ended = False

    # ---- lifecycle ----

    @property
    def is_open(self) -> bool:
        return self._handle is not None and not self._handle.released

    def open(self) -> "ReminderSession":
        """Start the scheduler, watchdog and feed subscription; a no-op if already open.

        A session is single-use: once closed it cannot be reopened.
        """

        with self._lock:
            if self._handle is not None:
                if self._handle.released:
                    raise RuntimeError("Reminder session already closed")
                return self
            handle = ScopedHandle(self.store.close)
            self._handle = handle
        handle.add(self.feed.subscribe(self.scheduler.catalog_changed))
        handle.add(self.watchdog.start().release)
        handle.add(self.scheduler.start().release)
        logger.info(f"Reminder session opened for viewer {self.viewer.id}")
        return self

    def close(self) -> None:
        with self._lock:
            handle = self._handle
        if handle is not None and not handle.released:
            handle.release()
            logger.info(f"Reminder session closed for viewer {self.viewer.id}")

    def __enter__(self) -> "ReminderSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def logout(self) -> None:
        """Explicit sign-out."""

        self._finish("LOGOUT", "Signed out", "INFO")

    def _end_for_inactivity(self) -> None:
        self._finish("LOGOUT", "Signed out after inactivity", "WARNING")

    def _finish(self, action: str, details: str, severity: str) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._record_audit(action, details, severity)
        self.close()
        try:
            self._end_session()
        except Exception:  # noqa: BLE001
            logger.exception("Session-end callback failed")

    def _record_audit(self, action: str, details: str, severity: str) -> None:
        if self._audit is None:
            return
        try:
            self._audit(action, details, severity)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Audit hook failed for {action}: {exc}")

    # ---- settings & activity ----

    @property
    def settings(self) -> ReminderSettings:
        return self._settings

    def update_settings(self, settings: ReminderSettings) -> None:
        self._settings = settings
        self._settings_store.save(settings)
        self.emit("Reminder preferences updated", NotificationKind.SUCCESS)
        self.scheduler.settings_changed()

    def record_activity(self) -> None:
        self.watchdog.record_activity()

    # ---- notifications ----

    def _emit_alert(self, alert: AlertIntent) -> Notification:
        return self.store.emit(alert.message, alert.kind, alert.target_page, alert.resource_id)

    def emit(
        self,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        target_page: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> Notification:
        return self.store.emit(message, kind, target_page, resource_id)

    def dismiss(self, notification_id: str) -> None:
        self.store.dismiss(notification_id)

    def mark_read(self, notification_id: str) -> None:
        self.store.mark_read(notification_id)

    def mark_all_read(self) -> None:
        self.store.mark_all_read()

    def delete(self, notification_id: str) -> None:
        self.store.delete(notification_id)

    def clear(self) -> None:
        self.store.clear()
