"""Two-tier notification store: auto-expiring toasts and a durable history."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from reminder_engine.schema import Notification, NotificationKind
from reminder_engine.timers import TimerHandle, TimerHost

logger = logging.getLogger(__name__)

TOAST_TTL_MS = 5000


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


class NotificationStore:
    """Owns the toast queue and the history; every write goes through these methods.

    The two views are independent: dismissing a toast leaves the history entry,
    and deleting from history leaves a live toast alone.
    """

    def __init__(
        self,
        timers: TimerHost,
        clock: Callable[[], datetime] = datetime.now,
        toast_ttl_ms: int = TOAST_TTL_MS,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._timers = timers
        self._clock = clock
        self._toast_ttl_ms = toast_ttl_ms
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._toasts: list[Notification] = []
        self._history: list[Notification] = []
        self._expiry: dict[str, TimerHandle] = {}
        self._listeners: list[Callable[[], None]] = []
        self._closed = False

    # ---- read side ----

    @property
    def toasts(self) -> tuple[Notification, ...]:
        """Live toasts, oldest first."""
        with self._lock:
            return tuple(self._toasts)

    @property
    def history(self) -> tuple[Notification, ...]:
        """History, most recent first."""
        with self._lock:
            return tuple(self._history)

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._history if not item.read)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ---- write side ----

    def emit(
        self,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        target_page: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            id=self._id_factory(),
            message=message,
            kind=NotificationKind(kind),
            created_at=self._clock(),
            target_page=target_page,
            resource_id=resource_id,
        )
        with self._lock:
            self._history.insert(0, notification)
            # once closed, history only: no toast and no expiry timer
            if not self._closed:
                self._toasts.append(notification)
                self._expiry[notification.id] = self._timers.call_later(
                    self._toast_ttl_ms / 1000.0,
                    lambda: self._remove_toast(notification.id),
                )
        logger.debug(f"Notification {notification.id} [{notification.kind.value}] {message}")
        self._changed()
        return notification

    def dismiss(self, notification_id: str) -> None:
        """Close a toast now; history is untouched."""

        with self._lock:
            handle = self._expiry.pop(notification_id, None)
        if handle is not None:
            handle.cancel()
        self._remove_toast(notification_id)

    def mark_read(self, notification_id: str) -> None:
        with self._lock:
            changed = False
            for index, item in enumerate(self._history):
                if item.id == notification_id and not item.read:
                    self._history[index] = replace(item, read=True)
                    changed = True
        if changed:
            self._changed()

    def mark_all_read(self) -> None:
        with self._lock:
            self._history = [item if item.read else replace(item, read=True) for item in self._history]
        self._changed()

    def delete(self, notification_id: str) -> None:
        with self._lock:
            before = len(self._history)
            self._history = [item for item in self._history if item.id != notification_id]
            changed = len(self._history) != before
        if changed:
            self._changed()

    def clear(self) -> None:
        with self._lock:
            self._history = []
        self._changed()

    def close(self) -> None:
        """Cancel pending toast expiries and drop live toasts; used at session teardown.

        Later emits still land in the history but schedule nothing.
        """

        with self._lock:
            self._closed = True
            handles = list(self._expiry.values())
            self._expiry.clear()
            had_toasts = bool(self._toasts)
            self._toasts = []
        for handle in handles:
            handle.cancel()
        if had_toasts:
            self._changed()

    @property
    def closed(self) -> bool:
        return self._closed

    def _remove_toast(self, notification_id: str) -> None:
        # Both the expiry timer and dismiss() land here; removal by id is idempotent.
        with self._lock:
            self._expiry.pop(notification_id, None)
            before = len(self._toasts)
            self._toasts = [item for item in self._toasts if item.id != notification_id]
            removed = len(self._toasts) != before
        if removed:
            self._changed()

    def _changed(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()
