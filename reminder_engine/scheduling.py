"""Reminder scheduler loop: drives the evaluator while a session is armed."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from reminder_engine.catalog import EventCatalog
from reminder_engine.dedup import DedupTracker
from reminder_engine.evaluator import evaluate
from reminder_engine.schema import AlertIntent, ReminderSettings
from reminder_engine.timers import ScopedHandle, TimerHandle, TimerHost

logger = logging.getLogger(__name__)

TICK_SECONDS = 60


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"


class ReminderScheduler:
    """Two-state loop: ARMED while a session is active and reminders are enabled.

    Every arming bumps a generation number; timer callbacks and in-progress
    ticks compare against it before emitting, so nothing fires after the loop
    goes back to IDLE.
    """

    def __init__(
        self,
        catalog: Callable[[], EventCatalog],
        settings: Callable[[], ReminderSettings],
        emit: Callable[[AlertIntent], object],
        timers: TimerHost,
        clock: Callable[[], datetime] = datetime.now,
        tracker: Optional[DedupTracker] = None,
        tick_seconds: float = TICK_SECONDS,
    ):
        self._catalog = catalog
        self._settings = settings
        self._emit = emit
        self._timers = timers
        self._clock = clock
        self.tracker = tracker or DedupTracker()
        self._tick_seconds = tick_seconds

        self._state_lock = threading.RLock()
        self._flight_lock = threading.Lock()
        self._running = False
        self._state = SchedulerState.IDLE
        self._session_active = False
        self._generation = 0
        self._timer: Optional[TimerHandle] = None
        self._rerun = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    # ---- lifecycle hooks ----

    def start(self) -> ScopedHandle:
        """Session started; returns a handle whose release stops the loop."""

        with self._state_lock:
            self._session_active = True
        self._sync()
        return ScopedHandle(self.stop)

    def stop(self) -> None:
        with self._state_lock:
            self._session_active = False
        self._sync()

    def settings_changed(self) -> None:
        was_armed = self._state == SchedulerState.ARMED
        self._sync()
        if was_armed:
            self.run_now()

    def catalog_changed(self) -> None:
        self.run_now()

    def run_now(self) -> None:
        """Evaluate immediately if armed, without waiting for the next tick."""

        generation = self._current_generation()
        if generation is not None:
            self._tick(generation)

    # ---- internals ----

    def _sync(self) -> None:
        arm_generation = None
        with self._state_lock:
            wanted = self._session_active and self._settings().enabled
            if wanted and self._state == SchedulerState.IDLE:
                arm_generation = self._arm()
            elif not wanted and self._state == SchedulerState.ARMED:
                self._disarm()
        if arm_generation is not None:
            self._tick(arm_generation)

    def _arm(self) -> int:
        self._generation += 1
        generation = self._generation
        self._state = SchedulerState.ARMED
        self._timer = self._timers.call_every(self._tick_seconds, lambda: self._tick(generation))
        logger.info(f"Reminder scheduler armed (generation {generation}, every {self._tick_seconds}s)")
        return generation

    def _disarm(self) -> None:
        self._generation += 1
        self._state = SchedulerState.IDLE
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        logger.info("Reminder scheduler idle")

    def _current_generation(self) -> Optional[int]:
        with self._state_lock:
            if self._state != SchedulerState.ARMED:
                return None
            return self._generation

    def _is_current(self, generation: int) -> bool:
        return self._current_generation() == generation

    def _tick(self, generation: Optional[int]) -> None:
        with self._flight_lock:
            if self._running:
                # A tick is running; it picks this request up before it finishes.
                self._rerun = True
                return
            self._running = True
        try:
            while True:
                if generation is not None:
                    self._evaluate_once(generation)
                # Checking the flag and leaving the flight happen in one step,
                # so a request arriving now is either seen here or runs itself.
                with self._flight_lock:
                    if not self._rerun:
                        self._running = False
                        return
                    self._rerun = False
                generation = self._current_generation()
        except BaseException:
            with self._flight_lock:
                self._running = False
                self._rerun = False
            raise

    def _evaluate_once(self, generation: int) -> None:
        if not self._is_current(generation):
            logger.debug(f"Dropping stale tick for generation {generation}")
            return
        alerts = evaluate(self._clock(), self._catalog(), self._settings(), self.tracker)
        for index, alert in enumerate(alerts):
            if not self._is_current(generation):
                dropped = alerts[index:]
                for pending in dropped:
                    self.tracker.release(pending.key)
                logger.debug(f"Scheduler stopped mid-tick, {len(dropped)} alert(s) left for a later tick")
                return
            self._emit(alert)
