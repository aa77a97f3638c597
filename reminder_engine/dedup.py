"""In-memory dedup tracker for reminder windows."""

from __future__ import annotations

import threading
from datetime import date

from reminder_engine.schema import Course, Exam, Meet


def course_key(course: Course, day: date) -> str:
    """Key for one course on one calendar day."""

    return f"course:{course.id}:{day.isoformat()}"


def exam_key(exam: Exam) -> str:
    return f"exam:{exam.id}"


def meet_key(meet: Meet) -> str:
    return f"meet:{meet.id}"


class DedupTracker:
    """Set of already-alerted keys, held for the process lifetime only."""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: set[str] = set()

    def is_consumed(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def consume(self, key: str) -> bool:
        """Mark a key as alerted; returns False if it was already consumed."""

        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        """Forget a key whose alert was never delivered."""

        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key: str) -> bool:
        return self.is_consumed(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
