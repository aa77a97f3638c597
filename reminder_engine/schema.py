"""Core data schema for calendar events, settings and notifications."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Union

MEET_NOMINAL_MINUTES = 60


class Role(str, Enum):
    ADMIN = "ADMIN"
    RESPONSIBLE = "RESPONSIBLE"
    STUDENT = "STUDENT"


class NotificationKind(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    INFO = "INFO"
    WARNING = "WARNING"


@dataclass(frozen=True)
class Viewer:
    """Authenticated viewer identity, used only for catalog scoping."""

    id: str
    role: Role
    class_id: Optional[str] = None

    @property
    def is_elevated(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class ReminderSettings:
    """Per-viewer reminder preferences."""

    enabled: bool = True
    course_delay_minutes: int = 15
    exam_delay_minutes: int = 60 * 24
    meet_delay_minutes: int = 30


@dataclass(frozen=True)
class Course:
    """Weekly class session; day_of_week uses 0 = Sunday ... 6 = Saturday."""

    id: str
    subject: str
    room: str
    day_of_week: int
    start_time: str
    class_id: str
    end_time: Optional[str] = None


@dataclass(frozen=True)
class Exam:
    """Single-occurrence exam."""

    id: str
    subject: str
    room: str
    occurs_at: datetime
    duration_minutes: int
    class_id: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class Meet:
    """Single-occurrence live video session."""

    id: str
    subject: str
    teacher_name: str
    occurs_at: datetime
    class_id: str
    link: Optional[str] = None

    @property
    def ends_at(self) -> datetime:
        # Display only, reminders never look at it.
        return self.occurs_at + timedelta(minutes=MEET_NOMINAL_MINUTES)


CalendarEvent = Union[Course, Exam, Meet]


@dataclass(frozen=True)
class AlertIntent:
    """A newly due reminder produced by one evaluator pass."""

    key: str
    message: str
    kind: NotificationKind
    target_page: str
    resource_id: str


@dataclass(frozen=True)
class Notification:
    """Notification record shared by the toast queue and the history."""

    id: str
    message: str
    kind: NotificationKind
    created_at: datetime
    read: bool = False
    target_page: Optional[str] = None
    resource_id: Optional[str] = None
