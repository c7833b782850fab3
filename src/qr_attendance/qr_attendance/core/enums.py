from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Status stored in the attendance ledger."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"

    @property
    def checked_in(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class SessionState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAUSED = "paused"


class ScanOutcome(str, Enum):
    """Terminal, user-visible result of a QR check-in."""

    PRESENT = "present"
    LATE = "late"
    ALREADY = "already"
    ERROR = "error"


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"
