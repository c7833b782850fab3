from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import DayOfWeek


@dataclass(frozen=True)
class Schedule:
    """Weekly class slot. Times are "HH:MM" strings so they compare lexically."""

    schedule_id: int
    subject_id: int
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    room: str
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.schedule_id,
            "subjectId": self.subject_id,
            "dayOfWeek": self.day_of_week.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "room": self.room,
            "subjectName": self.subject_name,
            "subjectCode": self.subject_code,
        }
