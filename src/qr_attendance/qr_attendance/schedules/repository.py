from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import DayOfWeek
from .model import Schedule


class ScheduleRepository(Protocol):
    def list_for_teacher(self, teacher_id: int) -> Sequence[Schedule]:
        """Schedules of every subject the teacher owns (joined with subject name/code)."""

        raise NotImplementedError

    def list_for_subject(self, subject_id: int) -> Sequence[Schedule]:
        raise NotImplementedError

    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def create(
        self,
        *,
        subject_id: int,
        day_of_week: DayOfWeek,
        start_time: str,
        end_time: str,
        room: str,
    ) -> int:
        raise NotImplementedError

    def delete(self, schedule_id: int) -> bool:
        raise NotImplementedError
