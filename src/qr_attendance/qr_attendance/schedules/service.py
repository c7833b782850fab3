from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.validators import require_hhmm, require_non_empty
from ..core.enums import DayOfWeek, Role
from ..core.exceptions import ValidationError
from ..subjects.service import SubjectService
from .model import Schedule
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


class ScheduleService:
    def __init__(self, schedules: ScheduleRepository, subjects: SubjectService):
        self._schedules = schedules
        self._subjects = subjects

    def list_for_teacher(self, teacher_id: int) -> Sequence[Schedule]:
        return self._schedules.list_for_teacher(teacher_id)

    def list_for_subject(self, subject_id: int) -> Sequence[Schedule]:
        return self._schedules.list_for_subject(subject_id)

    def current_or_next(self, *, teacher_id: int, now: datetime) -> Optional[Schedule]:
        """Class running right now, else the next one later today, else None."""

        today = DayOfWeek(now.strftime("%A"))
        clock = now.strftime("%H:%M")

        todays = sorted(
            (s for s in self._schedules.list_for_teacher(teacher_id) if s.day_of_week == today),
            key=lambda s: s.start_time,
        )

        for s in todays:
            if s.start_time <= clock <= s.end_time:
                return s
        for s in todays:
            if clock < s.start_time:
                return s
        return None

    def create(
        self,
        *,
        role: Role,
        user_id: int,
        subject_id: int,
        day_of_week: str,
        start_time: str,
        end_time: str,
        room: str,
    ) -> Schedule:
        self._subjects.require_owned(role=role, user_id=user_id, subject_id=subject_id)

        try:
            day = DayOfWeek(day_of_week)
        except ValueError:
            raise ValidationError("dayOfWeek must be a weekday name such as Monday")
        start = require_hhmm(start_time, "startTime")
        end = require_hhmm(end_time, "endTime")
        if start >= end:
            raise ValidationError("startTime must be before endTime")
        room = require_non_empty(room, "Room")

        schedule_id = self._schedules.create(
            subject_id=subject_id, day_of_week=day, start_time=start, end_time=end, room=room
        )
        logger.info("Schedule %s added to subject %s (%s %s-%s)", schedule_id, subject_id, day.value, start, end)
        return self._schedules.get_by_id(schedule_id)

    def delete(self, *, role: Role, user_id: int, schedule_id: int) -> None:
        schedule = self._schedules.get_by_id(schedule_id)
        if not schedule:
            raise ValidationError("Schedule not found")
        self._subjects.require_owned(role=role, user_id=user_id, subject_id=schedule.subject_id)
        self._schedules.delete(schedule_id)
        logger.info("Schedule %s removed from subject %s", schedule_id, schedule.subject_id)
