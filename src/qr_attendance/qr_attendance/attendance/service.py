from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..subjects.repository import SubjectRepository
from .model import AttendanceRecord
from .repository import AttendanceRepository


class AttendanceHistoryService:
    """Read side of the ledger for the history screen and CSV export.

    Business rules:
    - Students only ever see their own rows, whatever filter they send.
    - Teachers see rows of the subjects they teach.
    - Admins see everything.
    """

    def __init__(self, attendance: AttendanceRepository, subjects: SubjectRepository):
        self._attendance = attendance
        self._subjects = subjects

    def list_history(
        self,
        *,
        role: Role,
        user_id: int,
        subject_id: Optional[int] = None,
        work_date: Optional[date] = None,
        student_id: Optional[int] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        teacher_id: Optional[int] = None

        if role == Role.STUDENT:
            student_id = user_id
        elif role == Role.TEACHER:
            teacher_id = user_id
            if subject_id is not None:
                subject = self._subjects.get_by_id(subject_id)
                if subject and subject.teacher_id != user_id:
                    raise AuthorizationError("You do not teach this subject")

        return self._attendance.list_filtered(
            student_id=student_id,
            subject_id=subject_id,
            work_date=work_date,
            teacher_id=teacher_id,
            limit=limit,
        )
