from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceUpdate, NewAttendance


class AttendanceRepository(Protocol):
    """The attendance ledger."""

    def insert_many(self, rows: Sequence[NewAttendance]) -> int:
        """Insert all rows in one statement; returns the number inserted.

        Either every row is written or the call raises.
        """

        raise NotImplementedError

    def update(self, change: AttendanceUpdate) -> bool:
        raise NotImplementedError

    def query_day(self, *, subject_id: int, work_date: date, student_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def delete_for_subject_and_date(self, *, subject_id: int, work_date: date) -> int:
        raise NotImplementedError

    def list_filtered(
        self,
        *,
        student_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        work_date: Optional[date] = None,
        teacher_id: Optional[int] = None,
        limit: int = 500,
    ) -> Sequence[AttendanceRecord]:
        """History read-model joined with student/subject names, newest day first."""

        raise NotImplementedError
