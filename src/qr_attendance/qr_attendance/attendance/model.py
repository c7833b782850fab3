from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import format_time_in
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one ledger row per (student, subject, day)."""

    attendance_id: int
    student_id: int
    subject_id: int
    work_date: date
    status: AttendanceStatus
    time_in: Optional[datetime]
    remarks: Optional[str] = None
    student_name: Optional[str] = None
    subject_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "date": self.work_date.strftime("%Y-%m-%d"),
            "status": self.status.value,
            "timeIn": format_time_in(self.time_in),
            "remarks": self.remarks,
            "studentName": self.student_name,
            "subjectName": self.subject_name,
        }


@dataclass(frozen=True)
class NewAttendance:
    """Row to insert into the ledger."""

    student_id: int
    subject_id: int
    work_date: date
    status: AttendanceStatus
    time_in: Optional[datetime] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class AttendanceUpdate:
    attendance_id: int
    status: AttendanceStatus
    time_in: Optional[datetime]
    remarks: Optional[str] = None
