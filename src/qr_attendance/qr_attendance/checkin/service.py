from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Set

from ..attendance.model import AttendanceRecord, AttendanceUpdate, NewAttendance
from ..attendance.repository import AttendanceRepository
from ..core.constants import REMARK_LATE, REMARK_ON_TIME
from ..core.enums import AttendanceStatus, ScanOutcome
from ..core.exceptions import ValidationError
from ..qr.payload import parse_payload
from ..qr.service import QrTokenIssuer
from ..subjects.repository import SubjectRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    outcome: ScanOutcome
    http_status: int
    message: str
    record: Optional[AttendanceRecord] = None

    def to_dict(self) -> dict:
        return {
            "status": self.outcome.value,
            "message": self.message,
            "record": self.record.to_dict() if self.record else None,
        }


class CheckInService:
    """Student side of the QR flow: payload in, ledger row out.

    Every outcome is a `ScanResult`; rejected scans are not exceptions.
    """

    def __init__(
        self,
        *,
        issuer: QrTokenIssuer,
        subjects: SubjectRepository,
        attendance: AttendanceRepository,
        clock: Callable[[], datetime],
    ):
        self._issuer = issuer
        self._subjects = subjects
        self._attendance = attendance
        self._clock = clock
        self._lock = threading.Lock()
        self._in_flight: Set[int] = set()

    def submit(self, *, student_id: int, raw_payload: str) -> ScanResult:
        with self._lock:
            if student_id in self._in_flight:
                return ScanResult(ScanOutcome.ERROR, 409, "A check-in is already being processed")
            self._in_flight.add(student_id)

        try:
            return self._submit(student_id, raw_payload)
        finally:
            with self._lock:
                self._in_flight.discard(student_id)

    def _submit(self, student_id: int, raw_payload: str) -> ScanResult:
        try:
            payload = parse_payload(raw_payload)
        except ValidationError as e:
            return ScanResult(ScanOutcome.ERROR, 400, str(e))

        consumed = self._issuer.validate_and_consume(payload.token)
        if not consumed:
            logger.info("Rejected scan by student %s: invalid or expired token", student_id)
            return ScanResult(ScanOutcome.ERROR, 400, "Invalid or expired QR code")

        subject_id = consumed.subject_id
        if not self._subjects.is_enrolled(subject_id=subject_id, student_id=student_id):
            logger.info("Rejected scan by student %s: not enrolled in subject %s", student_id, subject_id)
            return ScanResult(ScanOutcome.ERROR, 403, "You are not enrolled in this subject")

        now = self._clock()
        today = now.date()
        existing = self._find(subject_id, today, student_id)

        if existing and existing.status.checked_in:
            return ScanResult(ScanOutcome.ALREADY, 200, "Attendance already recorded for today", existing)

        status = AttendanceStatus.LATE if consumed.late_mode else AttendanceStatus.PRESENT
        remarks = REMARK_LATE if consumed.late_mode else REMARK_ON_TIME
        outcome = ScanOutcome.LATE if consumed.late_mode else ScanOutcome.PRESENT

        if existing:
            self._attendance.update(
                AttendanceUpdate(attendance_id=existing.attendance_id, status=status, time_in=now, remarks=remarks)
            )
            http_status = 200
        else:
            try:
                self._attendance.insert_many(
                    [
                        NewAttendance(
                            student_id=student_id,
                            subject_id=subject_id,
                            work_date=today,
                            status=status,
                            time_in=now,
                            remarks=remarks,
                        )
                    ]
                )
            except Exception:
                # Lost the (student, subject, day) unique key to a concurrent scan.
                winner = self._find(subject_id, today, student_id)
                if winner and winner.status.checked_in:
                    return ScanResult(ScanOutcome.ALREADY, 200, "Attendance already recorded for today", winner)
                raise
            http_status = 201

        record = self._find(subject_id, today, student_id)
        logger.info("Student %s checked in to subject %s as %s", student_id, subject_id, status.value)
        return ScanResult(outcome, http_status, f"Attendance recorded as {status.value}", record)

    def _find(self, subject_id: int, work_date, student_id: int) -> Optional[AttendanceRecord]:
        rows = self._attendance.query_day(subject_id=subject_id, work_date=work_date, student_id=student_id)
        return rows[0] if rows else None
