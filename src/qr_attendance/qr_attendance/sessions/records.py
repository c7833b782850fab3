from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, Sequence, Tuple

from ..attendance.model import AttendanceRecord
from ..core.enums import AttendanceStatus
from ..subjects.model import EnrolledStudent
from .state import WorkingRecord


def _by_student(rows: Iterable[AttendanceRecord]) -> Dict[int, AttendanceRecord]:
    return {r.student_id: r for r in rows}


def initial_records(
    roster: Sequence[EnrolledStudent], ledger: Sequence[AttendanceRecord]
) -> Tuple[WorkingRecord, ...]:
    """One working record per enrolled student, pre-filled from today's ledger."""

    rows = _by_student(ledger)
    records = []
    for student in roster:
        row = rows.get(student.student_id)
        records.append(
            WorkingRecord(
                student_id=student.student_id,
                student_name=student.full_name,
                time_in=row.time_in if row else None,
                status=row.status if row else None,
            )
        )
    return tuple(records)


def merge_ledger(
    records: Sequence[WorkingRecord], ledger: Sequence[AttendanceRecord]
) -> Tuple[WorkingRecord, ...]:
    """Pull ledger changes into the working records.

    A local record takes the ledger status only when it has none yet, or
    when the ledger disagrees with something other than `absent`. An
    `absent` row never overwrites a status the teacher set locally.
    """

    rows = _by_student(ledger)
    merged = []
    for r in records:
        row = rows.get(r.student_id)
        if row and (r.status is None or (row.status != r.status and row.status != AttendanceStatus.ABSENT)):
            r = replace(r, status=row.status, time_in=row.time_in or r.time_in)
        merged.append(r)
    return tuple(merged)


def refresh_from_ledger(
    records: Sequence[WorkingRecord], ledger: Sequence[AttendanceRecord]
) -> Tuple[WorkingRecord, ...]:
    """Replace every status and time-in with the ledger's; missing rows become None."""

    rows = _by_student(ledger)
    refreshed = []
    for r in records:
        row = rows.get(r.student_id)
        refreshed.append(
            replace(r, status=row.status if row else None, time_in=row.time_in if row else None)
        )
    return tuple(refreshed)


def blank_records(roster: Sequence[EnrolledStudent]) -> Tuple[WorkingRecord, ...]:
    return tuple(WorkingRecord(student_id=s.student_id, student_name=s.full_name) for s in roster)
