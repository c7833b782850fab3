from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceRecord, AttendanceUpdate, NewAttendance
from .repository import AttendanceRepository

_RECORD_SELECT = """
    SELECT ar.attendance_id, ar.student_id, ar.subject_id, ar.work_date, ar.status, ar.time_in, ar.remarks,
           u.full_name AS student_name, s.name AS subject_name
    FROM attendance_records ar
    JOIN users u ON u.user_id = ar.student_id
    JOIN subjects s ON s.subject_id = ar.subject_id
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        subject_id=int(r["subject_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        time_in=r.get("time_in"),
        remarks=r.get("remarks"),
        student_name=r.get("student_name"),
        subject_name=r.get("subject_name"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert_many(self, rows: Sequence[NewAttendance]) -> int:
        if not rows:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO attendance_records(student_id, subject_id, work_date, status, time_in, remarks)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                [
                    (r.student_id, r.subject_id, r.work_date, r.status.value, r.time_in, r.remarks)
                    for r in rows
                ],
            )
            return len(rows)

    def update(self, change: AttendanceUpdate) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, time_in=%s, remarks=%s
                WHERE attendance_id=%s
                """,
                (change.status.value, change.time_in, change.remarks, int(change.attendance_id)),
            )
            return cur.rowcount > 0

    def query_day(self, *, subject_id: int, work_date: date, student_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        clauses = ["ar.subject_id=%s", "ar.work_date=%s"]
        params: list[object] = [int(subject_id), work_date]
        if student_id is not None:
            clauses.append("ar.student_id=%s")
            params.append(int(student_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _RECORD_SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY ar.attendance_id ASC",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def delete_for_subject_and_date(self, *, subject_id: int, work_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_records WHERE subject_id=%s AND work_date=%s",
                (int(subject_id), work_date),
            )
            return int(cur.rowcount)

    def list_filtered(
        self,
        *,
        student_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        work_date: Optional[date] = None,
        teacher_id: Optional[int] = None,
        limit: int = 500,
    ) -> Sequence[AttendanceRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if student_id is not None:
            clauses.append("ar.student_id=%s")
            params.append(int(student_id))
        if subject_id is not None:
            clauses.append("ar.subject_id=%s")
            params.append(int(subject_id))
        if work_date is not None:
            clauses.append("ar.work_date=%s")
            params.append(work_date)
        if teacher_id is not None:
            clauses.append("s.teacher_id=%s")
            params.append(int(teacher_id))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _RECORD_SELECT + f" {where} ORDER BY ar.work_date DESC, u.full_name ASC LIMIT %s",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]
