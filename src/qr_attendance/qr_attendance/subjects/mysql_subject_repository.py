from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from mysql.connector import IntegrityError

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import EnrolledStudent, Subject
from .repository import SubjectRepository

_SUBJECT_SELECT = """
    SELECT s.subject_id, s.name, s.code, s.teacher_id, s.description,
           (SELECT COUNT(*) FROM enrollments e WHERE e.subject_id = s.subject_id) AS student_count
    FROM subjects s
"""


def _to_subject(row: Dict[str, Any]) -> Subject:
    return Subject(
        subject_id=int(row["subject_id"]),
        name=row["name"],
        code=row["code"],
        teacher_id=int(row["teacher_id"]) if row.get("teacher_id") is not None else None,
        description=row.get("description"),
        student_count=int(row.get("student_count") or 0),
    )


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SUBJECT_SELECT + " WHERE s.subject_id=%s", (int(subject_id),))
            row = fetchone(cur)
            return _to_subject(row) if row else None

    def list_all(self) -> Sequence[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SUBJECT_SELECT + " ORDER BY s.name ASC")
            return [_to_subject(r) for r in fetchall(cur)]

    def list_for_teacher(self, teacher_id: int) -> Sequence[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SUBJECT_SELECT + " WHERE s.teacher_id=%s ORDER BY s.name ASC", (int(teacher_id),))
            return [_to_subject(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SUBJECT_SELECT
                + """
                JOIN enrollments en ON en.subject_id = s.subject_id
                WHERE en.student_id=%s
                ORDER BY s.name ASC
                """,
                (int(student_id),),
            )
            return [_to_subject(r) for r in fetchall(cur)]

    def get_enrolled_students(self, subject_id: int) -> Sequence[EnrolledStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name
                FROM enrollments e
                JOIN users u ON u.user_id = e.student_id
                WHERE e.subject_id=%s
                ORDER BY u.full_name ASC
                """,
                (int(subject_id),),
            )
            return [EnrolledStudent(student_id=int(r["user_id"]), full_name=r["full_name"]) for r in fetchall(cur)]

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM enrollments WHERE subject_id=%s AND student_id=%s",
                (int(subject_id), int(student_id)),
            )
            return fetchone(cur) is not None

    def get_by_code(self, code: str) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SUBJECT_SELECT + " WHERE s.code=%s", (code,))
            row = fetchone(cur)
            return _to_subject(row) if row else None

    def create(self, *, name: str, code: str, teacher_id: Optional[int], description: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO subjects(name, code, teacher_id, description) VALUES(%s,%s,%s,%s)",
                (name, code, teacher_id, description),
            )
            return int(cur.lastrowid)

    def delete(self, subject_id: int) -> bool:
        # schedules, enrollments, attendance and qr_tokens cascade
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM subjects WHERE subject_id=%s", (int(subject_id),))
            return cur.rowcount > 0

    def enroll(self, *, subject_id: int, student_id: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO enrollments(student_id, subject_id) VALUES(%s,%s)",
                    (int(student_id), int(subject_id)),
                )
                return True
        except IntegrityError:
            return False

    def count_students_for_teacher(self, teacher_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT e.student_id) AS total
                FROM enrollments e
                JOIN subjects s ON s.subject_id = e.subject_id
                WHERE s.teacher_id=%s
                """,
                (int(teacher_id),),
            )
            row = fetchone(cur)
            return int(row["total"]) if row else 0
