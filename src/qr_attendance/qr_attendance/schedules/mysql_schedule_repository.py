from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import DayOfWeek
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Schedule
from .repository import ScheduleRepository

_SCHEDULE_SELECT = """
    SELECT sc.schedule_id, sc.subject_id, sc.day_of_week, sc.start_time, sc.end_time, sc.room,
           s.name AS subject_name, s.code AS subject_code
    FROM schedules sc
    JOIN subjects s ON s.subject_id = sc.subject_id
"""


def _to_schedule(r: Dict[str, Any]) -> Schedule:
    return Schedule(
        schedule_id=int(r["schedule_id"]),
        subject_id=int(r["subject_id"]),
        day_of_week=DayOfWeek(r["day_of_week"]),
        start_time=str(r["start_time"])[:5],
        end_time=str(r["end_time"])[:5],
        room=r["room"],
        subject_name=r.get("subject_name"),
        subject_code=r.get("subject_code"),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_teacher(self, teacher_id: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SCHEDULE_SELECT + " WHERE s.teacher_id=%s ORDER BY sc.day_of_week ASC, sc.start_time ASC",
                (int(teacher_id),),
            )
            return [_to_schedule(r) for r in fetchall(cur)]

    def list_for_subject(self, subject_id: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SCHEDULE_SELECT + " WHERE sc.subject_id=%s ORDER BY sc.day_of_week ASC, sc.start_time ASC",
                (int(subject_id),),
            )
            return [_to_schedule(r) for r in fetchall(cur)]

    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SCHEDULE_SELECT + " WHERE sc.schedule_id=%s", (int(schedule_id),))
            row = fetchone(cur)
            return _to_schedule(row) if row else None

    def create(
        self,
        *,
        subject_id: int,
        day_of_week: DayOfWeek,
        start_time: str,
        end_time: str,
        room: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO schedules(subject_id, day_of_week, start_time, end_time, room)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(subject_id), day_of_week.value, start_time, end_time, room),
            )
            return int(cur.lastrowid)

    def delete(self, schedule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM schedules WHERE schedule_id=%s", (int(schedule_id),))
            return cur.rowcount > 0
