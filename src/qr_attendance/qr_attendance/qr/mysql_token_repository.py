from __future__ import annotations

from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import QrToken
from .repository import TokenRepository


def _to_token(row: Dict[str, Any]) -> QrToken:
    return QrToken(
        qr_id=int(row["qr_id"]),
        subject_id=int(row["subject_id"]),
        code=row["code"],
        active=bool(row["active"]),
        created_at=row.get("created_at"),
    )


class MySQLTokenRepository(TokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(self, *, subject_id: int, code: str, active: bool = True) -> QrToken:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO qr_tokens(subject_id, code, active) VALUES(%s,%s,%s)",
                (int(subject_id), code, 1 if active else 0),
            )
            return QrToken(qr_id=int(cur.lastrowid), subject_id=int(subject_id), code=code, active=active)

    def deactivate_for_subject(self, subject_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE qr_tokens SET active=0 WHERE subject_id=%s AND active=1", (int(subject_id),))
            return int(cur.rowcount)

    def find_active(self, code: str) -> Optional[QrToken]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT qr_id, subject_id, code, active, created_at
                FROM qr_tokens
                WHERE code=%s AND active=1
                LIMIT 1
                """,
                (code,),
            )
            row = fetchone(cur)
            return _to_token(row) if row else None

    def consume(self, qr_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE qr_tokens SET active=0 WHERE qr_id=%s AND active=1", (int(qr_id),))
            return cur.rowcount == 1
