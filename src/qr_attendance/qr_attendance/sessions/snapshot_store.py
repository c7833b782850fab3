from __future__ import annotations

import json
from typing import Optional, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone


class SnapshotStore(Protocol):
    """Key/value storage for serialized session snapshots."""

    def load(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    def save(self, key: str, *, teacher_id: int, payload: dict) -> None:
        raise NotImplementedError

    def clear(self, key: str) -> None:
        raise NotImplementedError


class MySQLSnapshotStore(SnapshotStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load(self, key: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT payload FROM session_snapshots WHERE storage_key=%s", (key,))
            row = fetchone(cur)
        if not row:
            return None
        payload = row["payload"]
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        return json.loads(payload) if isinstance(payload, str) else payload

    def save(self, key: str, *, teacher_id: int, payload: dict) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO session_snapshots(storage_key, teacher_id, payload)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE payload=VALUES(payload), teacher_id=VALUES(teacher_id)
                """,
                (key, int(teacher_id), json.dumps(payload)),
            )

    def clear(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM session_snapshots WHERE storage_key=%s", (key,))
