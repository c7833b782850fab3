from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _run_sql_file(db_config: dict, path: str | Path) -> None:
    target = DBConfig.from_dict(db_config)
    sql = _strip_create_db_and_use(Path(path).read_text(encoding="utf-8"))

    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_sql_file(db_config, schema_path)
    logger.info("Applied schema %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_sql_file(db_config, seed_path)
    logger.info("Applied seed %s", seed_path)


DEMO_USERS = (
    # (username, email, full_name, password, role)
    ("admin", "admin@school.local", "System Administrator", "password", "admin"),
    ("teacher", "teacher@school.local", "Dr. Jose Rizal", "password", "teacher"),
    ("student", "student@school.local", "Juan Dela Cruz", "password", "student"),
    ("student2", "maria.santos@school.local", "Maria Santos", "password", "student"),
    ("student3", "jose.garcia@school.local", "Jose Garcia", "password", "student"),
)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert demo accounts with real password hashes.

    seed.sql cannot carry werkzeug hashes portably, so the accounts are
    written here and then enrolled in the demo subject.
    """

    target = DBConfig.from_dict(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        for username, email, full_name, password, role in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET email=%s, full_name=%s, password_hash=%s, role=%s, is_active=1
                    WHERE username=%s
                    """,
                    (email, full_name, password_hash, role, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (username, email, full_name, password_hash, role)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (username, email, full_name, password_hash, role),
                )

        cur.execute("SELECT user_id FROM users WHERE username='teacher'")
        teacher_id = int(cur.fetchone()["user_id"])
        cur.execute("UPDATE subjects SET teacher_id=%s WHERE code='SE101'", (teacher_id,))

        cur.execute("SELECT subject_id FROM subjects WHERE code='SE101'")
        row = cur.fetchone()
        if row:
            cur.execute(
                """
                INSERT IGNORE INTO enrollments (student_id, subject_id)
                SELECT user_id, %s FROM users WHERE role='student'
                """,
                (int(row["subject_id"]),),
            )

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
