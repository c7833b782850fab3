from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceHistoryService
from .checkin.service import CheckInService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_SCHOOL_TIMEZONE, POLL_INTERVAL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .qr.mysql_token_repository import MySQLTokenRepository
from .qr.repository import TokenRepository
from .qr.service import QrTokenIssuer
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.service import ScheduleService
from .sessions.poller import SessionPoller
from .sessions.service import AttendanceSessionService
from .sessions.snapshot_store import MySQLSnapshotStore, SnapshotStore
from .subjects.mysql_subject_repository import MySQLSubjectRepository
from .subjects.repository import SubjectRepository
from .subjects.service import SubjectManagementService, SubjectService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    clock: Callable[[], datetime]

    users_repo: UserRepository
    subjects_repo: SubjectRepository
    schedules_repo: ScheduleRepository
    attendance_repo: AttendanceRepository
    tokens_repo: TokenRepository
    snapshots: SnapshotStore

    auth_service: AuthService
    user_service: UserService
    subject_service: SubjectService
    subject_admin_service: SubjectManagementService
    schedule_service: ScheduleService
    history_service: AttendanceHistoryService
    token_issuer: QrTokenIssuer
    checkin_service: CheckInService
    session_service: AttendanceSessionService


def assemble_container(
    *,
    users_repo: UserRepository,
    subjects_repo: SubjectRepository,
    schedules_repo: ScheduleRepository,
    attendance_repo: AttendanceRepository,
    tokens_repo: TokenRepository,
    snapshots: SnapshotStore,
    clock: Callable[[], datetime],
    poller: SessionPoller,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services on top of whatever repositories are given (MySQL or in-memory)."""

    subject_service = SubjectService(subjects_repo)
    token_issuer = QrTokenIssuer(tokens_repo)

    return Container(
        conn=conn,
        clock=clock,
        users_repo=users_repo,
        subjects_repo=subjects_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        tokens_repo=tokens_repo,
        snapshots=snapshots,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        subject_service=subject_service,
        subject_admin_service=SubjectManagementService(subjects_repo, users_repo),
        schedule_service=ScheduleService(schedules_repo, subject_service),
        history_service=AttendanceHistoryService(attendance_repo, subjects_repo),
        token_issuer=token_issuer,
        checkin_service=CheckInService(
            issuer=token_issuer,
            subjects=subjects_repo,
            attendance=attendance_repo,
            clock=clock,
        ),
        session_service=AttendanceSessionService(
            issuer=token_issuer,
            attendance=attendance_repo,
            subjects=subject_service,
            snapshots=snapshots,
            poller=poller,
            clock=clock,
        ),
    )


def build_container(
    *,
    db_config: dict,
    school_timezone: str = DEFAULT_SCHOOL_TIMEZONE,
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        subjects_repo=MySQLSubjectRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        tokens_repo=MySQLTokenRepository(conn),
        snapshots=MySQLSnapshotStore(conn),
        clock=partial(now_local, school_timezone),
        poller=SessionPoller(poll_interval_seconds),
    )
