from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import Callable, Dict, Optional

import pytest
from werkzeug.security import generate_password_hash

from src.qr_attendance.qr_attendance.attendance.model import AttendanceRecord
from src.qr_attendance.qr_attendance.container import assemble_container
from src.qr_attendance.qr_attendance.core.enums import DayOfWeek, Role
from src.qr_attendance.qr_attendance.qr.model import QrToken
from src.qr_attendance.qr_attendance.schedules.model import Schedule
from src.qr_attendance.qr_attendance.subjects.model import EnrolledStudent, Subject
from src.qr_attendance.qr_attendance.users.model import User

# A Monday, inside the SE101 slot.
FIXED_NOW = datetime(2026, 3, 2, 9, 15, 0)

TEACHER_ID = 2
OTHER_TEACHER_ID = 9
SUBJECT_ID = 10
OTHER_SUBJECT_ID = 11
SECOND_SUBJECT_ID = 12
STUDENTS = {3: "Juan Dela Cruz", 4: "Maria Santos", 5: "Jose Garcia"}
OUTSIDER_ID = 6


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemoryUsers:
    users_by_id: Dict[int, User]

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(user_id)

    def get_by_identifier(self, identifier: str) -> Optional[User]:
        for u in self.users_by_id.values():
            if u.email == identifier:
                return u
        for u in self.users_by_id.values():
            if u.username == identifier:
                return u
        return None

    def list_all(self, *, role=None):
        users = sorted(self.users_by_id.values(), key=lambda u: u.full_name)
        return [u for u in users if role is None or u.role == role]

    def create_user(self, *, username, email, full_name, password_hash, role) -> int:
        user_id = max(self.users_by_id) + 1
        self.users_by_id[user_id] = User(user_id, username, email, full_name, password_hash, role)
        return user_id

    def delete_by_id(self, user_id: int) -> bool:
        return self.users_by_id.pop(user_id, None) is not None


class InMemorySubjects:
    def __init__(self, subjects: Dict[int, Subject], enrollments: Dict[int, list], users: Dict[int, User]):
        self.subjects = subjects
        self.enrollments = enrollments
        self._users = users

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        return self.subjects.get(subject_id)

    def list_all(self):
        return sorted(self.subjects.values(), key=lambda s: s.name)

    def list_for_teacher(self, teacher_id: int):
        return [s for s in self.list_all() if s.teacher_id == teacher_id]

    def list_for_student(self, student_id: int):
        return [
            s
            for s in self.list_all()
            if any(e.student_id == student_id for e in self.enrollments.get(s.subject_id, []))
        ]

    def get_enrolled_students(self, subject_id: int):
        return sorted(self.enrollments.get(subject_id, []), key=lambda e: e.full_name)

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        return any(e.student_id == student_id for e in self.enrollments.get(subject_id, []))

    def get_by_code(self, code: str) -> Optional[Subject]:
        return next((s for s in self.subjects.values() if s.code == code), None)

    def create(self, *, name, code, teacher_id, description) -> int:
        subject_id = max(self.subjects) + 1
        self.subjects[subject_id] = Subject(subject_id, name, code, teacher_id, description)
        return subject_id

    def delete(self, subject_id: int) -> bool:
        self.enrollments.pop(subject_id, None)
        return self.subjects.pop(subject_id, None) is not None

    def enroll(self, *, subject_id: int, student_id: int) -> bool:
        if self.is_enrolled(subject_id=subject_id, student_id=student_id):
            return False
        entry = EnrolledStudent(student_id=student_id, full_name=self._users[student_id].full_name)
        self.enrollments.setdefault(subject_id, []).append(entry)
        return True

    def count_students_for_teacher(self, teacher_id: int) -> int:
        return len(
            {e.student_id for s in self.list_for_teacher(teacher_id) for e in self.enrollments.get(s.subject_id, [])}
        )


@dataclass
class InMemorySchedules:
    schedules: list
    subjects: InMemorySubjects

    def _live(self):
        # rows of deleted subjects are gone, as with the cascading foreign key
        return [s for s in self.schedules if self.subjects.get_by_id(s.subject_id)]

    def list_for_teacher(self, teacher_id: int):
        owned = {s.subject_id for s in self.subjects.list_for_teacher(teacher_id)}
        return [s for s in self._live() if s.subject_id in owned]

    def list_for_subject(self, subject_id: int):
        return [s for s in self._live() if s.subject_id == subject_id]

    def get_by_id(self, schedule_id: int):
        return next((s for s in self._live() if s.schedule_id == schedule_id), None)

    def create(self, *, subject_id, day_of_week, start_time, end_time, room) -> int:
        schedule_id = max((s.schedule_id for s in self.schedules), default=0) + 1
        subject = self.subjects.get_by_id(subject_id)
        self.schedules.append(
            Schedule(schedule_id, subject_id, day_of_week, start_time, end_time, room, subject.name, subject.code)
        )
        return schedule_id

    def delete(self, schedule_id: int) -> bool:
        before = len(self.schedules)
        self.schedules = [s for s in self.schedules if s.schedule_id != schedule_id]
        return len(self.schedules) < before


class InMemoryAttendance:
    """Ledger with the (student, subject, day) unique key and switchable failures."""

    def __init__(self, names: Dict[int, str], subjects: InMemorySubjects):
        self._names = names
        self._subjects = subjects
        self._rows: Dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.fail_inserts = False
        self.fail_update_ids: set = set()
        self.inserts = 0
        self.updates = 0

    @property
    def writes(self) -> int:
        return self.inserts + self.updates

    def rows(self):
        return list(self._rows.values())

    def insert_many(self, rows) -> int:
        if not rows:
            return 0
        with self._lock:
            if self.fail_inserts:
                raise RuntimeError("insert failed")
            keys = {(r.student_id, r.subject_id, r.work_date) for r in self._rows.values()}
            for r in rows:
                if (r.student_id, r.subject_id, r.work_date) in keys:
                    raise RuntimeError("Duplicate entry")
            for r in rows:
                subject = self._subjects.get_by_id(r.subject_id)
                self._rows[self._next_id] = AttendanceRecord(
                    attendance_id=self._next_id,
                    student_id=r.student_id,
                    subject_id=r.subject_id,
                    work_date=r.work_date,
                    status=r.status,
                    time_in=r.time_in,
                    remarks=r.remarks,
                    student_name=self._names.get(r.student_id),
                    subject_name=subject.name if subject else None,
                )
                self._next_id += 1
            self.inserts += len(rows)
            return len(rows)

    def update(self, change) -> bool:
        with self._lock:
            if change.attendance_id in self.fail_update_ids:
                raise RuntimeError("update failed")
            row = self._rows.get(change.attendance_id)
            if not row:
                return False
            self._rows[change.attendance_id] = replace(
                row, status=change.status, time_in=change.time_in, remarks=change.remarks
            )
            self.updates += 1
            return True

    def query_day(self, *, subject_id: int, work_date: date, student_id: Optional[int] = None):
        return [
            r
            for r in self._rows.values()
            if r.subject_id == subject_id
            and r.work_date == work_date
            and (student_id is None or r.student_id == student_id)
        ]

    def delete_for_subject_and_date(self, *, subject_id: int, work_date: date) -> int:
        doomed = [k for k, r in self._rows.items() if r.subject_id == subject_id and r.work_date == work_date]
        for k in doomed:
            del self._rows[k]
        return len(doomed)

    def list_filtered(self, *, student_id=None, subject_id=None, work_date=None, teacher_id=None, limit=500):
        items = []
        for r in self._rows.values():
            if student_id is not None and r.student_id != student_id:
                continue
            if subject_id is not None and r.subject_id != subject_id:
                continue
            if work_date is not None and r.work_date != work_date:
                continue
            if teacher_id is not None and self._subjects.get_by_id(r.subject_id).teacher_id != teacher_id:
                continue
            items.append(r)
        items.sort(key=lambda r: (r.work_date, r.student_name or ""), reverse=True)
        return items[:limit]


class InMemoryTokens:
    def __init__(self):
        self.tokens: Dict[int, QrToken] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def active_for(self, subject_id: int):
        return [t for t in self.tokens.values() if t.subject_id == subject_id and t.active]

    def insert(self, *, subject_id: int, code: str, active: bool = True) -> QrToken:
        with self._lock:
            token = QrToken(qr_id=self._next_id, subject_id=subject_id, code=code, active=active)
            self.tokens[token.qr_id] = token
            self._next_id += 1
            return token

    def deactivate_for_subject(self, subject_id: int) -> int:
        with self._lock:
            count = 0
            for t in list(self.tokens.values()):
                if t.subject_id == subject_id and t.active:
                    self.tokens[t.qr_id] = replace(t, active=False)
                    count += 1
            return count

    def find_active(self, code: str) -> Optional[QrToken]:
        for t in self.tokens.values():
            if t.code == code and t.active:
                return t
        return None

    def consume(self, qr_id: int) -> bool:
        with self._lock:
            t = self.tokens.get(qr_id)
            if not t or not t.active:
                return False
            self.tokens[qr_id] = replace(t, active=False)
            return True


class InMemorySnapshots:
    def __init__(self):
        self.data: Dict[str, dict] = {}

    def load(self, key: str) -> Optional[dict]:
        return self.data.get(key)

    def save(self, key: str, *, teacher_id: int, payload: dict) -> None:
        self.data[key] = payload

    def clear(self, key: str) -> None:
        self.data.pop(key, None)


class ManualPoller:
    """Records interval jobs instead of scheduling them; `tick()` runs one."""

    def __init__(self):
        self.jobs: Dict[str, Callable[[], None]] = {}
        self.started = 0

    def start(self, key: str, func: Callable[[], None]) -> None:
        self.jobs[key] = func
        self.started += 1

    def stop(self, key: str) -> None:
        self.jobs.pop(key, None)

    def is_polling(self, key: str) -> bool:
        return key in self.jobs

    def tick(self, key: str) -> None:
        self.jobs[key]()

    def shutdown(self) -> None:
        self.jobs.clear()


def _user(user_id: int, username: str, full_name: str, role: Role) -> User:
    return User(
        user_id=user_id,
        username=username,
        email=f"{username}@school.local",
        full_name=full_name,
        password_hash=generate_password_hash("password"),
        role=role,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def world(fixed_now):
    """In-memory repositories plus a container wired on top of them."""

    users = {
        1: _user(1, "admin", "System Administrator", Role.ADMIN),
        TEACHER_ID: _user(TEACHER_ID, "teacher", "Dr. Jose Rizal", Role.TEACHER),
        OTHER_TEACHER_ID: _user(OTHER_TEACHER_ID, "teacher2", "Prof. Andres Bonifacio", Role.TEACHER),
        OUTSIDER_ID: _user(OUTSIDER_ID, "outsider", "Pedro Penduko", Role.STUDENT),
    }
    usernames = {3: "student", 4: "student2", 5: "student3"}
    for sid, name in STUDENTS.items():
        users[sid] = _user(sid, usernames[sid], name, Role.STUDENT)

    subjects_repo = InMemorySubjects(
        subjects={
            SUBJECT_ID: Subject(subject_id=SUBJECT_ID, name="Software Engineering", code="SE101", teacher_id=TEACHER_ID),
            OTHER_SUBJECT_ID: Subject(
                subject_id=OTHER_SUBJECT_ID, name="Data Structures", code="CS201", teacher_id=OTHER_TEACHER_ID
            ),
            SECOND_SUBJECT_ID: Subject(
                subject_id=SECOND_SUBJECT_ID, name="Web Development", code="WD102", teacher_id=TEACHER_ID
            ),
        },
        enrollments={
            SUBJECT_ID: [EnrolledStudent(student_id=sid, full_name=name) for sid, name in STUDENTS.items()],
            OTHER_SUBJECT_ID: [EnrolledStudent(student_id=OUTSIDER_ID, full_name="Pedro Penduko")],
            SECOND_SUBJECT_ID: [EnrolledStudent(student_id=3, full_name=STUDENTS[3])],
        },
        users=users,
    )
    schedules_repo = InMemorySchedules(
        [
            Schedule(1, SUBJECT_ID, DayOfWeek.MONDAY, "09:00", "10:30", "Q3212", "Software Engineering", "SE101"),
            Schedule(2, SUBJECT_ID, DayOfWeek.MONDAY, "13:00", "14:30", "Q3212", "Software Engineering", "SE101"),
            Schedule(3, SUBJECT_ID, DayOfWeek.WEDNESDAY, "09:00", "10:30", "Q3212", "Software Engineering", "SE101"),
        ],
        subjects_repo,
    )
    attendance_repo = InMemoryAttendance({u.user_id: u.full_name for u in users.values()}, subjects_repo)
    tokens_repo = InMemoryTokens()
    snapshots = InMemorySnapshots()
    clock = FakeClock(fixed_now)
    poller = ManualPoller()

    container = assemble_container(
        users_repo=InMemoryUsers(users),
        subjects_repo=subjects_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        tokens_repo=tokens_repo,
        snapshots=snapshots,
        clock=clock,
        poller=poller,
    )

    return SimpleNamespace(
        container=container,
        attendance=attendance_repo,
        tokens=tokens_repo,
        subjects=subjects_repo,
        snapshots=snapshots,
        clock=clock,
        poller=poller,
        sessions=container.session_service,
        checkin=container.checkin_service,
        issuer=container.token_issuer,
        teacher_id=TEACHER_ID,
        other_teacher_id=OTHER_TEACHER_ID,
        subject_id=SUBJECT_ID,
        other_subject_id=OTHER_SUBJECT_ID,
        second_subject_id=SECOND_SUBJECT_ID,
        student_ids=sorted(STUDENTS),
        outsider_id=OUTSIDER_ID,
    )


@pytest.fixture
def app(world, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from src.qr_attendance.qr_attendance.main import create_app

    return create_app(container=world.container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(username: str, password: str = "password"):
        resp = client.post("/api/login", json={"identifier": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()

    return _login
