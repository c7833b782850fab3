"""Attendance session state and its pure reducer.

The phase is a tagged union (`Inactive | Active(token) | Paused`), so a token
exists exactly while the session is active. `reduce()` never performs I/O:
the service runs side effects first and only then applies the event, which
leaves the state untouched whenever an effect fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Tuple, Union

from ..common.datetime_utils import format_time_in, parse_time_in
from ..core.enums import AttendanceStatus, SessionState
from ..core.exceptions import InvalidTransitionError, ValidationError


@dataclass(frozen=True)
class Inactive:
    pass


@dataclass(frozen=True)
class Active:
    token: str


@dataclass(frozen=True)
class Paused:
    pass


Phase = Union[Inactive, Active, Paused]


@dataclass(frozen=True)
class WorkingRecord:
    """Teacher-side view of one student for the current session."""

    student_id: int
    student_name: str
    time_in: Optional[datetime] = None
    status: Optional[AttendanceStatus] = None

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "timeIn": format_time_in(self.time_in),
            "status": self.status.value if self.status else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkingRecord":
        status = data.get("status")
        return cls(
            student_id=int(data["studentId"]),
            student_name=data.get("studentName") or "",
            time_in=parse_time_in(data.get("timeIn")),
            status=AttendanceStatus(status) if status else None,
        )


@dataclass(frozen=True)
class AttendanceSession:
    teacher_id: int
    subject_id: int
    date: date
    phase: Phase = field(default_factory=Inactive)
    was_resumed: bool = False
    session_ended: bool = False
    scan_count: int = 0
    last_ledger_count: int = 0
    is_editing: bool = False
    records: Tuple[WorkingRecord, ...] = ()

    @property
    def state(self) -> SessionState:
        if isinstance(self.phase, Active):
            return SessionState.ACTIVE
        if isinstance(self.phase, Paused):
            return SessionState.PAUSED
        return SessionState.INACTIVE

    @property
    def current_token(self) -> str:
        return self.phase.token if isinstance(self.phase, Active) else ""

    @property
    def late_mode(self) -> bool:
        return self.was_resumed or self.session_ended

    def stats(self) -> dict:
        counts = {s.value: 0 for s in AttendanceStatus}
        for r in self.records:
            if r.status:
                counts[r.status.value] += 1
        return {"total": len(self.records), **counts}

    def to_dict(self) -> dict:
        return {
            "teacherId": self.teacher_id,
            "subjectId": self.subject_id,
            "date": self.date.strftime("%Y-%m-%d"),
            "state": self.state.value,
            "qrToken": self.current_token,
            "wasResumed": self.was_resumed,
            "sessionEnded": self.session_ended,
            "scanCount": self.scan_count,
            "lastLedgerCount": self.last_ledger_count,
            "isEditing": self.is_editing,
            "records": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AttendanceSession":
        state = SessionState(data.get("state") or SessionState.INACTIVE.value)
        token = data.get("qrToken") or ""
        if state == SessionState.ACTIVE and token:
            phase: Phase = Active(token)
        elif state == SessionState.PAUSED:
            phase = Paused()
        else:
            phase = Inactive()

        return cls(
            teacher_id=int(data["teacherId"]),
            subject_id=int(data["subjectId"]),
            date=datetime.strptime(data["date"], "%Y-%m-%d").date(),
            phase=phase,
            was_resumed=bool(data.get("wasResumed")),
            session_ended=bool(data.get("sessionEnded")),
            scan_count=int(data.get("scanCount") or 0),
            last_ledger_count=int(data.get("lastLedgerCount") or 0),
            is_editing=bool(data.get("isEditing")),
            records=tuple(WorkingRecord.from_dict(r) for r in data.get("records") or []),
        )


# ===== Events =====


@dataclass(frozen=True)
class Start:
    token: str
    ledger_count: int


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    token: str


@dataclass(frozen=True)
class End:
    records: Tuple[WorkingRecord, ...]


@dataclass(frozen=True)
class Reset:
    records: Tuple[WorkingRecord, ...]


@dataclass(frozen=True)
class Rotate:
    """New token after a detected scan or a manual regeneration."""

    token: str
    ledger_count: Optional[int] = None


@dataclass(frozen=True)
class SyncRecords:
    records: Tuple[WorkingRecord, ...]


@dataclass(frozen=True)
class BeginEdit:
    pass


@dataclass(frozen=True)
class FinishEdit:
    records: Tuple[WorkingRecord, ...]


@dataclass(frozen=True)
class SetStatus:
    student_id: int
    status: AttendanceStatus
    now: datetime


Event = Union[Start, Pause, Resume, End, Reset, Rotate, SyncRecords, BeginEdit, FinishEdit, SetStatus]


# Phases each phase-changing event may be applied in; other events are accepted anywhere.
_ALLOWED_FROM = {
    Start: (Inactive,),
    Pause: (Active,),
    Resume: (Paused,),
    End: (Active, Paused),
    Rotate: (Active,),
}


def ensure_allowed(session: AttendanceSession, event_type: type) -> None:
    allowed = _ALLOWED_FROM.get(event_type)
    if allowed and not isinstance(session.phase, allowed):
        raise InvalidTransitionError(
            f"Cannot {event_type.__name__.lower()} while the session is {session.state.value}"
        )


def _set_status(session: AttendanceSession, event: SetStatus) -> Tuple[WorkingRecord, ...]:
    if event.status == AttendanceStatus.EXCUSED and not session.is_editing:
        raise InvalidTransitionError("Excused can only be set in edit mode")

    found = False
    records = []
    for r in session.records:
        if r.student_id == event.student_id:
            found = True
            time_in = r.time_in
            if time_in is None and event.status != AttendanceStatus.EXCUSED:
                time_in = event.now
            r = replace(r, status=event.status, time_in=time_in)
        records.append(r)

    if not found:
        raise ValidationError("Student is not on this session's roster")
    return tuple(records)


def reduce(session: AttendanceSession, event: Event) -> AttendanceSession:
    """Apply one event; raises InvalidTransitionError for events the phase rejects."""

    ensure_allowed(session, type(event))

    if isinstance(event, Start):
        return replace(
            session,
            phase=Active(event.token),
            was_resumed=session.session_ended,
            scan_count=0,
            last_ledger_count=event.ledger_count,
        )

    if isinstance(event, Pause):
        return replace(session, phase=Paused())

    if isinstance(event, Resume):
        return replace(session, phase=Active(event.token), was_resumed=True)

    if isinstance(event, End):
        return replace(session, phase=Inactive(), session_ended=True, records=event.records)

    if isinstance(event, Reset):
        return AttendanceSession(
            teacher_id=session.teacher_id,
            subject_id=session.subject_id,
            date=session.date,
            records=event.records,
        )

    if isinstance(event, Rotate):
        ledger_count = session.last_ledger_count if event.ledger_count is None else event.ledger_count
        return replace(
            session,
            phase=Active(event.token),
            scan_count=session.scan_count + 1,
            last_ledger_count=ledger_count,
        )

    if isinstance(event, SyncRecords):
        return replace(session, records=event.records)

    if isinstance(event, BeginEdit):
        return replace(session, is_editing=True)

    if isinstance(event, FinishEdit):
        return replace(session, is_editing=False, records=event.records)

    if isinstance(event, SetStatus):
        return replace(session, records=_set_status(session, event))

    raise TypeError(f"Unknown event {event!r}")
