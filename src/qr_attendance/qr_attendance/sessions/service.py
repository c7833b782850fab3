from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..attendance.model import AttendanceRecord, AttendanceUpdate, NewAttendance
from ..attendance.repository import AttendanceRepository
from ..core.constants import REMARK_DID_NOT_SCAN, REMARK_MANUALLY_EDITED, SESSION_STORAGE_KEY
from ..core.enums import AttendanceStatus, Role, SessionState
from ..core.exceptions import ValidationError
from ..qr.payload import build_payload_url
from ..qr.service import QrTokenIssuer
from ..subjects.service import SubjectService
from .poller import SessionPoller
from .records import blank_records, initial_records, merge_ledger, refresh_from_ledger
from .snapshot_store import SnapshotStore
from .state import (
    AttendanceSession,
    BeginEdit,
    End,
    FinishEdit,
    Pause,
    Reset,
    Resume,
    Rotate,
    SetStatus,
    Start,
    SyncRecords,
    ensure_allowed,
    reduce,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndSummary:
    inserted: int
    failed: int

    def to_dict(self) -> dict:
        return {
            "absentInserted": self.inserted,
            "failed": self.failed,
            "message": f"{self.inserted} students marked as absent",
        }


@dataclass(frozen=True)
class SaveSummary:
    succeeded: int
    failed: int

    @property
    def message(self) -> str:
        if self.failed:
            return f"{self.succeeded} succeeded, {self.failed} failed"
        if self.succeeded:
            return f"{self.succeeded} attendance records have been updated"
        return "All records are already up to date"

    def to_dict(self) -> dict:
        return {"succeeded": self.succeeded, "failed": self.failed, "message": self.message}


class AttendanceSessionService:
    """Server-side controller of each teacher's live attendance session.

    Business rules:
    - Every transition validates first, runs its side effects (mint,
      deactivate, ledger writes) and only then applies the reducer, so a
      failing store leaves the session exactly as it was.
    - The session is snapshotted after every transition, `end` included, so
      `session_ended` survives a restart. `new_session` clears the snapshot.
    - A session from an earlier day is discarded on first lookup, and its
      token is deactivated with it.
    - While active, the ledger is polled on an interval; the job is removed
      as soon as the session leaves active.
    """

    def __init__(
        self,
        *,
        issuer: QrTokenIssuer,
        attendance: AttendanceRepository,
        subjects: SubjectService,
        snapshots: SnapshotStore,
        poller: SessionPoller,
        clock: Callable[[], datetime],
        max_workers: int = 8,
    ):
        self._issuer = issuer
        self._attendance = attendance
        self._subjects = subjects
        self._snapshots = snapshots
        self._poller = poller
        self._clock = clock
        self._max_workers = max_workers

        self._sessions: Dict[int, AttendanceSession] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ===== Helpers =====

    @staticmethod
    def storage_key(teacher_id: int) -> str:
        return f"{SESSION_STORAGE_KEY}:{teacher_id}"

    def _lock_for(self, teacher_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(teacher_id)
            if lock is None:
                lock = self._locks[teacher_id] = threading.Lock()
            return lock

    def _today(self) -> date:
        return self._clock().date()

    def _ledger(self, session: AttendanceSession) -> Sequence[AttendanceRecord]:
        return self._attendance.query_day(subject_id=session.subject_id, work_date=session.date)

    def _roster(self, teacher_id: int, subject_id: int):
        return self._subjects.roster(role=Role.TEACHER, user_id=teacher_id, subject_id=subject_id)

    def _discard(self, session: AttendanceSession) -> None:
        key = self.storage_key(session.teacher_id)
        self._sessions.pop(session.teacher_id, None)
        self._poller.stop(key)
        if session.state == SessionState.ACTIVE:
            self._issuer.deactivate(session.subject_id)
        self._snapshots.clear(key)

    def _lookup(self, teacher_id: int) -> Optional[AttendanceSession]:
        """Today's session from memory, else from the stored snapshot."""

        today = self._today()
        session = self._sessions.get(teacher_id)

        if session is None:
            data = self._snapshots.load(self.storage_key(teacher_id))
            if not data:
                return None
            session = AttendanceSession.from_dict(data)
            if session.date == today:
                logger.info("Restored %s session of teacher %s", session.state.value, teacher_id)
                self._commit(session, persist=False)

        if session.date != today:
            logger.info("Discarding session of teacher %s from %s", teacher_id, session.date)
            self._discard(session)
            return None
        return session

    def _require(self, teacher_id: int) -> AttendanceSession:
        session = self._lookup(teacher_id)
        if session is None:
            raise ValidationError("Select a subject to start taking attendance")
        return session

    def _commit(self, session: AttendanceSession, *, persist: bool = True) -> AttendanceSession:
        key = self.storage_key(session.teacher_id)
        self._sessions[session.teacher_id] = session

        if session.state == SessionState.ACTIVE:
            if not self._poller.is_polling(key):
                teacher_id = session.teacher_id
                self._poller.start(key, lambda: self._poll_job(teacher_id))
        else:
            self._poller.stop(key)

        if persist:
            self._snapshots.save(key, teacher_id=session.teacher_id, payload=session.to_dict())
        return session

    def _clear_snapshot(self, session: AttendanceSession) -> None:
        self._snapshots.clear(self.storage_key(session.teacher_id))

    # ===== Queries =====

    def current(self, teacher_id: int) -> Optional[AttendanceSession]:
        with self._lock_for(teacher_id):
            return self._lookup(teacher_id)

    def qr_payload(self, teacher_id: int, *, base_url: str) -> Optional[str]:
        """URL encoded in the QR image, or None when no token is live."""

        session = self.current(teacher_id)
        if not session or not session.current_token:
            return None
        return build_payload_url(
            base_url, token=session.current_token, subject_id=session.subject_id, now=self._clock()
        )

    # ===== Transitions =====

    def open(self, *, teacher_id: int, subject_id: int) -> AttendanceSession:
        roster = self._roster(teacher_id, subject_id)

        with self._lock_for(teacher_id):
            current = self._lookup(teacher_id)

            if current and current.subject_id != subject_id and current.state != SessionState.INACTIVE:
                raise ValidationError("End the running session before switching subjects")

            if current and current.subject_id == subject_id:
                merged = merge_ledger(current.records, self._ledger(current))
                return self._commit(reduce(current, SyncRecords(merged)))

            session = AttendanceSession(teacher_id=teacher_id, subject_id=subject_id, date=self._today())
            session = reduce(session, SyncRecords(initial_records(roster, self._ledger(session))))
            logger.info("Teacher %s opened subject %s", teacher_id, subject_id)
            return self._commit(session)

    def start(self, teacher_id: int) -> AttendanceSession:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            ensure_allowed(session, Start)

            token = self._issuer.mint(session.subject_id, late_mode=session.session_ended)
            ledger = self._ledger(session)

            session = reduce(session, Start(token=token, ledger_count=len(ledger)))
            session = reduce(session, SyncRecords(merge_ledger(session.records, ledger)))
            logger.info(
                "Teacher %s started session for subject %s (late=%s)",
                teacher_id,
                session.subject_id,
                session.was_resumed,
            )
            return self._commit(session)

    def pause(self, teacher_id: int) -> AttendanceSession:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            ensure_allowed(session, Pause)

            self._issuer.deactivate(session.subject_id)
            logger.info("Teacher %s paused session for subject %s", teacher_id, session.subject_id)
            return self._commit(reduce(session, Pause()))

    def resume(self, teacher_id: int) -> AttendanceSession:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            ensure_allowed(session, Resume)

            token = self._issuer.mint(session.subject_id, late_mode=True)
            logger.info("Teacher %s resumed session for subject %s", teacher_id, session.subject_id)
            return self._commit(reduce(session, Resume(token=token)))

    def end(self, teacher_id: int) -> Tuple[AttendanceSession, EndSummary]:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            ensure_allowed(session, End)

            self._issuer.deactivate(session.subject_id)
            records, summary = self._backfill_absent(session)

            session = self._commit(reduce(session, End(records=records)))
            logger.info(
                "Teacher %s ended session for subject %s: %d absent, %d failed",
                teacher_id,
                session.subject_id,
                summary.inserted,
                summary.failed,
            )
            return session, summary

    def _backfill_absent(self, session: AttendanceSession):
        """Insert `absent` for every enrolled student without a row today."""

        roster = self._roster(session.teacher_id, session.subject_id)
        checked = {r.student_id for r in self._ledger(session)}
        missing = [
            NewAttendance(
                student_id=s.student_id,
                subject_id=session.subject_id,
                work_date=session.date,
                status=AttendanceStatus.ABSENT,
                time_in=None,
                remarks=REMARK_DID_NOT_SCAN,
            )
            for s in roster
            if s.student_id not in checked
        ]

        inserted = failed = 0
        if missing:
            try:
                inserted = self._attendance.insert_many(missing)
            except Exception:
                logger.exception("Failed to mark %d students absent for subject %s", len(missing), session.subject_id)
                failed = len(missing)

        records = initial_records(roster, self._ledger(session))
        return records, EndSummary(inserted=inserted, failed=failed)

    def new_session(self, teacher_id: int) -> AttendanceSession:
        """Wipe today's ledger rows for the subject and start over."""

        with self._lock_for(teacher_id):
            session = self._require(teacher_id)

            deleted = self._attendance.delete_for_subject_and_date(
                subject_id=session.subject_id, work_date=session.date
            )
            self._issuer.deactivate(session.subject_id)
            roster = self._roster(teacher_id, session.subject_id)

            session = self._commit(reduce(session, Reset(records=blank_records(roster))), persist=False)
            self._clear_snapshot(session)
            logger.info("Teacher %s reset subject %s, %d rows deleted", teacher_id, session.subject_id, deleted)
            return session

    def regenerate(self, teacher_id: int) -> AttendanceSession:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            ensure_allowed(session, Rotate)

            token = self._issuer.mint(session.subject_id, late_mode=session.late_mode)
            return self._commit(reduce(session, Rotate(token=token)))

    # ===== Polling =====

    def poll(self, teacher_id: int) -> Optional[AttendanceSession]:
        """Rotate the token when the ledger grew and merge new rows.

        A no-op unless the session is active.
        """

        with self._lock_for(teacher_id):
            session = self._lookup(teacher_id)
            if session is None or session.state != SessionState.ACTIVE:
                return session

            ledger = self._ledger(session)
            updated = session

            if len(ledger) > session.last_ledger_count:
                token = self._issuer.mint(session.subject_id, late_mode=session.late_mode)
                updated = reduce(updated, Rotate(token=token, ledger_count=len(ledger)))
                logger.info(
                    "Detected %d new check-in(s) for subject %s",
                    len(ledger) - session.last_ledger_count,
                    session.subject_id,
                )

            updated = reduce(updated, SyncRecords(merge_ledger(updated.records, ledger)))
            if updated == session:
                return session
            return self._commit(updated)

    def _poll_job(self, teacher_id: int) -> None:
        try:
            self.poll(teacher_id)
        except Exception:
            logger.exception("Ledger poll failed for teacher %s", teacher_id)

    # ===== Manual edits =====

    def set_status(self, teacher_id: int, *, student_id: int, status: AttendanceStatus) -> AttendanceSession:
        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            event = SetStatus(student_id=student_id, status=status, now=self._clock())
            return self._commit(reduce(session, event))

    def begin_edit(self, teacher_id: int) -> AttendanceSession:
        with self._lock_for(teacher_id):
            return self._commit(reduce(self._require(teacher_id), BeginEdit()))

    def cancel_edit(self, teacher_id: int) -> AttendanceSession:
        """Drop unsaved local changes and show the ledger again."""

        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            records = refresh_from_ledger(session.records, self._ledger(session))
            return self._commit(reduce(session, FinishEdit(records=records)))

    def save_edits(self, teacher_id: int) -> Tuple[AttendanceSession, SaveSummary]:
        """Write local statuses that differ from the ledger.

        One read of the day's rows, one batch insert for students without a
        row, and the updates in parallel. Nothing is written for records whose
        status already matches.
        """

        with self._lock_for(teacher_id):
            session = self._require(teacher_id)
            existing = {r.student_id: r for r in self._ledger(session)}
            now = self._clock()

            inserts = []
            updates = []
            for record in session.records:
                if record.status is None:
                    continue
                time_in = now if record.status.checked_in else None
                row = existing.get(record.student_id)
                if row is None:
                    inserts.append(
                        NewAttendance(
                            student_id=record.student_id,
                            subject_id=session.subject_id,
                            work_date=session.date,
                            status=record.status,
                            time_in=time_in,
                        )
                    )
                elif row.status != record.status:
                    updates.append(
                        AttendanceUpdate(
                            attendance_id=row.attendance_id,
                            status=record.status,
                            time_in=time_in,
                            remarks=REMARK_MANUALLY_EDITED,
                        )
                    )

            succeeded = failed = 0
            if inserts:
                try:
                    succeeded += self._attendance.insert_many(inserts)
                except Exception:
                    logger.exception("Failed to insert %d attendance rows", len(inserts))
                    failed += len(inserts)

            if updates:
                ok, bad = self._apply_updates(updates)
                succeeded += ok
                failed += bad

            records = merge_ledger(session.records, self._ledger(session))
            session = self._commit(reduce(session, FinishEdit(records=records)))
            summary = SaveSummary(succeeded=succeeded, failed=failed)
            logger.info("Teacher %s saved edits for subject %s: %s", teacher_id, session.subject_id, summary.message)
            return session, summary

    def _apply_updates(self, updates: Sequence[AttendanceUpdate]) -> Tuple[int, int]:
        ok = bad = 0
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(updates))) as pool:
            futures = [pool.submit(self._attendance.update, u) for u in updates]
            for future in futures:
                try:
                    if future.result():
                        ok += 1
                    else:
                        bad += 1
                except Exception:
                    logger.exception("Failed to update attendance row")
                    bad += 1
        return ok, bad

    def shutdown(self) -> None:
        self._poller.shutdown()
