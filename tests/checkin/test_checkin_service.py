from __future__ import annotations

import threading

from src.qr_attendance.qr_attendance.attendance.model import NewAttendance
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus, ScanOutcome


def _url(code: str, subject_id: int) -> str:
    return f"http://testserver/login?token={code}&subjectId={subject_id}&ts=1&scan=attendance"


def test_scan_with_on_time_token_records_present(world, fixed_now):
    code = world.issuer.mint(world.subject_id)

    result = world.checkin.submit(student_id=3, raw_payload=_url(code, world.subject_id))

    assert result.outcome == ScanOutcome.PRESENT
    assert result.http_status == 201
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.time_in == fixed_now
    assert result.record.remarks == "On time"
    assert world.tokens.active_for(world.subject_id) == []


def test_scan_with_late_token_records_late(world):
    code = world.issuer.mint(world.subject_id, late_mode=True)

    result = world.checkin.submit(student_id=4, raw_payload=code)

    assert result.outcome == ScanOutcome.LATE
    assert result.record.status == AttendanceStatus.LATE
    assert result.record.remarks == "Arrived late"


def test_consumed_token_is_rejected_for_the_next_student(world):
    code = world.issuer.mint(world.subject_id)
    world.checkin.submit(student_id=3, raw_payload=code)

    result = world.checkin.submit(student_id=4, raw_payload=code)

    assert result.outcome == ScanOutcome.ERROR
    assert result.http_status == 400
    assert world.attendance.query_day(subject_id=world.subject_id, work_date=world.clock().date(), student_id=4) == []


def test_not_enrolled_student_gets_403(world):
    code = world.issuer.mint(world.subject_id)

    result = world.checkin.submit(student_id=world.outsider_id, raw_payload=code)

    assert result.outcome == ScanOutcome.ERROR
    assert result.http_status == 403
    assert world.attendance.rows() == []


def test_rescan_with_a_new_token_reports_already(world, fixed_now):
    first = world.issuer.mint(world.subject_id)
    world.checkin.submit(student_id=3, raw_payload=first)
    world.clock.advance(minutes=10)

    second = world.issuer.mint(world.subject_id, late_mode=True)
    result = world.checkin.submit(student_id=3, raw_payload=second)

    assert result.outcome == ScanOutcome.ALREADY
    assert result.http_status == 200
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.time_in == fixed_now
    assert world.attendance.inserts == 1
    assert world.attendance.updates == 0


def test_pre_marked_absent_row_is_updated(world, fixed_now):
    world.attendance.insert_many(
        [
            NewAttendance(
                student_id=5,
                subject_id=world.subject_id,
                work_date=fixed_now.date(),
                status=AttendanceStatus.ABSENT,
                remarks="Did not scan QR",
            )
        ]
    )
    code = world.issuer.mint(world.subject_id, late_mode=True)

    result = world.checkin.submit(student_id=5, raw_payload=code)

    assert result.outcome == ScanOutcome.LATE
    assert result.http_status == 200
    assert result.record.status == AttendanceStatus.LATE
    assert result.record.time_in == fixed_now
    assert len(world.attendance.rows()) == 1


def test_invalid_payload_is_rejected_without_consuming(world):
    code = world.issuer.mint(world.subject_id)

    result = world.checkin.submit(student_id=3, raw_payload="http://testserver/login?subjectId=10")

    assert result.outcome == ScanOutcome.ERROR
    assert result.http_status == 400
    assert [t.code for t in world.tokens.active_for(world.subject_id)] == [code]


def test_reentrant_submission_is_rejected_while_in_flight(world, monkeypatch):
    first = world.issuer.mint(world.subject_id)
    entered = threading.Event()
    release = threading.Event()
    original = world.attendance.query_day

    def slow_query_day(**kwargs):
        entered.set()
        release.wait(5)
        return original(**kwargs)

    monkeypatch.setattr(world.attendance, "query_day", slow_query_day)

    results = []
    worker = threading.Thread(target=lambda: results.append(world.checkin.submit(student_id=3, raw_payload=first)))
    worker.start()
    assert entered.wait(5)

    second = world.issuer.mint(world.subject_id)
    blocked = world.checkin.submit(student_id=3, raw_payload=second)
    release.set()
    worker.join(5)

    assert blocked.outcome == ScanOutcome.ERROR
    assert blocked.http_status == 409
    assert results[0].outcome == ScanOutcome.PRESENT
    # the rejected submission never touched its token
    assert [t.code for t in world.tokens.active_for(world.subject_id)] == [second]


def test_lost_insert_race_reports_already(world, fixed_now, monkeypatch):
    code = world.issuer.mint(world.subject_id)
    original = world.attendance.insert_many

    def racing_insert(rows):
        original(
            [
                NewAttendance(
                    student_id=3,
                    subject_id=world.subject_id,
                    work_date=fixed_now.date(),
                    status=AttendanceStatus.PRESENT,
                    time_in=fixed_now,
                )
            ]
        )
        return original(rows)

    monkeypatch.setattr(world.attendance, "insert_many", racing_insert)

    result = world.checkin.submit(student_id=3, raw_payload=code)

    assert result.outcome == ScanOutcome.ALREADY
    assert len(world.attendance.rows()) == 1
