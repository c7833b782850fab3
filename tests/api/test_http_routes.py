from __future__ import annotations

import csv
import io


def test_login_sets_session_and_user_endpoint(client, login):
    body = login("teacher@school.local")

    assert body["role"] == "teacher"
    me = client.get("/api/user")
    assert me.status_code == 200
    assert me.get_json()["username"] == "teacher"


def test_login_rejects_wrong_role(client):
    resp = client.post("/api/login", json={"identifier": "student", "password": "password", "role": "teacher"})

    assert resp.status_code == 401


def test_logout_clears_session(client, login):
    login("student")
    client.post("/api/logout")

    assert client.get("/api/user").status_code == 401


def test_endpoints_require_login(client):
    assert client.get("/api/subjects").status_code == 401
    assert client.post("/api/attendance/scan", json={"qrCode": "x"}).status_code == 401
    assert client.post("/api/session/start").status_code == 401


def test_subjects_are_scoped_by_role(client, login, world):
    login("student2")
    codes = {s["code"] for s in client.get("/api/subjects").get_json()}
    assert codes == {"SE101"}

    client.post("/api/logout")
    login("teacher")
    codes = {s["code"] for s in client.get("/api/subjects").get_json()}
    assert codes == {"SE101", "WD102"}


def test_roster_of_foreign_subject_is_forbidden(client, login, world):
    login("teacher")

    assert client.get(f"/api/subjects/{world.subject_id}/students").status_code == 200
    assert client.get(f"/api/subjects/{world.other_subject_id}/students").status_code == 403
    assert client.get("/api/subjects/999/students").status_code == 404


def test_students_cannot_drive_sessions(client, login):
    login("student")

    assert client.post("/api/session/start").status_code == 403


def test_session_flow_over_http(app, client, login, world):
    login("teacher")

    opened = client.post("/api/session", json={"subjectId": world.subject_id})
    assert opened.status_code == 200
    assert opened.get_json()["session"]["state"] == "inactive"

    started = client.post("/api/session/start").get_json()["session"]
    assert started["state"] == "active"
    assert client.post("/api/session/start").status_code == 409

    image = client.get("/api/session/qr.png")
    assert image.status_code == 200
    assert image.mimetype == "image/png"

    payload = world.sessions.qr_payload(world.teacher_id, base_url="http://testserver")
    student = app.test_client()
    student.post("/api/login", json={"identifier": "student", "password": "password"})
    scan = student.post("/api/attendance/scan", json={"qrCode": payload})
    assert scan.status_code == 201
    assert scan.get_json()["status"] == "present"

    replay = student.post("/api/attendance/scan", json={"qrCode": payload})
    assert replay.status_code == 400
    assert replay.get_json()["status"] == "error"

    polled = client.post("/api/session/poll").get_json()
    assert polled["session"]["scanCount"] == 1
    assert polled["stats"]["present"] == 1

    ended = client.post("/api/session/end").get_json()
    assert ended["summary"]["absentInserted"] == 2
    assert ended["session"]["sessionEnded"] is True
    assert client.get("/api/session/qr.png").status_code == 404


def test_edit_and_save_over_http(client, login, world):
    login("teacher")
    client.post("/api/session", json={"subjectId": world.subject_id})

    assert client.post("/api/session/status", json={"studentId": 4, "status": "excused"}).status_code == 409
    assert client.post("/api/session/status", json={"studentId": 4, "status": "sleeping"}).status_code == 400

    client.post("/api/session/edit")
    resp = client.post("/api/session/status", json={"studentId": 4, "status": "excused"})
    assert resp.status_code == 200

    saved = client.post("/api/session/save").get_json()
    assert saved["summary"] == {"succeeded": 1, "failed": 0, "message": "1 attendance records have been updated"}
    assert saved["session"]["isEditing"] is False


def test_open_requires_subject_id(client, login):
    login("teacher")

    assert client.post("/api/session", json={}).status_code == 400


def test_open_foreign_subject_is_forbidden(client, login, world):
    login("teacher")

    assert client.post("/api/session", json={"subjectId": world.other_subject_id}).status_code == 403


def test_scan_image_without_file_is_rejected(client, login):
    login("student")

    resp = client.post("/api/attendance/scan/image", data={}, content_type="multipart/form-data")

    assert resp.status_code == 400


def test_scan_image_with_rendered_qr(client, login, world):
    from src.qr_attendance.qr_attendance.qr.payload import render_png

    code = world.issuer.mint(world.subject_id, late_mode=True)
    login("student3")

    resp = client.post(
        "/api/attendance/scan/image",
        data={"image": (render_png(code), "qr.png")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 201
    assert resp.get_json()["status"] == "late"


def test_history_and_csv_export(client, login, world):
    code = world.issuer.mint(world.subject_id)
    world.checkin.submit(student_id=3, raw_payload=code)

    login("teacher")
    rows = client.get(f"/api/attendance?subjectId={world.subject_id}&date=2026-03-02").get_json()
    assert [r["studentName"] for r in rows] == ["Juan Dela Cruz"]
    assert client.get("/api/attendance?date=yesterday").status_code == 400

    export = client.get("/api/attendance/export")
    assert export.mimetype == "text/csv"
    assert "attachment" in export.headers["Content-Disposition"]
    reader = csv.DictReader(io.StringIO(export.data.decode("utf-8-sig")))
    exported = list(reader)
    assert exported[0]["status"] == "present"
    assert exported[0]["time_in"] == "09:15:00"


def test_current_schedule_for_teacher(client, login):
    login("teacher")

    slot = client.get("/api/schedules/current")

    assert slot.status_code == 200


def test_current_schedule_follows_the_injected_clock(client, login, world):
    login("teacher")

    assert client.get("/api/schedules/current").get_json()["startTime"] == "09:00"

    world.clock.advance(hours=3)
    assert client.get("/api/schedules/current").get_json()["startTime"] == "13:00"

    world.clock.advance(hours=6)
    assert client.get("/api/schedules/current").get_json() is None


def test_session_lifetime_is_configured_at_startup(app):
    from datetime import timedelta

    assert app.permanent_session_lifetime == timedelta(days=7)
