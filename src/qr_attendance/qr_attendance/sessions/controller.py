from __future__ import annotations

import logging

from flask import Flask, jsonify, request, send_file, session

from ..common.decorators import roles_required
from ..common.validators import require_positive_int
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, DomainError, InvalidTransitionError
from ..container import Container
from ..qr.payload import render_png

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    service = container.session_service

    def _body(s, **extra):
        data = {"session": s.to_dict() if s else None, "stats": s.stats() if s else None}
        data.update(extra)
        return jsonify(data)

    def _run(action, *args, **kwargs):
        """Call a session transition and map domain errors to JSON responses."""

        teacher_id = int(session["user_id"])
        try:
            return action(teacher_id, *args, **kwargs), None
        except AuthorizationError as e:
            return None, (jsonify({"message": str(e)}), 403)
        except InvalidTransitionError as e:
            return None, (jsonify({"message": str(e)}), 409)
        except DomainError as e:
            return None, (jsonify({"message": str(e)}), 400)
        except Exception:
            logger.exception("Session action %s failed for teacher %s", action.__name__, teacher_id)
            return None, (jsonify({"message": "System error, please try again"}), 500)

    def _simple(action):
        s, error = _run(action)
        return error or _body(s)

    @app.route("/api/session", methods=["GET"], endpoint="session_current")
    @roles_required(Role.TEACHER)
    def session_current():
        return _simple(service.current)

    @app.route("/api/session", methods=["POST"], endpoint="session_open")
    @roles_required(Role.TEACHER)
    def session_open():
        data = request.get_json(silent=True) or {}

        def _open(teacher_id):
            subject_id = require_positive_int(data.get("subjectId"), "subjectId")
            return service.open(teacher_id=teacher_id, subject_id=subject_id)

        return _simple(_open)

    @app.route("/api/session/start", methods=["POST"], endpoint="session_start")
    @roles_required(Role.TEACHER)
    def session_start():
        return _simple(service.start)

    @app.route("/api/session/pause", methods=["POST"], endpoint="session_pause")
    @roles_required(Role.TEACHER)
    def session_pause():
        return _simple(service.pause)

    @app.route("/api/session/resume", methods=["POST"], endpoint="session_resume")
    @roles_required(Role.TEACHER)
    def session_resume():
        return _simple(service.resume)

    @app.route("/api/session/end", methods=["POST"], endpoint="session_end")
    @roles_required(Role.TEACHER)
    def session_end():
        result, error = _run(service.end)
        if error:
            return error
        s, summary = result
        return _body(s, summary=summary.to_dict())

    @app.route("/api/session/new", methods=["POST"], endpoint="session_new")
    @roles_required(Role.TEACHER)
    def session_new():
        return _simple(service.new_session)

    @app.route("/api/session/regenerate", methods=["POST"], endpoint="session_regenerate")
    @roles_required(Role.TEACHER)
    def session_regenerate():
        return _simple(service.regenerate)

    @app.route("/api/session/poll", methods=["POST"], endpoint="session_poll")
    @roles_required(Role.TEACHER)
    def session_poll():
        return _simple(service.poll)

    @app.route("/api/session/edit", methods=["POST"], endpoint="session_edit")
    @roles_required(Role.TEACHER)
    def session_edit():
        return _simple(service.begin_edit)

    @app.route("/api/session/edit/cancel", methods=["POST"], endpoint="session_edit_cancel")
    @roles_required(Role.TEACHER)
    def session_edit_cancel():
        return _simple(service.cancel_edit)

    @app.route("/api/session/save", methods=["POST"], endpoint="session_save")
    @roles_required(Role.TEACHER)
    def session_save():
        result, error = _run(service.save_edits)
        if error:
            return error
        s, summary = result
        return _body(s, summary=summary.to_dict())

    @app.route("/api/session/status", methods=["POST"], endpoint="session_status")
    @roles_required(Role.TEACHER)
    def session_status():
        data = request.get_json(silent=True) or {}
        try:
            status = AttendanceStatus(data.get("status"))
        except ValueError:
            return jsonify({"message": "Unknown attendance status"}), 400

        def _set_status(teacher_id):
            student_id = require_positive_int(data.get("studentId"), "studentId")
            return service.set_status(teacher_id, student_id=student_id, status=status)

        return _simple(_set_status)

    @app.route("/api/session/qr.png", methods=["GET"], endpoint="session_qr_image")
    @roles_required(Role.TEACHER)
    def session_qr_image():
        base_url = app.config.get("PUBLIC_BASE_URL") or request.host_url
        payload = service.qr_payload(int(session["user_id"]), base_url=base_url)
        if not payload:
            return jsonify({"message": "No active session"}), 404
        return send_file(render_png(payload), mimetype="image/png")
