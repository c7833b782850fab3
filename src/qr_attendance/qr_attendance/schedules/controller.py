from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.decorators import login_required, roles_required
from ..common.validators import require_positive_int
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/schedules/teacher", methods=["GET"], endpoint="teacher_schedules")
    @roles_required(Role.TEACHER)
    def teacher_schedules():
        schedules = container.schedule_service.list_for_teacher(int(session["user_id"]))
        return jsonify([s.to_dict() for s in schedules])

    @app.route("/api/schedules/current", methods=["GET"], endpoint="current_schedule")
    @roles_required(Role.TEACHER)
    def current_schedule():
        current = container.schedule_service.current_or_next(
            teacher_id=int(session["user_id"]),
            now=container.clock(),
        )
        return jsonify(current.to_dict() if current else None)

    @app.route("/api/subjects/<int:subject_id>/schedules", methods=["GET"], endpoint="subject_schedules")
    @login_required
    def subject_schedules(subject_id: int):
        schedules = container.schedule_service.list_for_subject(subject_id)
        return jsonify([s.to_dict() for s in schedules])

    @app.route("/api/schedules", methods=["POST"], endpoint="schedule_create")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def schedule_create():
        data = request.get_json(silent=True) or {}
        try:
            schedule = container.schedule_service.create(
                role=Role(session["role"]),
                user_id=int(session["user_id"]),
                subject_id=require_positive_int(data.get("subjectId"), "subjectId"),
                day_of_week=data.get("dayOfWeek", ""),
                start_time=data.get("startTime", ""),
                end_time=data.get("endTime", ""),
                room=data.get("room", ""),
            )
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"message": str(e)}), 400
        except Exception:
            logger.exception("Creating schedule failed")
            return jsonify({"message": "System error while creating the schedule"}), 500
        return jsonify(schedule.to_dict()), 201

    @app.route("/api/schedules/<int:schedule_id>", methods=["DELETE"], endpoint="schedule_delete")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def schedule_delete(schedule_id: int):
        try:
            container.schedule_service.delete(
                role=Role(session["role"]),
                user_id=int(session["user_id"]),
                schedule_id=schedule_id,
            )
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"message": str(e)}), 404
        except Exception:
            logger.exception("Deleting schedule %s failed", schedule_id)
            return jsonify({"message": "System error while deleting the schedule"}), 500
        return "", 204
