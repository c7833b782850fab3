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
    def _caller():
        return Role(session["role"]), int(session["user_id"])

    @app.route("/api/subjects", methods=["GET"], endpoint="subjects_list")
    @login_required
    def subjects_list():
        role, user_id = _caller()
        subjects = container.subject_service.list_for_user(role=role, user_id=user_id)
        return jsonify([s.to_dict() for s in subjects])

    @app.route("/api/subjects", methods=["POST"], endpoint="subject_create")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def subject_create():
        data = request.get_json(silent=True) or {}
        role, user_id = _caller()
        try:
            teacher_id = data.get("teacherId")
            subject = container.subject_admin_service.create_subject(
                role=role,
                user_id=user_id,
                name=data.get("name", ""),
                code=data.get("code", ""),
                description=data.get("description"),
                teacher_id=require_positive_int(teacher_id, "teacherId") if teacher_id is not None else None,
            )
        except ValidationError as e:
            return jsonify({"message": str(e)}), 400
        except Exception:
            logger.exception("Creating subject failed for user %s", user_id)
            return jsonify({"message": "System error while creating the subject"}), 500
        return jsonify(subject.to_dict()), 201

    @app.route("/api/subjects/<int:subject_id>", methods=["DELETE"], endpoint="subject_delete")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def subject_delete(subject_id: int):
        role, user_id = _caller()
        try:
            container.subject_admin_service.delete_subject(role=role, user_id=user_id, subject_id=subject_id)
        except ValidationError as e:
            return jsonify({"message": str(e)}), 404
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        except Exception:
            logger.exception("Deleting subject %s failed", subject_id)
            return jsonify({"message": "Failed to delete subject"}), 500
        return "", 204

    @app.route("/api/subjects/<int:subject_id>/students", methods=["GET"], endpoint="subject_students")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def subject_students(subject_id: int):
        role, user_id = _caller()
        try:
            students = container.subject_service.roster(role=role, user_id=user_id, subject_id=subject_id)
        except ValidationError as e:
            return jsonify({"message": str(e)}), 404
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        return jsonify([s.to_dict() for s in students])

    @app.route("/api/subjects/<int:subject_id>/enroll", methods=["POST"], endpoint="subject_enroll")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def subject_enroll(subject_id: int):
        data = request.get_json(silent=True) or {}
        role, user_id = _caller()
        try:
            student = container.subject_admin_service.enroll(
                role=role,
                user_id=user_id,
                subject_id=subject_id,
                student_id=require_positive_int(data.get("studentId"), "studentId"),
            )
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"message": str(e)}), 400
        except Exception:
            logger.exception("Enrolling into subject %s failed", subject_id)
            return jsonify({"message": "System error while enrolling the student"}), 500
        return jsonify({"subjectId": subject_id, **student.to_dict()}), 201

    @app.route("/api/teacher/stats", methods=["GET"], endpoint="teacher_stats")
    @roles_required(Role.TEACHER)
    def teacher_stats():
        return jsonify(container.subject_admin_service.teacher_stats(int(session["user_id"])))
