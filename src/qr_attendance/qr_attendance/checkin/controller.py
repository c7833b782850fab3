from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.decorators import roles_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from ..qr.payload import decode_image

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _submit(raw_payload: str):
        student_id = int(session["user_id"])
        try:
            result = container.checkin_service.submit(student_id=student_id, raw_payload=raw_payload)
        except Exception:
            logger.exception("Check-in failed for student %s", student_id)
            return jsonify({"status": "error", "message": "System error while recording attendance"}), 500
        return jsonify(result.to_dict()), result.http_status

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @roles_required(Role.STUDENT)
    def attendance_scan():
        data = request.get_json(silent=True) or {}
        return _submit(str(data.get("qrCode") or ""))

    @app.route("/api/attendance/scan/image", methods=["POST"], endpoint="attendance_scan_image")
    @roles_required(Role.STUDENT)
    def attendance_scan_image():
        if "image" not in request.files:
            return jsonify({"status": "error", "message": "Image file is required"}), 400

        try:
            raw_payload = decode_image(request.files["image"].stream)
        except ValidationError as e:
            return jsonify({"status": "error", "message": str(e)}), 400
        return _submit(raw_payload)
