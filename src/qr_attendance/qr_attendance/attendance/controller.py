from __future__ import annotations

import csv
import io
import logging
from typing import Sequence

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.decorators import login_required
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..container import Container
from .model import AttendanceRecord

logger = logging.getLogger(__name__)

_CSV_FIELDS = ["date", "student_id", "student_name", "subject", "status", "time_in", "remarks"]


def register(app: Flask, container: Container) -> None:
    def _history_filters():
        """Parse ?subjectId=&date=&studentId= from the query string."""

        subject_id = request.args.get("subjectId", type=int)
        student_id = request.args.get("studentId", type=int)
        date_s = request.args.get("date")
        work_date = parse_iso_date(date_s) if date_s else None
        return subject_id, work_date, student_id

    def _load_history() -> Sequence[AttendanceRecord]:
        subject_id, work_date, student_id = _history_filters()
        return container.history_service.list_history(
            role=Role(session["role"]),
            user_id=int(session["user_id"]),
            subject_id=subject_id,
            work_date=work_date,
            student_id=student_id,
        )

    def _write_history_csv(*, records: Sequence[AttendanceRecord], filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        for r in records:
            writer.writerow(
                {
                    "date": r.work_date.strftime("%Y-%m-%d"),
                    "student_id": r.student_id,
                    "student_name": r.student_name or "",
                    "subject": r.subject_name or "",
                    "status": r.status.value,
                    "time_in": r.time_in.strftime("%H:%M:%S") if r.time_in else "",
                    "remarks": r.remarks or "",
                }
            )

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        try:
            records = _load_history()
        except ValueError:
            return jsonify({"message": "Invalid date, expected YYYY-MM-DD"}), 400
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403
        return jsonify([r.to_dict() for r in records])

    @app.route("/api/attendance/export", methods=["GET"], endpoint="attendance_export")
    @login_required
    def attendance_export():
        try:
            records = _load_history()
        except ValueError:
            return jsonify({"message": "Invalid date, expected YYYY-MM-DD"}), 400
        except AuthorizationError as e:
            return jsonify({"message": str(e)}), 403

        logger.info("User %s exported %d attendance rows", session["user_id"], len(records))
        return _write_history_csv(records=records, filename="attendance_history.csv")
