from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.serialization import to_jsonable
from ..common.validators import require_date
from ..container import Container
from ..core.exceptions import BatchError, DomainError, InvalidArgument, NotFound


def _ok(data, status: int = 200):
    return jsonify({"success": True, "data": to_jsonable(data)}), status


def _int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidArgument(f"{name} must be an integer")


def _float_arg(name: str) -> Optional[float]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidArgument(f"{name} must be a number")


def _records_payload() -> list:
    data = request.get_json(silent=True) or {}
    records = data.get("attendanceRecords", data.get("records")) if isinstance(data, dict) else data
    if not isinstance(records, list) or not records:
        raise InvalidArgument("Valid attendance records are required")
    return records


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "unauthenticated", "message": "Login required"}), 401
            return view(*args, **kwargs)

        return wrapper

    def current_actor() -> int:
        return int(session["user_id"])

    @app.errorhandler(BatchError)
    def handle_batch_error(e: BatchError):
        cause_code = getattr(e.cause, "code", "store_error")
        return (
            jsonify(
                {
                    "success": False,
                    "error": e.code,
                    "cause": cause_code,
                    "index": e.index,
                    "message": str(e),
                    "written": False,
                }
            ),
            400 if isinstance(e.cause, DomainError) else 500,
        )

    @app.errorhandler(NotFound)
    def handle_not_found(e: NotFound):
        return jsonify({"success": False, "error": e.code, "message": str(e), "written": False}), 404

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"success": False, "error": e.code, "message": str(e), "written": False}), 400

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def mark():
        data = request.get_json(silent=True) or {}
        record = container.attendance_service.mark(data, recorded_by=current_actor())
        return _ok(record, 201)

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="attendance_mark_bulk")
    @login_required
    def mark_bulk():
        records = container.attendance_service.mark_bulk(_records_payload(), recorded_by=current_actor())
        return jsonify({"success": True, "count": len(records), "data": to_jsonable(records)}), 201

    @app.route("/api/attendance/batch", methods=["POST"], endpoint="attendance_mark_each")
    @login_required
    def mark_each():
        results = container.attendance_service.mark_each(_records_payload(), recorded_by=current_actor())
        failed = sum(1 for r in results if not r.ok)
        body = {
            "success": failed == 0,
            "count": len(results) - failed,
            "failed": failed,
            "data": to_jsonable(results),
        }
        return jsonify(body), (201 if failed == 0 else 207)

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="attendance_get")
    @login_required
    def get_record(attendance_id: int):
        return _ok(container.attendance_service.get(attendance_id))

    @app.route("/api/attendance/<int:attendance_id>/status", methods=["PUT"], endpoint="attendance_update_status")
    @login_required
    def update_status(attendance_id: int):
        data = request.get_json(silent=True) or {}
        record = container.change_notifier.update_with_notification(
            attendance_id,
            data.get("status"),
            data.get("reason"),
            current_actor(),
        )
        return _ok(record)

    @app.route("/api/attendance/class/<int:class_id>", methods=["GET"], endpoint="attendance_class_date")
    @login_required
    def class_date(class_id: int):
        on = require_date(request.args.get("date"), "date")
        records = container.attendance_service.find_by_class_and_date(class_id, on)
        snapshot = container.statistics_service.get_class_date_snapshot(class_id, on)
        return jsonify(
            {
                "success": True,
                "count": len(records),
                "data": to_jsonable(records),
                "summary": to_jsonable(snapshot),
            }
        )

    @app.route(
        "/api/attendance/class/<int:class_id>/session/<int:academic_session_id>",
        methods=["GET"],
        endpoint="attendance_class_session",
    )
    @login_required
    def class_session(class_id: int, academic_session_id: int):
        return _ok(container.attendance_service.find_by_class_and_session(class_id, academic_session_id))

    @app.route("/api/attendance/student/<int:student_id>", methods=["GET"], endpoint="attendance_student_range")
    @login_required
    def student_range(student_id: int):
        start = require_date(request.args.get("start"), "start")
        end = require_date(request.args.get("end"), "end")
        return _ok(container.attendance_service.find_by_student_and_range(student_id, start, end))

    @app.route(
        "/api/attendance/class/<int:class_id>/consecutive-absences",
        methods=["GET"],
        endpoint="attendance_consecutive_absences",
    )
    @login_required
    def consecutive_absences(class_id: int):
        return _ok(container.statistics_service.get_consecutive_absences(class_id, _int_arg("min_days")))

    @app.route("/api/attendance/class/<int:class_id>/stats", methods=["GET"], endpoint="attendance_class_stats")
    @login_required
    def class_stats(class_id: int):
        start = require_date(request.args.get("start"), "start")
        end = require_date(request.args.get("end"), "end")
        return _ok(container.statistics_service.get_class_attendance_stats(class_id, start, end))

    @app.route("/api/attendance/student/<int:student_id>/monthly", methods=["GET"], endpoint="attendance_monthly")
    @login_required
    def student_monthly(student_id: int):
        year = _int_arg("year")
        month = _int_arg("month")
        if year is None or month is None:
            raise InvalidArgument("year and month are required")
        return _ok(container.statistics_service.get_student_monthly_attendance(student_id, year, month))

    @app.route("/api/attendance/class/<int:class_id>/issues", methods=["GET"], endpoint="attendance_issues")
    @login_required
    def issues(class_id: int):
        academic_session_id = _int_arg("academic_session_id")
        if academic_session_id is None:
            raise InvalidArgument("academic_session_id is required")
        return _ok(
            container.statistics_service.get_attendance_issues(class_id, academic_session_id, _float_arg("threshold"))
        )

    @app.route("/api/attendance/student/<int:student_id>/report", methods=["GET"], endpoint="attendance_student_report")
    @login_required
    def student_report(student_id: int):
        academic_session_id = _int_arg("academic_session_id")
        if academic_session_id is None:
            raise InvalidArgument("academic_session_id is required")
        return _ok(container.statistics_service.get_student_report(student_id, academic_session_id))

    @app.route("/api/attendance/summary/weekly", methods=["GET"], endpoint="attendance_weekly_summary")
    @login_required
    def weekly_summary():
        start = require_date(request.args.get("start"), "start")
        end = require_date(request.args.get("end"), "end")
        return _ok(container.statistics_service.get_weekly_summary(start, end, _int_arg("academic_session_id")))

    @app.route("/api/attendance/summary/class", methods=["GET"], endpoint="attendance_class_summary")
    @login_required
    def class_summary():
        academic_session_id = _int_arg("academic_session_id")
        if academic_session_id is None:
            raise InvalidArgument("academic_session_id is required")
        return _ok(container.statistics_service.get_class_session_summary(academic_session_id))

    @app.route("/api/attendance/summary/daily", methods=["GET"], endpoint="attendance_daily_summary")
    @login_required
    def daily_summary():
        raw = request.args.get("date")
        on = require_date(raw, "date") if raw else date.today()
        return _ok(container.statistics_service.get_daily_summary(on))

    @app.route("/api/attendance/trend/daily", methods=["GET"], endpoint="attendance_daily_trend")
    @login_required
    def daily_trend():
        start = require_date(request.args.get("start"), "start")
        end = require_date(request.args.get("end"), "end")
        return _ok(container.statistics_service.get_daily_trend(start, end))
