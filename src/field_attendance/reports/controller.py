from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, error_response, login_required, to_json
from ..core.exceptions import DomainError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/employee/logs", methods=["GET"], endpoint="employee_logs")
    @login_required
    def employee_logs():
        employee_arg = request.args.get("employee_id", "")
        from_arg = request.args.get("from_date", "")
        to_arg = request.args.get("to_date", "")
        if not from_arg or not to_arg:
            return error_response(ValidationError("Missing required parameters"))

        try:
            employee_id = int(employee_arg) if employee_arg else current_user_id()
            start = parse_iso_date(from_arg)
            end = parse_iso_date(to_arg)
        except ValueError:
            return error_response(ValidationError("employee_id must be a number and dates YYYY-MM-DD"))

        try:
            report = container.log_service.daily_logs(
                viewer_id=current_user_id(),
                viewer_role=current_role(),
                employee_id=employee_id,
                start_date=start,
                end_date=end,
            )
        except DomainError as e:
            return error_response(e)

        logs = [
            {
                "date": d.work_date,
                "total_minutes": d.total_minutes,
                "total_hours": d.total_hours,
                "total_distance": d.total_distance,
                "check_in_time": d.first_check_in.strftime("%H:%M") if d.first_check_in else None,
                "check_out_time": d.last_check_out.strftime("%H:%M") if d.last_check_out else None,
                "check_in_count": d.check_in_count,
            }
            for d in report.days
        ]
        return jsonify(
            {
                "success": True,
                "employee_id": report.employee_id,
                "employee_name": report.employee_name,
                "source": report.source,
                "logs": to_json(logs),
                "total_days": report.total_days,
                "total_hours": report.total_hours,
                "total_distance": report.total_distance,
                "average_hours_per_day": report.average_hours_per_day,
            }
        )
