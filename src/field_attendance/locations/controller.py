from __future__ import annotations

import logging

from flask import Flask, jsonify

from ..common.http import current_role, current_user_id, error_response, json_body, login_required
from ..core.exceptions import DomainError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    runtime = container.runtime

    @app.route("/api/employee/location/report", methods=["POST"], endpoint="location_report")
    @login_required
    def report():
        """Position fix (or geolocation failure) pushed by the employee's device.

        Body: ``{"latitude": .., "longitude": ..}`` or
        ``{"error": {"code": 1|2|3, "message": ".."}}`` with the browser's
        GeolocationPositionError codes.
        """

        data = json_body()
        user_id = current_user_id()
        error = data.get("error")
        try:
            if error is not None:
                if not isinstance(error, dict) or "code" not in error:
                    raise ValidationError("error must be an object with a code")
                try:
                    code = int(error["code"])
                except (TypeError, ValueError):
                    raise ValidationError("error code must be a number") from None
                runtime.report_fix_error(user_id, code, str(error.get("message", "")))
                return jsonify({"success": True})

            position = runtime.report_fix(user_id, data.get("latitude"), data.get("longitude"))
        except DomainError as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "latitude": position.latitude,
                "longitude": position.longitude,
                "timestamp": position.timestamp.isoformat(),
            }
        )

    @app.route("/api/employee/location/update", methods=["POST"], endpoint="location_update")
    @login_required
    def update():
        data = json_body()
        raw_id = data.get("attendance_log_id")
        if raw_id is None:
            return error_response(ValidationError("Missing required fields"))
        try:
            session_id = int(raw_id)
        except (TypeError, ValueError):
            return error_response(ValidationError("attendance_log_id must be a number"))

        try:
            sample = runtime.record_location(current_user_id(), session_id, data.get("latitude"), data.get("longitude"))
        except DomainError as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "message": "Location updated successfully",
                "location_id": sample.sample_id,
                "captured_at": sample.captured_at.isoformat(),
            }
        )

    @app.route("/api/employee/<int:employee_id>/latest-location", methods=["GET"], endpoint="latest_location")
    @login_required
    def latest_location(employee_id: int):
        try:
            sample = container.log_service.latest_location(
                viewer_id=current_user_id(),
                viewer_role=current_role(),
                employee_id=employee_id,
            )
        except DomainError as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "employee_id": employee_id,
                "session_id": sample.session_id,
                "latitude": sample.latitude,
                "longitude": sample.longitude,
                "captured_at": sample.captured_at.isoformat(),
            }
        )
