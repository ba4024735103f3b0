from __future__ import annotations

import logging
from datetime import date

from flask import Flask, abort, jsonify, request, send_file

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, error_response, json_body, login_required, to_json
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from ..tracking.state_machine import Coordinates

logger = logging.getLogger(__name__)


def _location_from(data: dict) -> Coordinates | None:
    lat = data.get("latitude")
    lng = data.get("longitude")
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise ValidationError("Both latitude and longitude are required")
    return Coordinates(latitude=lat, longitude=lng)


def register(app: Flask, container: Container) -> None:
    runtime = container.runtime

    @app.route("/api/attendance/status", methods=["GET"], endpoint="attendance_status")
    @login_required
    def status():
        try:
            state = runtime.status(current_user_id())
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, **to_json(state)})

    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="checkin")
    @login_required
    def checkin():
        data = json_body()
        try:
            session_id = runtime.check_in(
                current_user_id(),
                data.get("odometer_reading"),
                photo_ref=data.get("photo_url") or None,
                location=_location_from(data),
            )
        except DomainError as e:
            return error_response(e)

        return jsonify({"success": True, "message": "Checked in successfully", "session_id": session_id}), 201

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="checkout")
    @login_required
    def checkout():
        data = json_body()
        try:
            result = runtime.check_out(
                current_user_id(),
                data.get("odometer_reading"),
                photo_ref=data.get("photo_url") or None,
                location=_location_from(data),
            )
        except DomainError as e:
            return error_response(e)

        summary = result.summary
        return jsonify(
            {
                "success": True,
                "message": "Checked out successfully",
                "session_id": result.session_id,
                "check_out_time": result.check_out_time.isoformat(),
                "duration_minutes": result.duration_minutes,
                "distance_traveled": result.distance_traveled,
                "summary": None
                if summary is None
                else to_json(
                    {
                        "work_date": summary.work_date,
                        "total_minutes": summary.total_minutes,
                        "total_hours": summary.total_hours,
                        "total_distance": summary.total_distance,
                        "first_check_in": summary.first_check_in,
                        "last_check_out": summary.last_check_out,
                        "check_in_count": summary.check_in_count,
                    }
                ),
            }
        )

    @app.route("/api/attendance/resume", methods=["POST"], endpoint="attendance_resume")
    @login_required
    def resume():
        try:
            sampling = runtime.resume(current_user_id())
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "sampling": sampling})

    @app.route("/api/attendance/photo", methods=["POST"], endpoint="attendance_photo")
    @login_required
    def upload_photo():
        upload = request.files.get("photo")
        if upload is None:
            return error_response(ValidationError("No photo uploaded"))
        try:
            url = container.photo_store.save(
                user_id=current_user_id(),
                kind=request.form.get("type", "check-in"),
                stream=upload.stream,
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "url": url}), 201

    @app.route(f"{container.photo_store.url_prefix}/<path:relative>", methods=["GET"], endpoint="attendance_photo_file")
    @login_required
    def photo_file(relative: str):
        path = container.photo_store.resolve(relative)
        if path is None:
            abort(404)
        return send_file(path, mimetype="image/jpeg")

    @app.route("/api/attendance/<int:session_id>/locations", methods=["GET"], endpoint="session_locations")
    @login_required
    def session_locations(session_id: int):
        # Today's part of the route unless the caller asks for all of it.
        day_arg = request.args.get("date", "")
        try:
            if day_arg == "all":
                only_day = None
            elif day_arg:
                only_day = parse_iso_date(day_arg)
            else:
                only_day = date.today()
        except ValueError:
            return error_response(ValidationError("date must be YYYY-MM-DD or 'all'"))

        try:
            samples = container.log_service.session_route(
                viewer_id=current_user_id(),
                viewer_role=current_role(),
                session_id=session_id,
                only_day=only_day,
            )
        except DomainError as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "session_id": session_id,
                "locations": [
                    {
                        "latitude": s.latitude,
                        "longitude": s.longitude,
                        "captured_at": s.captured_at.isoformat(),
                    }
                    for s in samples
                ],
            }
        )
