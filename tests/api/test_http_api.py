from __future__ import annotations

import io

import pytest
from PIL import Image

from field_attendance.container import assemble
from field_attendance.main import create_app
from field_attendance.storage.photo_store import PhotoStore
from field_attendance.tracking.runtime import TrackingSettings


@pytest.fixture
def container(backend, clock, tmp_path):
    return assemble(
        conn=None,
        users_repo=backend.users,
        attendance_repo=backend.attendance,
        summaries_repo=backend.summaries,
        locations_repo=backend.locations,
        photo_store=PhotoStore(tmp_path, clock=clock),
        tracking=TrackingSettings(tick_period=60, operation_timeout=2, max_operation_time=5),
        clock=clock,
    )


@pytest.fixture
def client(container):
    app = create_app(container)
    with app.test_client() as c:
        yield c
    container.runtime.shutdown()


def _login(client, phone="9000000003", password="employee123"):
    return client.post("/api/auth/login", json={"phone": phone, "password": password})


def test_login_logout_and_me(client):
    assert client.get("/api/auth/me").status_code == 401

    bad = _login(client, password="nope")
    assert bad.status_code == 401
    assert bad.get_json()["success"] is False

    ok = _login(client)
    assert ok.status_code == 200
    assert ok.get_json()["user"]["role"] == "employee"

    me = client.get("/api/auth/me").get_json()
    assert me["user"]["phone"] == "9000000003"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_attendance_day_over_http(client, clock):
    _login(client)

    assert client.get("/api/attendance/status").get_json()["state"] == "CHECKED_OUT"

    resp = client.post(
        "/api/attendance/checkin",
        json={"odometer_reading": 1000, "latitude": 17.385, "longitude": 78.4867},
    )
    assert resp.status_code == 201
    session_id = resp.get_json()["session_id"]

    again = client.post("/api/attendance/checkin", json={"odometer_reading": 1000})
    assert again.status_code == 409

    clock.advance(minutes=65)
    out = client.post("/api/attendance/checkout", json={"odometer_reading": 1025})
    body = out.get_json()
    assert out.status_code == 200
    assert body["duration_minutes"] == 65
    assert body["distance_traveled"] == 25
    assert body["summary"]["total_minutes"] == 65

    route = client.get(f"/api/attendance/{session_id}/locations?date=2025-03-10").get_json()
    assert route["locations"][0]["latitude"] == 17.385

    logs = client.get("/api/employee/logs?from_date=2025-03-10&to_date=2025-03-10").get_json()
    assert logs["source"] == "summary"
    assert logs["logs"][0]["total_minutes"] == 65
    assert logs["logs"][0]["check_in_time"] == "09:00"


def test_validation_and_state_errors_map_to_status_codes(client):
    _login(client)
    assert client.post("/api/attendance/checkin", json={}).status_code == 400
    assert client.post("/api/attendance/checkout", json={"odometer_reading": 5}).status_code == 409
    assert client.post("/api/attendance/checkin", json={"odometer_reading": 5, "latitude": 17.0}).status_code == 400


def test_manual_location_update_and_latest_location(client):
    _login(client)
    session_id = client.post("/api/attendance/checkin", json={"odometer_reading": 1}).get_json()["session_id"]

    resp = client.post(
        "/api/employee/location/update",
        json={"attendance_log_id": session_id, "latitude": 17.44, "longitude": 78.35},
    )
    assert resp.status_code == 200

    bad = client.post("/api/employee/location/update", json={"attendance_log_id": 999, "latitude": 1, "longitude": 1})
    assert bad.status_code == 400

    latest = client.get("/api/employee/3/latest-location").get_json()
    assert (latest["latitude"], latest["longitude"]) == (17.44, 78.35)

    assert client.get("/api/employee/4/latest-location").status_code == 403


def test_manager_reads_team_member_logs(client):
    _login(client, phone="9000000002", password="manager123")
    resp = client.get("/api/employee/logs?employee_id=3&from_date=2025-03-01&to_date=2025-03-31")
    assert resp.status_code == 200
    assert resp.get_json()["logs"] == []

    assert client.get("/api/employee/logs?employee_id=4&from_date=2025-03-01&to_date=2025-03-31").status_code == 403
    assert client.get("/api/employee/logs?employee_id=3").status_code == 400


def test_device_report_and_resume(client):
    _login(client)
    fix = client.post("/api/employee/location/report", json={"latitude": 17.4, "longitude": 78.5})
    assert fix.status_code == 200

    err = client.post("/api/employee/location/report", json={"error": {"code": 1, "message": "denied"}})
    assert err.status_code == 200
    assert client.post("/api/employee/location/report", json={"error": "oops"}).status_code == 400

    assert client.post("/api/attendance/resume").get_json()["sampling"] is False


def test_photo_upload_and_download(client):
    _login(client)
    buf = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buf, format="PNG")
    buf.seek(0)

    resp = client.post(
        "/api/attendance/photo",
        data={"type": "check-in", "photo": (buf, "meter.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    url = resp.get_json()["url"]
    assert url.startswith("/photos/meter-readings/3/check-in-")

    assert client.get(url).status_code == 200
    assert client.get("/photos/meter-readings/3/nothing.jpg").status_code == 404
