from __future__ import annotations

import asyncio

import pytest

from field_attendance.core.exceptions import InvalidStateError, ValidationError
from field_attendance.tracking.runtime import TrackingRuntime, TrackingSettings
from field_attendance.tracking.state_machine import Coordinates

EMPLOYEE_ID = 3


@pytest.fixture
def runtime(backend, clock):
    rt = TrackingRuntime(
        backend.gateway,
        TrackingSettings(tick_period=60, operation_timeout=2, max_operation_time=5, geolocation_timeout=0.05),
        clock=clock,
    )
    rt.start()
    yield rt
    rt.shutdown()


def test_settings_from_config_dict():
    s = TrackingSettings.from_dict({"SAMPLE_INTERVAL": 60, "RETRY_DELAY": "10"})
    assert s.sample_interval == 60
    assert s.retry_delay == 10
    assert s.operation_timeout == 30
    assert TrackingSettings.from_dict(None) == TrackingSettings()


def test_check_in_status_and_check_out_through_the_loop_thread(runtime, backend, clock):
    session_id = runtime.check_in(EMPLOYEE_ID, "1000", location=Coordinates(17.385, 78.4867))

    status = runtime.status(EMPLOYEE_ID)
    assert status["state"] == "CHECKED_IN"
    assert status["session_id"] == session_id
    assert status["sampling"]["last_sample_at"] == clock.now
    assert status["sampling"]["active"] is True

    clock.advance(minutes=65)
    result = runtime.check_out(EMPLOYEE_ID, 1025)
    assert (result.duration_minutes, result.distance_traveled) == (65, 25)
    assert runtime.status(EMPLOYEE_ID)["sampling"] is None


def test_errors_cross_the_thread_boundary(runtime):
    with pytest.raises(ValidationError):
        runtime.check_in(EMPLOYEE_ID, "")
    with pytest.raises(InvalidStateError):
        runtime.check_out(EMPLOYEE_ID, 10)
    with pytest.raises(ValidationError):
        runtime.report_fix(EMPLOYEE_ID, 100, 0)


def test_open_session_is_recovered_when_user_first_seen(runtime, backend, clock):
    existing = backend.attendance.add(user_id=EMPLOYEE_ID, check_in_time=clock.now, check_in_reading=10)

    status = runtime.status(EMPLOYEE_ID)
    assert status["state"] == "CHECKED_IN"
    assert status["session_id"] == existing.session_id


def test_resume_pokes_sampler_only_while_checked_in(runtime):
    assert runtime.resume(EMPLOYEE_ID) is False
    runtime.check_in(EMPLOYEE_ID, 1)
    assert runtime.resume(EMPLOYEE_ID) is True


def test_device_fix_feeds_the_sampler_source(runtime):
    position = runtime.report_fix(EMPLOYEE_ID, 17.4, 78.5)
    assert (position.latitude, position.longitude) == (17.4, 78.5)
    runtime.report_fix_error(EMPLOYEE_ID, 1, "denied")


def test_concurrent_first_requests_share_one_recovery(gateway, clock):
    gateway.delays["get_open_session"] = 0.1
    rt = TrackingRuntime(
        gateway,
        TrackingSettings(tick_period=60, operation_timeout=2, max_operation_time=5, geolocation_timeout=0.05),
        clock=clock,
    )
    rt.start()
    try:

        async def first_seen_twice():
            return await asyncio.gather(rt._machine_for(EMPLOYEE_ID), rt._machine_for(EMPLOYEE_ID))

        first, second = rt.run(first_seen_twice())
        assert first is second
        assert gateway.count("get_open_session") == 1

        session_id = rt.check_in(EMPLOYEE_ID, 1000)
        status = rt.status(EMPLOYEE_ID)
        assert status["state"] == "CHECKED_IN"
        assert status["session_id"] == session_id
    finally:
        rt.shutdown()


def test_manual_location_goes_through_the_machine(runtime, backend, clock):
    session_id = runtime.check_in(EMPLOYEE_ID, 10)
    clock.advance(100)

    sample = runtime.record_location(EMPLOYEE_ID, session_id, 17.44, 78.35)
    assert (sample.latitude, sample.longitude) == (17.44, 78.35)
    assert runtime.status(EMPLOYEE_ID)["sampling"]["last_sample_at"] == clock.now
    assert backend.locations.latest_for_user(EMPLOYEE_ID).sample_id == sample.sample_id

    with pytest.raises(ValidationError):
        runtime.record_location(EMPLOYEE_ID, session_id + 1, 17.44, 78.35)
