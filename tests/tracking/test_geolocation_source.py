from __future__ import annotations

import asyncio

import pytest

from field_attendance.core.enums import GeolocationErrorCode
from field_attendance.core.exceptions import GeolocationError, ValidationError
from field_attendance.tracking.geolocation import DeviceFixSource, PositionOptions


def test_waits_for_the_device_to_report_a_fix(clock):
    source = DeviceFixSource(clock=clock)

    async def scenario():
        pending = asyncio.ensure_future(source.get_current_position(PositionOptions(timeout=1)))
        await asyncio.sleep(0)
        source.report(17.385, 78.4867)
        return await pending

    position = asyncio.run(scenario())
    assert (position.latitude, position.longitude) == (17.385, 78.4867)
    assert position.timestamp == clock.now


def test_stale_fix_is_not_reused_with_zero_maximum_age(clock):
    source = DeviceFixSource(clock=clock)
    source.report(17.385, 78.4867)
    clock.advance(5)

    with pytest.raises(GeolocationError) as excinfo:
        asyncio.run(source.get_current_position(PositionOptions(maximum_age=0, timeout=0.05)))
    assert excinfo.value.code == GeolocationErrorCode.TIMEOUT


def test_recent_fix_is_reused_within_maximum_age(clock):
    source = DeviceFixSource(clock=clock)
    source.report(17.385, 78.4867)
    clock.advance(5)

    position = asyncio.run(source.get_current_position(PositionOptions(maximum_age=10, timeout=0.05)))
    assert position.latitude == 17.385


def test_permission_denial_is_sticky_until_next_fix(clock):
    source = DeviceFixSource(clock=clock)
    source.report_error(1, "User denied Geolocation")
    clock.advance(600)

    with pytest.raises(GeolocationError) as excinfo:
        asyncio.run(source.get_current_position(PositionOptions(timeout=0.05)))
    assert excinfo.value.code == GeolocationErrorCode.PERMISSION_DENIED

    source.report(17.4, 78.5)
    position = asyncio.run(source.get_current_position(PositionOptions(timeout=0.05)))
    assert position.longitude == 78.5


def test_reported_error_wakes_waiting_reader(clock):
    source = DeviceFixSource(clock=clock)

    async def scenario():
        pending = asyncio.ensure_future(source.get_current_position(PositionOptions(timeout=1)))
        await asyncio.sleep(0)
        source.report_error(2, "")
        return await pending

    with pytest.raises(GeolocationError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.code == GeolocationErrorCode.POSITION_UNAVAILABLE


def test_unknown_error_code_is_treated_as_unavailable(clock):
    source = DeviceFixSource(clock=clock)
    error = source.report_error(42, "weird")
    assert error.code == GeolocationErrorCode.POSITION_UNAVAILABLE


def test_out_of_range_fix_is_rejected(clock):
    source = DeviceFixSource(clock=clock)
    with pytest.raises(ValidationError):
        source.report(91, 0)
    assert source.latest is None
