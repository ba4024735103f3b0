from __future__ import annotations

import asyncio
from datetime import timedelta

from field_attendance.core.enums import GeolocationErrorCode
from field_attendance.core.exceptions import BackendError, GeolocationError
from field_attendance.tracking.context import TrackingContext
from field_attendance.tracking.sampler import LocationSampler

from fakes import RecordingSleep, ScriptedGeolocation

EMPLOYEE_ID = 3
HYDERABAD = (17.385, 78.4867)


def _open_session(backend, clock) -> int:
    return backend.attendance.add(user_id=EMPLOYEE_ID, check_in_time=clock.now, check_in_reading=0).session_id


def _sampler(backend, gateway, clock, geolocation, context=None, **kwargs):
    sleep = RecordingSleep(clock)
    sampler = LocationSampler(
        user_id=EMPLOYEE_ID,
        session_id=_open_session(backend, clock),
        gateway=gateway,
        geolocation=geolocation,
        context=context or TrackingContext(),
        clock=clock,
        sleep=sleep,
        **kwargs,
    )
    return sampler, sleep


def test_first_tick_samples_then_waits_for_interval(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo)

    async def scenario():
        await sampler.tick()
        clock.advance(60)
        await sampler.tick()
        clock.advance(60)
        await sampler.tick()

    asyncio.run(scenario())
    assert geo.calls == 2
    assert sampler.samples_recorded == 2
    assert len(backend.locations.samples) == 2


def test_samples_are_monotonic_in_time(backend, gateway, clock):
    geo = ScriptedGeolocation((17.0, 78.0), (17.01, 78.01), (17.02, 78.02), clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo)

    async def scenario():
        for _ in range(3):
            await sampler.tick()
            clock.advance(120)

    asyncio.run(scenario())
    times = [s.captured_at for s in backend.locations.list_for_session(sampler.session_id)]
    assert times == sorted(times)
    assert len(times) == 3


def test_geolocation_options_ask_for_a_fresh_high_accuracy_fix(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo)

    asyncio.run(sampler.tick())
    options = geo.options[0]
    assert options.enable_high_accuracy is True
    assert options.maximum_age == 0
    assert options.timeout == 15


def test_permission_denied_stops_sampling_without_retry(backend, gateway, clock):
    denied = GeolocationError(GeolocationErrorCode.PERMISSION_DENIED, "User denied Geolocation")
    geo = ScriptedGeolocation(denied, clock=clock)
    sampler, sleep = _sampler(backend, gateway, clock, geo)

    async def scenario():
        for _ in range(5):
            await sampler.tick()
            clock.advance(120)

    asyncio.run(scenario())
    assert geo.calls == 1
    assert sleep.delays == []
    assert sampler.permission_denied
    assert not sampler.active
    assert backend.locations.samples == []


def test_transient_geolocation_error_retries_once_after_delay(backend, gateway, clock):
    unavailable = GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "no fix")
    geo = ScriptedGeolocation(unavailable, HYDERABAD, clock=clock)
    sampler, sleep = _sampler(backend, gateway, clock, geo, retry_delay=30)

    asyncio.run(sampler.tick())
    assert geo.calls == 2
    assert sleep.delays == [30]
    assert sampler.samples_recorded == 1


def test_two_transient_failures_give_up_until_next_cycle(backend, gateway, clock):
    timeout = GeolocationError(GeolocationErrorCode.TIMEOUT, "timed out")
    geo = ScriptedGeolocation(timeout, timeout, HYDERABAD, clock=clock)
    sampler, sleep = _sampler(backend, gateway, clock, geo, retry_delay=30)

    async def scenario():
        await sampler.tick()
        assert sampler.samples_recorded == 0
        assert sampler.active
        await sampler.tick()

    asyncio.run(scenario())
    assert geo.calls == 3
    assert sleep.delays == [30]
    assert sampler.samples_recorded == 1


def test_persist_failure_retries_once(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    gateway.fail("insert_location_sample", BackendError("insert failed"))
    sampler, sleep = _sampler(backend, gateway, clock, geo, retry_delay=30)

    asyncio.run(sampler.tick())
    assert gateway.count("insert_location_sample") == 2
    assert sleep.delays == [30]
    assert len(backend.locations.samples) == 1


def test_persist_gives_up_after_second_failure(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    gateway.fail("insert_location_sample", BackendError("down"), BackendError("still down"))
    sampler, _ = _sampler(backend, gateway, clock, geo)

    asyncio.run(sampler.tick())
    assert gateway.count("insert_location_sample") == 2
    assert sampler.samples_recorded == 0
    assert sampler.last_sample_at is None
    assert sampler.active


def test_check_in_grace_window_suppresses_sampling(backend, gateway, clock):
    context = TrackingContext()
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo, context=context)
    context.suppress_auto_sample_until(clock.now + timedelta(seconds=30))
    sampler.note_sample(clock.now)

    async def scenario():
        await sampler.tick()
        clock.advance(31)
        await sampler.tick()
        clock.advance(90)
        await sampler.tick()

    asyncio.run(scenario())
    assert geo.calls == 1


def test_no_sampling_while_checkout_in_progress(backend, gateway, clock):
    context = TrackingContext()
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo, context=context)
    context.begin_checkout()

    asyncio.run(sampler.tick())
    assert geo.calls == 0

    context.end_checkout()
    asyncio.run(sampler.tick())
    assert geo.calls == 1


def test_overlapping_ticks_run_one_acquisition(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo)

    async def scenario():
        await asyncio.gather(sampler.tick(), sampler.tick(), sampler.tick())

    asyncio.run(scenario())
    assert geo.calls == 1
    assert len(backend.locations.samples) == 1


def test_scheduler_drives_ticks_and_stop_ends_them(backend, gateway, clock):
    geo = ScriptedGeolocation(HYDERABAD, clock=clock)
    sampler, _ = _sampler(backend, gateway, clock, geo, tick_period=0.01)

    async def scenario():
        sampler.start()
        await asyncio.sleep(0.2)
        clock.advance(120)
        sampler.poke()
        await asyncio.sleep(0.2)
        await sampler.stop()
        calls = geo.calls
        clock.advance(600)
        await asyncio.sleep(0.2)
        return calls

    calls_at_stop = asyncio.run(scenario())
    assert calls_at_stop == 2
    assert geo.calls == calls_at_stop
    assert not sampler.active
