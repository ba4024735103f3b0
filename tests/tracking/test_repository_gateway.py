from __future__ import annotations

import asyncio
from datetime import date

import mysql.connector
import pytest

from field_attendance.attendance.model import CheckOutFields
from field_attendance.core.exceptions import (
    BackendError,
    NotFoundError,
    OpenSessionExistsError,
    SessionAlreadyClosedError,
)

EMPLOYEE_ID = 3


def test_open_session_conflict_passes_through(backend, clock):
    gw = backend.gateway

    async def scenario():
        await gw.create_session(EMPLOYEE_ID, clock.now, 10)
        await gw.create_session(EMPLOYEE_ID, clock.now, 11)

    with pytest.raises(OpenSessionExistsError):
        asyncio.run(scenario())


def test_missing_rows_raise_not_found(backend, clock):
    gw = backend.gateway
    fields = CheckOutFields(check_out_time=clock.now, check_out_reading=1, duration_minutes=1, distance_traveled=0)

    with pytest.raises(NotFoundError):
        asyncio.run(gw.get_session(404))
    with pytest.raises(NotFoundError):
        asyncio.run(gw.update_session(404, fields))
    with pytest.raises(NotFoundError):
        asyncio.run(gw.set_user_active(404, True))
    asyncio.run(gw.delete_session(404))


def test_closed_session_is_never_updated_twice(backend, clock):
    gw = backend.gateway
    first = CheckOutFields(check_out_time=clock.now, check_out_reading=40, duration_minutes=30, distance_traveled=30)
    second = CheckOutFields(check_out_time=clock.now, check_out_reading=99, duration_minutes=99, distance_traveled=89)

    async def scenario():
        session_id = await gw.create_session(EMPLOYEE_ID, clock.now, 10)
        await gw.update_session(session_id, first)
        with pytest.raises(SessionAlreadyClosedError):
            await gw.update_session(session_id, second)
        return session_id

    stored = backend.attendance.get_by_id(asyncio.run(scenario()))
    assert stored.duration_minutes == 30
    assert stored.check_out_reading == 40


def test_driver_errors_become_backend_errors(backend, clock, monkeypatch):
    def broken(*args, **kwargs):
        raise mysql.connector.errors.OperationalError("Lost connection to MySQL server")

    monkeypatch.setattr(backend.attendance, "get_open_for_user", broken)
    with pytest.raises(BackendError):
        asyncio.run(backend.gateway.get_open_session(EMPLOYEE_ID))


def test_sessions_for_day_uses_calendar_bounds(backend, clock):
    backend.attendance.add(user_id=EMPLOYEE_ID, check_in_time=clock.now, check_in_reading=1)
    sessions = asyncio.run(backend.gateway.list_sessions_for_day(EMPLOYEE_ID, date(2025, 3, 10)))
    assert len(sessions) == 1
    assert asyncio.run(backend.gateway.list_sessions_for_day(EMPLOYEE_ID, date(2025, 3, 11))) == []
