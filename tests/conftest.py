from __future__ import annotations

import os
from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

os.environ.setdefault("APP_ENV", "testing")

from field_attendance.core.enums import Role
from field_attendance.users.model import User

from fakes import Backend, FakeClock, ScriptedGateway

ADMIN_ID = 1
MANAGER_ID = 2
EMPLOYEE_ID = 3
OTHER_EMPLOYEE_ID = 4


def _user(user_id, name, phone, password, role, manager_id=None) -> User:
    return User(
        user_id=user_id,
        full_name=name,
        phone=phone,
        password_hash=generate_password_hash(password),
        role=role,
        manager_id=manager_id,
    )


@pytest.fixture
def users() -> list[User]:
    return [
        _user(ADMIN_ID, "Admin", "9000000001", "admin123", Role.ADMIN),
        _user(MANAGER_ID, "Manager", "9000000002", "manager123", Role.MANAGER),
        _user(EMPLOYEE_ID, "Ravi Kumar", "9000000003", "employee123", Role.EMPLOYEE, MANAGER_ID),
        _user(OTHER_EMPLOYEE_ID, "Sita Devi", "9000000004", "employee123", Role.EMPLOYEE),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 9, 0, 0))


@pytest.fixture
def backend(clock, users) -> Backend:
    return Backend(clock, users)


@pytest.fixture
def gateway(backend) -> ScriptedGateway:
    return ScriptedGateway(backend.gateway)
