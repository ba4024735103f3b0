from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash

from ..common.validators import require_phone
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    manager_id: Optional[int]


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, phone: str, password: str) -> SessionUser:
        try:
            phone = require_phone(phone)
        except ValidationError:
            raise AuthenticationError("Invalid phone number or password") from None

        user = self._users.get_by_phone(phone)
        if not user or not password:
            raise AuthenticationError("Invalid phone number or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME'
            ok = False

        if not ok:
            raise AuthenticationError("Invalid phone number or password")

        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            role=user.role,
            manager_id=user.manager_id,
        )


class AccessPolicy:
    """Who may read whose attendance data.

    Admins see everyone, managers see their direct reports, everybody sees
    themselves.
    """

    def __init__(self, users: UserRepository):
        self._users = users

    def require_can_view(self, *, viewer_id: int, viewer_role: Role, employee_id: int) -> User:
        employee = self._users.get_by_id(employee_id)
        if not employee:
            raise NotFoundError("Employee not found")

        if viewer_role == Role.ADMIN or viewer_id == employee.user_id:
            return employee
        if viewer_role == Role.MANAGER and employee.manager_id == viewer_id:
            return employee
        raise AuthorizationError("You do not have permission to access this employee's data")
