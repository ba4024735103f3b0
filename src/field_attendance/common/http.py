from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Any

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    OperationTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (BackendError, 502),
    (OperationTimeoutError, 504),
)


def status_for(exc: DomainError) -> int:
    for kind, status in _STATUS:
        if isinstance(exc, kind):
            return status
    return 400


def error_response(exc: DomainError):
    status = status_for(exc)
    body: dict[str, Any] = {"success": False, "message": str(exc)}
    if isinstance(exc, BackendError):
        body["retry"] = True
    if isinstance(exc, OperationTimeoutError):
        body["may_have_succeeded"] = True
    if status >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.path, status, exc)
    return jsonify(body), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def to_json(value: Any) -> Any:
    """Dates and datetimes as ISO strings, recursively."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    return Role(session.get("role", Role.EMPLOYEE.value))
