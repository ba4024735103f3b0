from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.http import current_user_id, error_response, json_body, login_required
from ..core.exceptions import DomainError, NotFoundError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        phone = str(data.get("phone", ""))
        password = str(data.get("password", ""))
        remember = bool(data.get("remember_me"))

        try:
            s_user = container.auth_service.authenticate(phone, password)
        except DomainError as e:
            logger.info("Failed login for phone=%s", phone)
            return error_response(e)

        session.clear()
        session.permanent = remember
        app.permanent_session_lifetime = timedelta(days=7)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["manager_id"] = s_user.manager_id

        logger.info("User=%s logged in", s_user.user_id)
        return jsonify(
            {
                "success": True,
                "user": {
                    "user_id": s_user.user_id,
                    "full_name": s_user.full_name,
                    "role": s_user.role.value,
                    "manager_id": s_user.manager_id,
                },
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user = container.users_repo.get_by_id(current_user_id())
        if not user:
            session.clear()
            return error_response(NotFoundError("User not found"))

        return jsonify(
            {
                "success": True,
                "user": {
                    "user_id": user.user_id,
                    "full_name": user.full_name,
                    "phone": user.phone,
                    "email": user.email,
                    "role": user.role.value,
                    "manager_id": user.manager_id,
                    "is_active": user.is_active,
                },
            }
        )
