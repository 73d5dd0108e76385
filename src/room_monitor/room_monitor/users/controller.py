from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.validators import require_positive_id
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/session", methods=["POST"], endpoint="session_open")
    def session_open():
        """Store the identity handed over by the host application's login.

        The role is taken as given, so this route must only be reachable from the
        host login backend, never from the browser. The backend token stays the
        authority for every room operation.
        """
        data = request.get_json(silent=True) or {}
        try:
            user_id = require_positive_id(data.get("user_id"), "user_id")
            role = data.get("role")
            if role not in {r.value for r in Role}:
                raise ValidationError(f"Rol inválido: {role!r}")
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        container.sessions.discard(user_id)
        session.clear()
        session["user_id"] = user_id
        session["username"] = str(data.get("username") or "")
        session["role"] = role
        session["token"] = data.get("token") or None
        logger.info("Session opened for user %s (%s)", user_id, role)
        return jsonify({"success": True, "user": {"id": user_id, "username": session["username"], "role": role}})

    @app.route("/api/session", methods=["GET"], endpoint="session_current")
    def session_current():
        if "user_id" not in session:
            return jsonify({"authenticated": False}), 401
        return jsonify(
            {
                "authenticated": True,
                "user": {"id": session["user_id"], "username": session.get("username"), "role": session.get("role")},
            }
        )

    @app.route("/api/session", methods=["DELETE"], endpoint="session_close")
    def session_close():
        user_id = session.get("user_id")
        if user_id is not None:
            container.sessions.discard(int(user_id))
        session.clear()
        return jsonify({"success": True})
