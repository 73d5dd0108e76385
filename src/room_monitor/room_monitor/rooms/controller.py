from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Optional

from flask import Flask, g, jsonify, request, session

from ..common.datetime_utils import now_utc, parse_optional_datetime, to_iso
from ..core.enums import AccessKind, Role
from ..core.exceptions import BackendRejection, TransportError, ValidationError
from ..access.model import state_to_dict
from ..container import Container
from ..schedules.windows import format_time_remaining, validate_schedule_time
from ..users.model import User
from .mapping import entries_from_payload
from .model import EntryFilters

logger = logging.getLogger(__name__)


def login_required(container: Container):
    """Resolve the caller's MonitorSession into ``g.monitor`` or answer 401."""

    def decorator(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Debes iniciar sesión"}), 401

            user = User.from_session(session)
            g.monitor = container.sessions.get(user, session.get("token"))
            container.bus.pump()
            await g.monitor.ensure_initialized()
            g.monitor.release()
            try:
                return await view(*args, **kwargs)
            finally:
                await g.monitor.settle()
                g.monitor.hold()

        return wrapper

    return decorator


def _body_time(field: str = "at_time") -> Optional[datetime]:
    data = request.get_json(silent=True) or {}
    try:
        return parse_optional_datetime(data.get(field))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Fecha inválida en '{field}': {e}") from e


def _query_date(field: str) -> Optional[date]:
    value = request.args.get(field)
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Fecha inválida en '{field}': use AAAA-MM-DD") from None


def _entry_filters() -> EntryFilters:
    active = request.args.get("active")
    if active not in (None, "", "true", "false"):
        raise ValidationError("active debe ser 'true' o 'false'")
    return EntryFilters(
        user_name=request.args.get("user_name") or None,
        room=request.args.get("room", type=int),
        active=None if not active else active == "true",
        date_from=_query_date("from"),
        date_to=_query_date("to"),
        document=request.args.get("document") or None,
        page=request.args.get("page", type=int),
    )


def register(app: Flask, container: Container) -> None:
    auth = login_required(container)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"success": False, "message": str(e)}), 400

    @app.route("/api/rooms/<int:room_id>/access", methods=["GET"], endpoint="room_access")
    @auth
    async def room_access(room_id: int):
        info = await g.monitor.controller.check_access(room_id)
        return jsonify({**info.to_dict(), "state": g.monitor.controller.state.to_dict()})

    @app.route("/api/rooms/<int:room_id>/validate", methods=["POST"], endpoint="room_validate")
    @auth
    async def room_validate(room_id: int):
        data = request.get_json(silent=True) or {}
        try:
            kind = AccessKind(data.get("access_type", AccessKind.ENTRY.value))
        except ValueError:
            raise ValidationError("access_type debe ser 'entry' o 'exit'") from None
        decision = await g.monitor.controller.validate_real_time_access(room_id, kind, _body_time("access_datetime"))
        return jsonify(decision.to_dict())

    @app.route("/api/rooms/<int:room_id>/entry", methods=["POST"], endpoint="room_entry")
    @auth
    async def room_entry(room_id: int):
        result = await g.monitor.controller.handle_entry(room_id, _body_time("entry_time"))
        status = 200 if result.success else 409 if result.skipped else 400
        return jsonify({**result.to_dict(), "state": state_to_dict(g.monitor.machine.state)}), status

    @app.route("/api/rooms/<int:room_id>/exit", methods=["POST"], endpoint="room_exit")
    @auth
    async def room_exit(room_id: int):
        result = await g.monitor.controller.handle_exit(room_id, _body_time("exit_time"))
        status = 200 if result.success else 409 if result.skipped else 400
        return jsonify({**result.to_dict(), "state": state_to_dict(g.monitor.machine.state)}), status

    @app.route("/api/rooms/<int:room_id>/schedules", methods=["GET"], endpoint="room_schedules")
    @auth
    async def room_schedules(room_id: int):
        now = now_utc()
        info = await g.monitor.controller.get_schedules_for_room(room_id)
        rows = []
        for s in await g.monitor.validator.get_my_schedules():
            if s.room_id != room_id:
                continue
            window = validate_schedule_time(s.start_datetime, s.end_datetime, now)
            rows.append(
                {
                    **s.to_dict(),
                    "status": "active" if window.is_active else "upcoming" if window.is_upcoming else "expired",
                    "message": window.reason,
                    "remaining": format_time_remaining(window.minutes_until_end)
                    if window.minutes_until_end is not None
                    else None,
                }
            )
        return jsonify(
            {
                "hasActiveSchedule": info.has_active_schedule,
                "message": info.message,
                "schedule": info.schedule.to_dict() if info.schedule else None,
                "schedules": rows,
                "generatedAt": to_iso(now),
            }
        )

    @app.route("/api/rooms/entries", methods=["GET"], endpoint="room_entries")
    @auth
    async def room_entries():
        """Entries of every user, for admin tooling."""
        if g.monitor.user.role is not Role.ADMIN:
            return jsonify({"success": False, "message": "Solo los administradores pueden ver todas las entradas"}), 403
        filters = _entry_filters()
        try:
            entries = entries_from_payload(await g.monitor.backend.get_all_entries(filters))
        except (TransportError, BackendRejection) as e:
            return jsonify({"success": False, "message": str(e)}), 502
        return jsonify({"success": True, "count": len(entries), "entries": [e.to_dict() for e in entries]})

    @app.route("/api/rooms/active-entry", methods=["GET"], endpoint="room_active_entry")
    @auth
    async def room_active_entry():
        if request.args.get("refresh"):
            await g.monitor.machine.refresh()
        return jsonify(state_to_dict(g.monitor.machine.state))

    @app.route("/api/view/visibility", methods=["POST"], endpoint="view_visibility")
    @auth
    async def view_visibility():
        data = request.get_json(silent=True) or {}
        if data.get("focus"):
            g.monitor.on_focus()
        else:
            g.monitor.on_visibility_change(bool(data.get("visible", True)))
        return jsonify({"success": True})
