from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import BackendRejection, TransportError
from ..container import Container
from ..rooms.controller import login_required
from ..users.policy import room_access_denial


def register(app: Flask, container: Container) -> None:
    auth = login_required(container)

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @auth
    async def attendance_summary():
        denial = room_access_denial(g.monitor.user)
        if denial:
            return jsonify({"success": False, "message": denial}), 403
        view = g.monitor.stats_view
        if view.summary is None:
            await view.refresh()
        if view.summary is None:
            return jsonify({"success": False, "message": view.last_error or "Sin información"}), 502
        return jsonify({**view.summary.to_dict(), "recomputeCount": view.recompute_count})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @auth
    async def attendance_history():
        limit = request.args.get("limit", DEFAULT_HISTORY_LIMIT, type=int)
        try:
            rows = await g.monitor.aggregator.get_history_ui(limit=max(limit, 1))
        except (TransportError, BackendRejection) as e:
            return jsonify({"success": False, "message": str(e)}), 502
        return jsonify({"success": True, "history": rows})
