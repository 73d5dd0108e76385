from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module
from config.logging_config import setup_logging

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .rooms.controller import register as register_rooms
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        json_output=bool(getattr(settings, "LOG_JSON", False)),
    )

    if container is None:
        container = build_container(
            api_base_url=getattr(settings, "API_BASE_URL"),
            api_timeout=float(getattr(settings, "API_TIMEOUT", 10.0)),
            redis_url=getattr(settings, "REDIS_URL", "") or None,
            relay_prefix=getattr(settings, "RELAY_PREFIX", "room-monitor"),
            timezone=getattr(settings, "TIMEZONE", None),
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", 5)),
            reload_min_interval=float(getattr(settings, "RELOAD_MIN_INTERVAL", 1.0)),
        )
    app.extensions["room_monitor"] = container

    register_users(app, container)
    register_rooms(app, container)
    register_attendance(app, container)

    logger.info("Room monitor started with settings=%s", settings_module)
    return app
