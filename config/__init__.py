from __future__ import annotations

import os

_ENVIRONMENTS = {
    "development": "config.development",
    "dev": "config.development",
    "testing": "config.testing",
    "test": "config.testing",
    "production": "config.production",
    "prod": "config.production",
}


def get_settings_module() -> str:
    """Dotted path of the settings module picked by ``APP_ENV``.

    ``ROOM_MONITOR_SETTINGS`` names a module directly and wins over ``APP_ENV``.
    Unknown environments fall back to development.
    """
    explicit = os.getenv("ROOM_MONITOR_SETTINGS")
    if explicit:
        return explicit
    env = os.getenv("APP_ENV", "development").strip().lower()
    return _ENVIRONMENTS.get(env, "config.development")
