"""Logging setup for the room monitor service.

Console output is colored with colorlog during development; JSON lines via
python-json-logger when LOG_JSON is enabled.
"""

import logging
import logging.config
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger


class RoomMonitorJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def build_logging_config(level: str = "INFO", json_output: bool = False) -> dict:
    level = (level or "INFO").upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "color": {
                "()": "colorlog.ColoredFormatter",
                "format": "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
                "log_colors": {
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            },
            "json": {
                "()": RoomMonitorJsonFormatter,
                "format": "%(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_output else "color",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "room_monitor": {"level": level},
            "src.room_monitor.room_monitor": {"level": level},
            "httpx": {"level": "WARNING"},
            "werkzeug": {"level": "WARNING"},
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    logging.config.dictConfig(build_logging_config(level, json_output))
