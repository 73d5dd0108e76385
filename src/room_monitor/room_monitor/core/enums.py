from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for room access control."""

    ADMIN = "admin"
    MONITOR = "monitor"


class AccessKind(str, Enum):
    """Kind of room access being validated against the schedules."""

    ENTRY = "entry"
    EXIT = "exit"


class ArrivalStatus(str, Enum):
    """Arrival classification of an entry against its matched schedule."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    UNSCHEDULED = "UNSCHEDULED"


class AccessErrorType(str, Enum):
    SCHEDULE_REQUIRED = "schedule_required"
    TIME_MISMATCH = "time_mismatch"
    ROOM_MISMATCH = "room_mismatch"
    USER_NOT_FOUND = "user_not_found"
    SERVER_ERROR = "server_error"
