from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime, to_iso


@dataclass(frozen=True)
class Schedule:
    """Time-boxed assignment of a monitor to a room (UTC instants)."""

    schedule_id: int
    user_id: Optional[int]
    room_id: Optional[int]
    start_datetime: datetime
    end_datetime: datetime
    room_name: Optional[str] = None

    def contains(self, instant: datetime) -> bool:
        return self.start_datetime <= instant <= self.end_datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_datetime <= end and self.end_datetime >= start

    def to_dict(self) -> dict:
        return {
            "id": self.schedule_id,
            "user": self.user_id,
            "room": self.room_id,
            "room_name": self.room_name,
            "start_datetime": to_iso(self.start_datetime),
            "end_datetime": to_iso(self.end_datetime),
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], *, room_id: Optional[int] = None) -> "Schedule":
        user = data.get("user", data.get("user_id"))
        room = data.get("room", data.get("room_id", room_id))
        return cls(
            schedule_id=int(data["id"]),
            user_id=int(user) if user is not None else None,
            room_id=int(room) if room is not None else None,
            start_datetime=parse_iso_datetime(str(data["start_datetime"])),
            end_datetime=parse_iso_datetime(str(data["end_datetime"])),
            room_name=data.get("room_name"),
        )


def schedules_from_payload(payload: Any) -> list[Schedule]:
    """Accept a bare list, ``{results}`` or the ``{current, upcoming, past}`` grouping."""
    if isinstance(payload, Sequence) and not isinstance(payload, (str, bytes)):
        items = list(payload)
    elif isinstance(payload, Mapping):
        if "results" in payload:
            items = list(payload["results"] or [])
        else:
            items = [
                *(payload.get("current") or []),
                *(payload.get("upcoming") or []),
                *(payload.get("past") or []),
            ]
    else:
        raise ValueError("unexpected schedules payload")
    return [Schedule.from_payload(item) for item in items]


@dataclass(frozen=True)
class AccessDecision:
    """Transient answer to "may this user enter/exit room R at time T"."""

    granted: bool
    reason: str
    schedule: Optional[Schedule] = None

    def to_dict(self) -> dict:
        return {
            "granted": self.granted,
            "reason": self.reason,
            "schedule": self.schedule.to_dict() if self.schedule else None,
        }


@dataclass(frozen=True)
class RoomAccessInfo:
    can_access: bool
    reason: str
    schedule: Optional[Schedule] = None

    def to_dict(self) -> dict:
        return {
            "canAccess": self.can_access,
            "reason": self.reason,
            "schedule": self.schedule.to_dict() if self.schedule else None,
        }


@dataclass(frozen=True)
class ScheduleInfo:
    has_active_schedule: bool
    message: str
    schedule: Optional[Schedule] = None
