from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..backend.errors import RoomAccessError
from ..common.datetime_utils import to_iso
from ..rooms.model import Entry
from ..schedules.model import Schedule


@dataclass(frozen=True)
class NoActiveEntry:
    """The user has no open entry."""


@dataclass(frozen=True)
class ActiveEntry:
    """The user's single open entry."""

    room_id: int
    entry_id: int
    room_name: Optional[str] = None
    started_at: Optional[datetime] = None

    @property
    def room_label(self) -> str:
        return self.room_name or f"Sala {self.room_id}"

    @classmethod
    def from_entry(cls, entry: Entry) -> "ActiveEntry":
        return cls(
            room_id=entry.room_id,
            entry_id=entry.entry_id,
            room_name=entry.room_name,
            started_at=entry.started_at,
        )


EntryState = Union[NoActiveEntry, ActiveEntry]


def state_to_dict(state: EntryState) -> dict:
    if isinstance(state, ActiveEntry):
        return {
            "hasActiveEntry": True,
            "entryId": state.entry_id,
            "roomId": state.room_id,
            "roomName": state.room_label,
            "startedAt": to_iso(state.started_at),
        }
    return {"hasActiveEntry": False}


@dataclass(frozen=True)
class EntryResult:
    """Structured outcome of an entry/exit attempt; shown verbatim to the user."""

    success: bool
    message: str
    entry: Optional[Entry] = None
    schedule: Optional[Schedule] = None
    warning: Optional[str] = None
    skipped: bool = False
    error: Optional[RoomAccessError] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "entry": self.entry.to_dict() if self.entry else None,
            "warning": self.warning,
            "skipped": self.skipped,
            "errorType": self.error.type.value if self.error else None,
            "errorTitle": self.error.title if self.error else None,
        }


@dataclass
class AccessState:
    """What the room view currently shows about the user's access."""

    has_access: bool = False
    reason: str = ""
    current_schedule: Optional[Schedule] = None
    is_in_room: bool = False
    last_entry_time: Optional[datetime] = None
    last_exit_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "hasAccess": self.has_access,
            "reason": self.reason,
            "currentSchedule": self.current_schedule.to_dict() if self.current_schedule else None,
            "isInRoom": self.is_in_room,
            "lastEntryTime": to_iso(self.last_entry_time),
            "lastExitTime": to_iso(self.last_exit_time),
        }
