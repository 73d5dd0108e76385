from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class EventChannel(str, Enum):
    """Realtime channels shared by every open view."""

    ROOM_ENTRY_ADDED = "room-entry-added"
    ROOM_ENTRY_EXITED = "room-entry-exited"
    ROOM_STATS_RELOAD = "room-stats-reload"
    SCHEDULE_UPDATED = "schedule-updated"
    REPORT_CREATED = "report-created"
    REPORT_UPDATED = "report-updated"
    REPORT_DELETED = "report-deleted"
    NOTIFICATIONS_UPDATED = "notifications-updated"


# One relay key per channel family; the record's "type" tells members apart.
RELAY_KEYS: dict[EventChannel, str] = {
    EventChannel.ROOM_ENTRY_ADDED: "room-event",
    EventChannel.ROOM_ENTRY_EXITED: "room-event",
    EventChannel.ROOM_STATS_RELOAD: "room-stats-reload",
    EventChannel.SCHEDULE_UPDATED: "schedule-updated",
    EventChannel.REPORT_CREATED: "room-data-update",
    EventChannel.REPORT_UPDATED: "room-data-update",
    EventChannel.REPORT_DELETED: "room-data-update",
    EventChannel.NOTIFICATIONS_UPDATED: "notifications-updated",
}

RECORD_TYPES: dict[EventChannel, str] = {
    EventChannel.ROOM_ENTRY_ADDED: "entry",
    EventChannel.ROOM_ENTRY_EXITED: "exit",
}

_RESERVED = frozenset({"channel", "type", "ts", "origin"})


@dataclass(frozen=True)
class Event:
    channel: EventChannel
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    origin: str = ""
    relayed: bool = False

    @property
    def relay_key(self) -> str:
        return RELAY_KEYS[self.channel]

    def to_record(self) -> dict:
        """Keyed record written to the cross-process store (payload plus timestamp)."""
        return {
            **self.payload,
            "channel": self.channel.value,
            "type": RECORD_TYPES.get(self.channel, self.channel.value),
            "ts": self.timestamp,
            "origin": self.origin,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, relayed: bool = True) -> "Event":
        return cls(
            channel=EventChannel(record["channel"]),
            payload={k: v for k, v in record.items() if k not in _RESERVED},
            timestamp=int(record.get("ts") or 0),
            origin=str(record.get("origin") or ""),
            relayed=relayed,
        )
