from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.constants import DEFAULT_ENTRIES_PAGE_SIZE


@dataclass(frozen=True)
class Entry:
    """Domain entity: a monitor's attendance record in a room (check-in/out)."""

    entry_id: int
    room_id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    user_id: Optional[int] = None
    room_name: Optional[str] = None
    user_name: Optional[str] = None
    user_username: Optional[str] = None
    user_document: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "roomId": self.room_id,
            "roomName": self.room_name,
            "startedAt": to_iso(self.started_at),
            "endedAt": to_iso(self.ended_at),
            "userId": self.user_id,
            "userName": self.user_name,
            "userUsername": self.user_username,
            "userDocument": self.user_document,
        }


@dataclass(frozen=True)
class EntryFilters:
    """Query filters for the admin entries listing."""

    user_name: Optional[str] = None
    room: Optional[int] = None
    active: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    document: Optional[str] = None
    page: Optional[int] = None
    page_size: int = DEFAULT_ENTRIES_PAGE_SIZE

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.date_from:
            params["from"] = self.date_from.strftime("%Y-%m-%d")
        if self.date_to:
            params["to"] = self.date_to.strftime("%Y-%m-%d")
        if self.user_name:
            params["user_name"] = self.user_name
        if self.room:
            params["room"] = str(self.room)
        if self.active is not None:
            params["active"] = "true" if self.active else "false"
        if self.document:
            params["document"] = self.document
        if self.page:
            params["page"] = str(self.page)
        params["page_size"] = str(self.page_size)
        return params
