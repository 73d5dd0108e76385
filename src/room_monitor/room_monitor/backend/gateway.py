from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from ..core.enums import AccessKind
from ..rooms.model import EntryFilters


class RoomBackend(Protocol):
    """Boundary of the remote persistence/authorization service.

    Methods return decoded JSON payloads. Implementations raise TransportError
    when the service cannot be reached and BackendRejection on HTTP errors.
    """

    async def validate_room_access(
        self, *, room_id: int, access_type: AccessKind, access_datetime: Optional[datetime] = None
    ) -> Any:
        raise NotImplementedError

    async def register_entry(self, *, room_id: int, entry_time: Optional[datetime] = None) -> Any:
        raise NotImplementedError

    async def register_exit(self, *, entry_id: int, exit_time: Optional[datetime] = None) -> Any:
        raise NotImplementedError

    async def get_room_access(self, *, room_id: int) -> Any:
        raise NotImplementedError

    async def get_my_schedules(self) -> Any:
        raise NotImplementedError

    async def get_my_entries(self) -> Any:
        raise NotImplementedError

    async def get_my_active_entry(self) -> Any:
        raise NotImplementedError

    async def get_all_entries(self, filters: Optional[EntryFilters] = None) -> Any:
        raise NotImplementedError
