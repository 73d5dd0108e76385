from __future__ import annotations

from typing import Optional

from ..realtime.consumer import RefreshingConsumer
from ..realtime.events import EventChannel
from ..realtime.hub import RealtimeEventBus
from ..realtime.refresher import DebouncedRefresher
from .state_machine import EntryExitStateMachine


class ActiveEntryWatcher(RefreshingConsumer):
    """Refetches the active entry when another view or process records an entry or exit."""

    channels = (EventChannel.ROOM_ENTRY_ADDED, EventChannel.ROOM_ENTRY_EXITED)

    def __init__(
        self,
        bus: RealtimeEventBus,
        machine: EntryExitStateMachine,
        *,
        refresher: Optional[DebouncedRefresher] = None,
        owner_id: Optional[int] = None,
    ):
        super().__init__(bus, refresher=refresher, owner_id=owner_id)
        self._machine = machine

    async def refresh(self) -> None:
        if self.attached:
            await self._machine.refresh()
