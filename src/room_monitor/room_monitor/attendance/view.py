from __future__ import annotations

import logging
from typing import Optional

from ..core.exceptions import BackendRejection, TransportError
from ..realtime.consumer import RefreshingConsumer
from ..realtime.events import EventChannel
from ..realtime.hub import RealtimeEventBus
from ..realtime.refresher import DebouncedRefresher
from .model import AttendanceSummary
from .service import AttendanceAggregator

logger = logging.getLogger(__name__)


class AttendanceStatsView(RefreshingConsumer):
    """Weekly/monthly figures kept fresh by entry, exit and schedule events."""

    channels = (
        EventChannel.ROOM_ENTRY_ADDED,
        EventChannel.ROOM_ENTRY_EXITED,
        EventChannel.ROOM_STATS_RELOAD,
        EventChannel.SCHEDULE_UPDATED,
    )

    def __init__(
        self,
        bus: RealtimeEventBus,
        aggregator: AttendanceAggregator,
        *,
        refresher: Optional[DebouncedRefresher] = None,
        owner_id: Optional[int] = None,
    ):
        super().__init__(bus, refresher=refresher, owner_id=owner_id)
        self._aggregator = aggregator
        self.summary: Optional[AttendanceSummary] = None
        self.recompute_count = 0
        self.last_error: Optional[str] = None

    async def refresh(self) -> None:
        try:
            summary = await self._aggregator.summary()
        except (TransportError, BackendRejection) as exc:
            # Keep showing the last figures.
            logger.warning("Attendance stats reload failed: %s", exc)
            self.last_error = str(exc)
            return

        if not self.attached:
            logger.debug("Stats view detached; discarding reload result")
            return

        self.summary = summary
        self.recompute_count += 1
        self.last_error = None
