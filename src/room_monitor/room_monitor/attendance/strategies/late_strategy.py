from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ArrivalStatus
from ...schedules.model import Schedule
from .base import ArrivalDecision, ArrivalStrategy


class LateStrategy(ArrivalStrategy):
    """Arrival at or beyond the grace threshold after the schedule start."""

    def decide(self, *, started_at: datetime, schedule: Optional[Schedule], grace_minutes: int) -> ArrivalDecision:
        if schedule is None:
            return ArrivalDecision(status=ArrivalStatus.UNSCHEDULED)
        late = int((started_at - schedule.start_datetime).total_seconds() // 60)
        return ArrivalDecision(status=ArrivalStatus.LATE, late_minutes=late, schedule=schedule)
