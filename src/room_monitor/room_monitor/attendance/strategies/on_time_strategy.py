from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ArrivalStatus
from ...schedules.model import Schedule
from .base import ArrivalDecision, ArrivalStrategy


class OnTimeStrategy(ArrivalStrategy):
    """Arrival within the grace period."""

    def decide(self, *, started_at: datetime, schedule: Optional[Schedule], grace_minutes: int) -> ArrivalDecision:
        return ArrivalDecision(status=ArrivalStatus.ON_TIME, schedule=schedule)
