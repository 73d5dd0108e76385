from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ArrivalStatus
from ...schedules.model import Schedule
from .base import ArrivalDecision, ArrivalStrategy


class UnscheduledStrategy(ArrivalStrategy):
    """No matching schedule: there is no baseline, so the arrival is never late."""

    def decide(self, *, started_at: datetime, schedule: Optional[Schedule], grace_minutes: int) -> ArrivalDecision:
        return ArrivalDecision(status=ArrivalStatus.UNSCHEDULED)
