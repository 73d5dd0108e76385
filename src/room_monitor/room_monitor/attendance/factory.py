from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..schedules.model import Schedule
from .strategies.base import ArrivalStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.unscheduled_strategy import UnscheduledStrategy


@dataclass
class ArrivalStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_arrival(self, *, started_at: datetime, schedule: Optional[Schedule], grace_minutes: int) -> ArrivalStrategy:
        if not schedule:
            return UnscheduledStrategy()

        if started_at - schedule.start_datetime >= timedelta(minutes=grace_minutes):
            return LateStrategy()
        return OnTimeStrategy()
