from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import ArrivalStatus
from ...schedules.model import Schedule


@dataclass(frozen=True)
class ArrivalDecision:
    status: ArrivalStatus
    late_minutes: int = 0
    schedule: Optional[Schedule] = None


class ArrivalStrategy(ABC):
    """Strategy Pattern: encapsulate how we classify an arrival."""

    @abstractmethod
    def decide(self, *, started_at: datetime, schedule: Optional[Schedule], grace_minutes: int) -> ArrivalDecision:
        raise NotImplementedError
