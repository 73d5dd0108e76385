from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import to_iso
from .periods import format_hm


@dataclass(frozen=True)
class AttendancePeriod:
    """Read-model for one time window (recomputed on demand, never stored)."""

    range_start: datetime
    range_end: datetime
    total_minutes: int
    entry_count: int
    late_count: int

    @property
    def formatted(self) -> str:
        return format_hm(self.total_minutes)

    def to_dict(self) -> dict:
        return {
            "rangeStart": to_iso(self.range_start),
            "rangeEnd": to_iso(self.range_end),
            "totalMinutes": self.total_minutes,
            "formatted": self.formatted,
            "entryCount": self.entry_count,
            "lateCount": self.late_count,
        }


@dataclass(frozen=True)
class AttendanceSummary:
    weekly: AttendancePeriod
    monthly: AttendancePeriod

    def to_dict(self) -> dict:
        return {
            "weekly": self.weekly.to_dict(),
            "monthly": self.monthly.to_dict(),
        }
