from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc


@dataclass(frozen=True)
class ScheduleTimeValidation:
    is_valid: bool
    reason: str
    minutes_until_start: Optional[int] = None
    minutes_until_end: Optional[int] = None
    is_active: bool = False
    is_upcoming: bool = False
    is_expired: bool = False


def _whole_minutes(later: datetime, earlier: datetime) -> int:
    return int((later - earlier).total_seconds() // 60)


def validate_schedule_time(start: datetime, end: datetime, now: Optional[datetime] = None) -> ScheduleTimeValidation:
    """Classify a schedule window relative to ``now`` (expired, active or upcoming)."""
    now = now or now_utc()

    if end < start:
        return ScheduleTimeValidation(is_valid=False, reason="Fechas de turno inválidas")

    if now > end:
        return ScheduleTimeValidation(is_valid=False, reason="El turno ya ha terminado", is_expired=True)

    if now >= start:
        return ScheduleTimeValidation(
            is_valid=True,
            reason="Turno activo",
            is_active=True,
            minutes_until_end=_whole_minutes(end, now),
        )

    minutes = _whole_minutes(start, now)
    return ScheduleTimeValidation(
        is_valid=False,
        reason=f"El turno comienza en {format_time_remaining(minutes)}",
        is_upcoming=True,
        minutes_until_start=minutes,
    )


def format_time_remaining(minutes: int) -> str:
    if minutes < 0:
        return "Tiempo agotado"
    if minutes < 60:
        return f"{minutes} minutos"

    hours, rest = divmod(minutes, 60)
    suffix = "s" if hours > 1 else ""
    if rest == 0:
        return f"{hours} hora{suffix}"
    return f"{hours} hora{suffix} y {rest} minutos"
