from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, Optional, Sequence

from ..backend.gateway import RoomBackend
from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import ArrivalStatus
from ..core.exceptions import TransportError
from ..rooms.mapping import entries_from_payload
from ..rooms.model import Entry
from ..schedules.model import Schedule, schedules_from_payload
from .factory import ArrivalStrategyFactory
from .model import AttendancePeriod, AttendanceSummary
from .periods import day_range, format_hm, month_range, started_within, sum_minutes, week_range
from .strategies.base import ArrivalDecision

logger = logging.getLogger(__name__)


def _same_user(entry: Entry, schedule: Schedule) -> bool:
    if entry.user_id is None or schedule.user_id is None:
        return True
    return entry.user_id == schedule.user_id


def match_schedule(entry: Entry, schedules: Iterable[Schedule], *, tz: tzinfo = timezone.utc) -> Optional[Schedule]:
    """Schedule for the entry's user and room whose window overlaps the entry's local day.

    When several match, the one containing ``started_at`` wins, then the
    earliest start, then the lowest id.
    """
    day_start, day_end = day_range(entry.started_at.astimezone(tz))
    candidates = [
        s
        for s in schedules
        if s.room_id == entry.room_id and _same_user(entry, s) and s.overlaps(day_start, day_end)
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda s: (not s.contains(entry.started_at), s.start_datetime, s.schedule_id),
    )


def classify_arrival(
    entry: Entry,
    schedules: Iterable[Schedule],
    *,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    tz: tzinfo = timezone.utc,
    factory: Optional[ArrivalStrategyFactory] = None,
) -> ArrivalDecision:
    factory = factory or ArrivalStrategyFactory()
    schedule = match_schedule(entry, schedules, tz=tz)
    strategy = factory.for_arrival(started_at=entry.started_at, schedule=schedule, grace_minutes=grace_minutes)
    return strategy.decide(started_at=entry.started_at, schedule=schedule, grace_minutes=grace_minutes)


def late_arrivals(
    entries: Iterable[Entry],
    schedules: Sequence[Schedule],
    range_start: datetime,
    range_end: datetime,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    *,
    tz: Optional[tzinfo] = None,
    factory: Optional[ArrivalStrategyFactory] = None,
) -> int:
    """Count entries started in range whose matched schedule began ``grace_minutes`` or more earlier.

    Entries without a matching schedule are not counted.
    """
    tz = tz or range_start.tzinfo or timezone.utc
    factory = factory or ArrivalStrategyFactory()
    count = 0
    for entry in entries:
        if not started_within(entry, range_start, range_end):
            continue
        decision = classify_arrival(entry, schedules, grace_minutes=grace_minutes, tz=tz, factory=factory)
        if decision.status == ArrivalStatus.LATE:
            count += 1
    return count


class AttendanceAggregator:
    """Weekly/monthly attendance figures for the current user.

    Nothing is cached: each call walks the whole entry set returned by the backend.
    """

    def __init__(
        self,
        backend: RoomBackend,
        *,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = now_utc,
        factory: Optional[ArrivalStrategyFactory] = None,
    ):
        self._backend = backend
        self._grace_minutes = int(grace_minutes)
        self._tz = tz
        self._clock = clock
        self._factory = factory or ArrivalStrategyFactory()

    @property
    def grace_minutes(self) -> int:
        return self._grace_minutes

    def period(
        self,
        entries: Sequence[Entry],
        schedules: Sequence[Schedule],
        range_start: datetime,
        range_end: datetime,
        *,
        now: Optional[datetime] = None,
    ) -> AttendancePeriod:
        now = now or self._clock()
        return AttendancePeriod(
            range_start=range_start,
            range_end=range_end,
            total_minutes=sum_minutes(entries, range_start, range_end, now=now),
            entry_count=sum(1 for e in entries if started_within(e, range_start, range_end)),
            late_count=late_arrivals(
                entries,
                schedules,
                range_start,
                range_end,
                self._grace_minutes,
                tz=self._tz,
                factory=self._factory,
            ),
        )

    def classify(self, entry: Entry, schedules: Sequence[Schedule]) -> ArrivalDecision:
        return classify_arrival(entry, schedules, grace_minutes=self._grace_minutes, tz=self._tz, factory=self._factory)

    async def load(self) -> tuple[list[Entry], list[Schedule]]:
        """Fetch my entries and my schedules; raises TransportError/BackendRejection."""
        entries_payload = await self._backend.get_my_entries()
        schedules_payload = await self._backend.get_my_schedules()
        try:
            return entries_from_payload(entries_payload), schedules_from_payload(schedules_payload)
        except (ValueError, TypeError, KeyError) as exc:
            raise TransportError(f"Respuesta de asistencia inválida: {exc}") from exc

    async def summary(self, at: Optional[datetime] = None) -> AttendanceSummary:
        entries, schedules = await self.load()
        return self.summarize(entries, schedules, at=at)

    def summarize(
        self, entries: Sequence[Entry], schedules: Sequence[Schedule], *, at: Optional[datetime] = None
    ) -> AttendanceSummary:
        now = at or self._clock()
        local = now.astimezone(self._tz)
        week_start, week_end = week_range(local)
        month_start, month_end = month_range(local)
        summary = AttendanceSummary(
            weekly=self.period(entries, schedules, week_start, week_end, now=now),
            monthly=self.period(entries, schedules, month_start, month_end, now=now),
        )
        logger.debug(
            "Attendance recomputed: week=%s month=%s late=%s",
            summary.weekly.formatted,
            summary.monthly.formatted,
            summary.monthly.late_count,
        )
        return summary

    async def get_history_ui(self, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        entries, schedules = await self.load()
        return self.history_ui(entries, schedules, limit=limit)

    def history_ui(
        self,
        entries: Sequence[Entry],
        schedules: Sequence[Schedule],
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        now: Optional[datetime] = None,
    ) -> list[dict]:
        now = now or self._clock()
        recent = sorted(entries, key=lambda e: e.started_at, reverse=True)[:limit]
        return [self._to_ui(e, schedules, now) for e in recent]

    def _to_ui(self, entry: Entry, schedules: Sequence[Schedule], now: datetime) -> dict:
        decision = self.classify(entry, schedules)
        label = {
            ArrivalStatus.ON_TIME: "A tiempo",
            ArrivalStatus.LATE: f"Llegada tarde ({decision.late_minutes} min)",
            ArrivalStatus.UNSCHEDULED: "Sin turno",
        }[decision.status]
        css = {
            ArrivalStatus.ON_TIME: "bg-success",
            ArrivalStatus.LATE: "bg-danger",
            ArrivalStatus.UNSCHEDULED: "bg-secondary",
        }[decision.status]

        started = entry.started_at.astimezone(self._tz)
        ended = entry.ended_at.astimezone(self._tz) if entry.ended_at else None
        minutes = int(((entry.ended_at or now) - entry.started_at).total_seconds() // 60)
        return {
            "id": entry.entry_id,
            "room": entry.room_name or f"Sala {entry.room_id}",
            "date": started.strftime("%Y-%m-%d"),
            "check_in": started.strftime("%H:%M:%S"),
            "check_out": ended.strftime("%H:%M:%S") if ended else "-",
            "duration": format_hm(max(minutes, 0)),
            "status": label,
            "css_class": css,
        }
