from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from ..common.datetime_utils import now_utc
from ..rooms.model import Entry

_DAY_START = time(0, 0, 0, 0)
_DAY_END = time(23, 59, 59, 999000)


def _at(day: datetime, moment: time) -> datetime:
    return datetime.combine(day.date(), moment, tzinfo=day.tzinfo)


def day_range(d: datetime) -> tuple[datetime, datetime]:
    return _at(d, _DAY_START), _at(d, _DAY_END)


def week_range(d: datetime) -> tuple[datetime, datetime]:
    """Monday 00:00:00.000 through Sunday 23:59:59.999 of ``d``'s ISO week, in ``d``'s timezone."""
    monday = d - timedelta(days=d.weekday())
    return _at(monday, _DAY_START), _at(monday + timedelta(days=6), _DAY_END)


def month_range(d: datetime) -> tuple[datetime, datetime]:
    """First day 00:00:00.000 through last day 23:59:59.999 of ``d``'s month."""
    first = d.replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    return _at(first, _DAY_START), _at(last, _DAY_END)


def clamped_seconds(
    started_at: datetime, ended_at: datetime, range_start: datetime, range_end: datetime
) -> float:
    start = max(started_at, range_start)
    end = min(ended_at, range_end)
    if end <= start:
        return 0.0
    return (end - start).total_seconds()


def sum_minutes(
    entries: Iterable[Entry],
    range_start: datetime,
    range_end: datetime,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Whole minutes spent inside [range_start, range_end].

    Open entries count up to ``now``. Each entry is clamped to the range, so
    time outside it is never counted and no entry contributes a negative value.
    """
    now = now or now_utc()
    seconds = 0.0
    for entry in entries:
        seconds += clamped_seconds(entry.started_at, entry.ended_at or now, range_start, range_end)
    return int(seconds // 60)


def format_hm(total_minutes: int) -> str:
    hours, minutes = divmod(max(int(total_minutes), 0), 60)
    return f"{hours} h {minutes:02d} min"


def started_within(entry: Entry, range_start: datetime, range_end: datetime) -> bool:
    return range_start <= entry.started_at <= range_end
