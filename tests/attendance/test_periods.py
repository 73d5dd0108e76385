from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from src.room_monitor.room_monitor.attendance.periods import (
    day_range,
    format_hm,
    month_range,
    sum_minutes,
    week_range,
)
from src.room_monitor.room_monitor.rooms.model import Entry
from tests.fakes import utc


def _entry(start: datetime, end=None, entry_id: int = 1, room_id: int = 3) -> Entry:
    return Entry(entry_id=entry_id, room_id=room_id, started_at=start, ended_at=end)


def test_full_day_entry_sums_to_eight_hours():
    day_start, day_end = day_range(utc(2025, 3, 3, 12))
    entries = [_entry(utc(2025, 3, 3, 9), utc(2025, 3, 3, 17))]

    total = sum_minutes(entries, day_start, day_end)

    assert total == 480
    assert format_hm(total) == "8 h 00 min"


def test_sum_minutes_clamps_to_range():
    range_start, range_end = utc(2025, 3, 3, 10), utc(2025, 3, 3, 12)
    entries = [
        _entry(utc(2025, 3, 3, 8), utc(2025, 3, 3, 11)),  # 60 inside
        _entry(utc(2025, 3, 3, 11, 30), utc(2025, 3, 3, 14)),  # 30 inside
        _entry(utc(2025, 3, 2, 8), utc(2025, 3, 2, 9)),  # outside
        _entry(utc(2025, 3, 4, 8), utc(2025, 3, 4, 9)),  # outside
    ]

    assert sum_minutes(entries, range_start, range_end) == 90


def test_sum_minutes_never_negative():
    range_start, range_end = utc(2025, 3, 3, 10), utc(2025, 3, 3, 12)
    # Exit recorded before entry.
    entries = [_entry(utc(2025, 3, 3, 11), utc(2025, 3, 3, 10, 30))]

    assert sum_minutes(entries, range_start, range_end) == 0


def test_open_entry_counts_until_now():
    range_start, range_end = day_range(utc(2025, 3, 3))
    entries = [_entry(utc(2025, 3, 3, 9))]

    assert sum_minutes(entries, range_start, range_end, now=utc(2025, 3, 3, 10, 15, 59)) == 75


def test_sum_minutes_floors_partial_minutes():
    range_start, range_end = day_range(utc(2025, 3, 3))
    entries = [_entry(utc(2025, 3, 3, 9), utc(2025, 3, 3, 9, 0, 59))]

    assert sum_minutes(entries, range_start, range_end) == 0


def test_week_range_from_monday():
    monday = utc(2025, 3, 3, 15, 30)

    start, end = week_range(monday)

    assert start == utc(2025, 3, 3)
    assert (end.year, end.month, end.day, end.hour, end.minute, end.second) == (2025, 3, 9, 23, 59, 59)
    assert end.weekday() == 6


def test_week_range_from_sunday_keeps_same_week():
    start, end = week_range(utc(2025, 3, 9, 22))

    assert start == utc(2025, 3, 3)
    assert end.date() == utc(2025, 3, 9).date()


def test_week_range_uses_local_timezone():
    bogota = ZoneInfo("America/Bogota")
    # Monday 01:00 UTC is still Sunday evening in Bogota.
    local = utc(2025, 3, 10, 1).astimezone(bogota)

    start, _ = week_range(local)

    assert start == datetime(2025, 3, 3, tzinfo=bogota)
    assert start.utcoffset() == timedelta(hours=-5)


def test_month_range_handles_short_months():
    start, end = month_range(utc(2024, 2, 17))

    assert start == utc(2024, 2, 1)
    assert (end.month, end.day, end.hour, end.minute, end.second) == (2, 29, 23, 59, 59)


def test_format_hm_pads_minutes():
    assert format_hm(0) == "0 h 00 min"
    assert format_hm(65) == "1 h 05 min"
    assert format_hm(-3) == "0 h 00 min"


def test_day_range_is_inclusive_of_last_millisecond():
    start, end = day_range(datetime(2025, 3, 3, 12, tzinfo=timezone.utc))

    assert end - start == timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)
