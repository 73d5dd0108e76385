from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware datetime.

    Naive values are interpreted as UTC, which is what the backend stores.
    """
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return parse_iso_datetime(value)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def get_timezone(name: Optional[str]) -> tzinfo:
    if not name:
        return timezone.utc
    return ZoneInfo(name)


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mock it easier.
    """
    return datetime.now(timezone.utc)
