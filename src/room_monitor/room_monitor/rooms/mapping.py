"""Tolerant mappers from backend payloads into room entities.

The backend has shipped several field spellings over time, so each field is
read from the first alias that is present.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime, parse_optional_datetime
from .model import Entry


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def entry_from_payload(data: Mapping[str, Any]) -> Entry:
    """Build an Entry; raises ValueError/KeyError/TypeError on malformed payloads."""
    started = _first(data, "entry_time", "started_at", "start_time")
    if not started:
        raise ValueError("entry payload without start time")

    return Entry(
        entry_id=int(data["id"]),
        room_id=int(_first(data, "room", "room_id") or 0),
        started_at=parse_iso_datetime(str(started)),
        ended_at=parse_optional_datetime(_first(data, "exit_time", "ended_at", "end_time")),
        user_id=_optional_int(_first(data, "user", "user_id")),
        room_name=_first(data, "room_name", "room_code", "room_label"),
        user_name=data.get("user_name"),
        user_username=data.get("user_username"),
        user_document=_first(
            data, "user_identification", "identification", "user_document", "document", "user_username"
        ),
    )


def entries_from_payload(payload: Any) -> list[Entry]:
    """Accept a bare list or an envelope with ``entries``/``results``."""
    if isinstance(payload, Sequence) and not isinstance(payload, (str, bytes)):
        items = payload
    elif isinstance(payload, Mapping):
        items = payload.get("entries") or payload.get("results") or []
    else:
        raise ValueError("unexpected entries payload")
    return [entry_from_payload(item) for item in items]


def created_entry_from_payload(payload: Any) -> Entry:
    """Register-entry answers either the entry itself or ``{message, entry}``."""
    if isinstance(payload, Mapping) and isinstance(payload.get("entry"), Mapping):
        return entry_from_payload(payload["entry"])
    if isinstance(payload, Mapping):
        return entry_from_payload(payload)
    raise ValueError("unexpected entry payload")


def active_entry_from_payload(payload: Any) -> Optional[Entry]:
    if not isinstance(payload, Mapping):
        raise ValueError("unexpected active entry payload")
    if payload.get("has_active_entry") and payload.get("active_entry"):
        return entry_from_payload(payload["active_entry"])
    return None
