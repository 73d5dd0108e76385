import pytest

from src.room_monitor.room_monitor.backend.errors import (
    classify_access_error,
    entry_rejection_message,
    extract_message,
)
from src.room_monitor.room_monitor.core.enums import AccessErrorType
from src.room_monitor.room_monitor.core.exceptions import BackendRejection, TransportError
from src.room_monitor.room_monitor.rooms.mapping import (
    active_entry_from_payload,
    created_entry_from_payload,
    entries_from_payload,
    entry_from_payload,
)
from tests.fakes import utc


def test_extract_message_prefers_detail_then_error():
    assert extract_message({"detail": "a", "error": "b"}) == "a"
    assert extract_message({"error": "b"}) == "b"
    assert extract_message({"non_field_errors": ["x", "y"]}) == "x, y"
    assert extract_message(["one", "two"]) == "one, two"
    assert extract_message("  plain ") == "plain"
    assert extract_message({"room": ["required"]}) == '{"room": ["required"]}'


def test_classify_schedule_required():
    error = BackendRejection(403, "denied", {"error": "Acceso denegado", "details": {"reason": "schedule_required"}})

    classified = classify_access_error(error)

    assert classified.type == AccessErrorType.SCHEDULE_REQUIRED
    assert classified.title == "Sin Turno Asignado"


def test_classify_time_and_transport():
    assert classify_access_error(BackendRejection(400, "Fuera de horario")).type == AccessErrorType.TIME_MISMATCH
    assert classify_access_error(TransportError("down")).type == AccessErrorType.SERVER_ERROR


def test_entry_rejection_messages():
    assert entry_rejection_message(BackendRejection(400, "falta sala")) == "Error de validación: falta sala"
    assert entry_rejection_message(BackendRejection(404, "x")) == "Sala no encontrada"


def test_entry_aliases():
    entry = entry_from_payload(
        {
            "id": "5",
            "room_id": 3,
            "start_time": "2025-03-03T09:00:00Z",
            "end_time": None,
            "user_id": 7,
            "room_code": "A-3",
            "identification": "1010",
        }
    )

    assert entry.entry_id == 5
    assert entry.room_id == 3
    assert entry.started_at == utc(2025, 3, 3, 9)
    assert entry.is_active
    assert entry.room_name == "A-3"
    assert entry.user_document == "1010"


def test_naive_timestamps_are_utc():
    entry = entry_from_payload({"id": 1, "room": 3, "entry_time": "2025-03-03T09:00:00"})

    assert entry.started_at == utc(2025, 3, 3, 9)


def test_entry_without_start_is_rejected():
    with pytest.raises(ValueError):
        entry_from_payload({"id": 1, "room": 3})


def test_envelopes():
    raw = {"id": 1, "room": 3, "entry_time": "2025-03-03T09:00:00Z"}

    assert len(entries_from_payload({"results": [raw]})) == 1
    assert len(entries_from_payload({"entries": [raw, raw]})) == 2
    assert created_entry_from_payload({"message": "ok", "entry": raw}).entry_id == 1
    assert active_entry_from_payload({"has_active_entry": True, "active_entry": raw}).room_id == 3
    assert active_entry_from_payload({"has_active_entry": False, "active_entry": None}) is None
