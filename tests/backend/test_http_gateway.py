import asyncio
import json
from datetime import date

import httpx
import pytest

from src.room_monitor.room_monitor.backend.http_gateway import HttpRoomBackend
from src.room_monitor.room_monitor.core.enums import AccessKind
from src.room_monitor.room_monitor.core.exceptions import BackendRejection, TransportError
from src.room_monitor.room_monitor.rooms.model import EntryFilters
from tests.fakes import utc


def _backend(handler, token="abc123"):
    return HttpRoomBackend("http://backend.test/", token=token, transport=httpx.MockTransport(handler))


def test_validate_room_access_posts_expected_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"access_granted": True, "reason": "ok"})

    payload = asyncio.run(
        _backend(handler).validate_room_access(room_id=3, access_type=AccessKind.EXIT, access_datetime=utc(2025, 3, 3, 10))
    )

    assert payload == {"access_granted": True, "reason": "ok"}
    assert seen["method"] == "POST"
    assert seen["path"] == "/schedule/schedules/validate_room_access/"
    assert seen["auth"] == "Token abc123"
    assert seen["body"] == {"room_id": 3, "access_type": "exit", "access_datetime": "2025-03-03T10:00:00+00:00"}


def test_register_exit_uses_patch():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(200, json={"id": 42})

    asyncio.run(_backend(handler).register_exit(entry_id=42))

    assert seen == {"method": "PATCH", "path": "/rooms/entry/42/exit/"}


def test_error_status_becomes_rejection_with_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"detail": "Ya tienes una entrada activa"})

    with pytest.raises(BackendRejection) as excinfo:
        asyncio.run(_backend(handler).register_entry(room_id=3))

    assert excinfo.value.status == 409
    assert excinfo.value.message == "Ya tienes una entrada activa"
    assert excinfo.value.data == {"detail": "Ya tienes una entrada activa"}


def test_plain_text_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(BackendRejection) as excinfo:
        asyncio.run(_backend(handler).get_my_entries())

    assert excinfo.value.message == "Bad gateway"


def test_network_failure_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        asyncio.run(_backend(handler).get_my_active_entry())


def test_no_token_sends_no_authorization():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=[])

    asyncio.run(_backend(handler, token=None).get_my_schedules())

    assert seen["auth"] is None


def test_all_entries_sends_filters_with_default_page_size():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": []})

    filters = EntryFilters(room=3, active=True, date_from=date(2025, 3, 1), document="1010")
    asyncio.run(_backend(handler).get_all_entries(filters))

    assert seen["path"] == "/api/rooms/entries/"
    assert seen["params"] == {
        "room": "3",
        "active": "true",
        "from": "2025-03-01",
        "document": "1010",
        "page_size": "1000",
    }


def test_room_access_path():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json={"canAccess": False})

    asyncio.run(_backend(handler).get_room_access(room_id=8))

    assert seen["path"] == "/rooms/8/access/"
