from datetime import datetime, timedelta, timezone

import pytest

from src.room_monitor.room_monitor.container import build_container
from src.room_monitor.room_monitor.main import create_app
from src.room_monitor.room_monitor.realtime.relay import InMemoryRelayHub
from tests.fakes import FakeBackend


@pytest.fixture
def backend():
    now = datetime.now(timezone.utc).replace(microsecond=0)
    fake = FakeBackend(now=now)
    fake.add_schedule(1, 3, now - timedelta(minutes=2), now + timedelta(hours=2), room_name="Lab 3")
    return fake


@pytest.fixture
def app(monkeypatch, backend):
    monkeypatch.setenv("APP_ENV", "testing")
    container = build_container(
        api_base_url="http://backend.test",
        timezone="UTC",
        backend_factory=lambda token: backend,
        relay=InMemoryRelayHub().connect("web"),
    )
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, role="monitor", user_id=7):
    response = client.post("/api/session", json={"user_id": user_id, "username": "ana", "role": role, "token": "t0k"})
    assert response.status_code == 200
    return response


def test_requires_session(client):
    response = client.get("/api/rooms/3/access")

    assert response.status_code == 401


def test_invalid_session_payload(client):
    assert client.post("/api/session", json={"user_id": "x", "role": "monitor"}).status_code == 400
    assert client.post("/api/session", json={"user_id": 3, "role": "guest"}).status_code == 400


def test_admin_gets_monitor_only_message_without_backend_calls(client, backend):
    _login(client, role="admin", user_id=1)

    data = client.get("/api/rooms/3/access").get_json()

    assert data["canAccess"] is False
    assert data["reason"] == "Solo los monitores pueden acceder a salas"
    assert backend.calls == []


def test_monitor_entry_and_exit(client, backend):
    _login(client)

    access = client.get("/api/rooms/3/access").get_json()
    assert access["canAccess"] is True

    entry = client.post("/api/rooms/3/entry", json={})
    assert entry.status_code == 200
    assert entry.get_json()["state"]["hasActiveEntry"] is True

    assert client.get("/api/rooms/active-entry").get_json()["roomId"] == 3

    wrong_room = client.post("/api/rooms/4/exit", json={})
    assert wrong_room.status_code == 400
    assert "Debes seleccionar la sala" in wrong_room.get_json()["message"]

    exit_ = client.post("/api/rooms/3/exit", json={})
    assert exit_.status_code == 200
    assert exit_.get_json()["state"] == {"hasActiveEntry": False}
    assert backend.count("register_entry") == 1
    assert backend.count("register_exit") == 1


def test_entry_without_schedule_is_refused(client):
    _login(client)

    response = client.post("/api/rooms/9/entry", json={})

    assert response.status_code == 400
    assert "turno" in response.get_json()["message"]


def test_validate_rejects_unknown_access_type(client):
    _login(client)

    assert client.post("/api/rooms/3/validate", json={"access_type": "teleport"}).status_code == 400
    assert client.post("/api/rooms/3/validate", json={"access_type": "entry"}).get_json()["granted"] is True


def test_bad_timestamp_is_a_validation_error(client):
    _login(client)

    response = client.post("/api/rooms/3/entry", json={"entry_time": "yesterday-ish"})

    assert response.status_code == 400


def test_room_schedules_are_classified(client):
    _login(client)

    data = client.get("/api/rooms/3/schedules").get_json()

    assert data["hasActiveSchedule"] is True
    assert [row["status"] for row in data["schedules"]] == ["active"]


def test_summary_and_history(client, backend):
    _login(client)
    client.post("/api/rooms/3/entry", json={})
    client.post("/api/rooms/3/exit", json={})

    summary = client.get("/api/attendance/summary").get_json()
    history = client.get("/api/attendance/history?limit=5").get_json()

    assert set(summary) >= {"weekly", "monthly", "recomputeCount"}
    assert summary["weekly"]["formatted"].endswith("min")
    assert summary["recomputeCount"] >= 1
    assert len(history["history"]) == 1
    assert history["history"][0]["room"] == "Sala 3"


def test_logout_closes_session(client, app):
    _login(client)
    client.get("/api/rooms/3/access")
    container = app.extensions["room_monitor"]
    assert len(container.sessions) == 1

    client.delete("/api/session")

    assert len(container.sessions) == 0
    assert client.get("/api/session").status_code == 401


def test_admin_has_no_attendance_summary(client, backend):
    _login(client, role="admin", user_id=1)

    response = client.get("/api/attendance/summary")

    assert response.status_code == 403
    assert backend.calls == []


def test_entry_of_one_monitor_does_not_reload_another(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    now = datetime.now(timezone.utc).replace(microsecond=0)
    backends = {"ta": FakeBackend(user_id=7, now=now), "tb": FakeBackend(user_id=8, now=now)}
    backends["ta"].add_schedule(1, 3, now - timedelta(minutes=2), now + timedelta(hours=2))
    backends["tb"].add_entry(50, 4, now - timedelta(hours=3), now - timedelta(hours=2))
    container = build_container(
        api_base_url="http://backend.test",
        timezone="UTC",
        reload_min_interval=60.0,
        backend_factory=lambda token: backends[token],
        relay=InMemoryRelayHub().connect("web"),
    )
    app = create_app(container)
    ana, bea = app.test_client(), app.test_client()
    ana.post("/api/session", json={"user_id": 7, "username": "ana", "role": "monitor", "token": "ta"})
    bea.post("/api/session", json={"user_id": 8, "username": "bea", "role": "monitor", "token": "tb"})

    assert bea.get("/api/attendance/summary").get_json()["recomputeCount"] == 1
    backends["tb"].calls.clear()

    assert ana.post("/api/rooms/3/entry", json={}).status_code == 200
    assert backends["tb"].calls == []

    bea.post("/api/view/visibility", json={"focus": True})

    assert bea.get("/api/attendance/summary").get_json()["recomputeCount"] == 2
    assert backends["tb"].count("get_my_entries") >= 1


def test_admin_lists_entries_with_filters(client, backend):
    backend.add_entry(60, 3, backend.now - timedelta(hours=1))
    _login(client, role="admin", user_id=1)

    response = client.get("/api/rooms/entries?room=3&active=true&from=2025-03-01&user_name=ana")

    assert response.status_code == 200
    assert response.get_json()["count"] == 1
    assert response.get_json()["entries"][0]["roomId"] == 3
    params = backend.last_filters.to_params()
    assert params["room"] == "3"
    assert params["active"] == "true"
    assert params["from"] == "2025-03-01"
    assert backend.calls == ["get_all_entries"]


def test_entries_listing_rejects_bad_filters_and_monitors(client, backend):
    _login(client, role="admin", user_id=1)
    assert client.get("/api/rooms/entries?from=ayer").status_code == 400
    assert client.get("/api/rooms/entries?active=maybe").status_code == 400

    _login(client)
    assert client.get("/api/rooms/entries").status_code == 403
    assert "get_all_entries" not in backend.calls
