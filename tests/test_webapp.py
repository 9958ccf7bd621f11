from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from activity_timer.catalog import lookup
from activity_timer.config import TrackerSettings
from activity_timer.db import database_connection, fetch_status_events
from activity_timer.dispatch import InlineDispatcher
from activity_timer.notify import SqliteStatusSink
from activity_timer.prompt import PendingCheckIns
from activity_timer.service import TrackerService
from activity_timer.store import TotalsStore
from activity_timer.webapp import create_app


@pytest.fixture()
def status_sink(db_path):
    sink = SqliteStatusSink(db_path)
    yield sink
    sink.close()


@pytest.fixture()
def web_service(engine, settings, timers, clock, status_sink) -> TrackerService:
    return TrackerService(
        engine,
        settings=settings,
        sink=status_sink,
        prompt=PendingCheckIns(),
        dispatcher=InlineDispatcher(),
        timer_factory=timers,
        clock=clock,
    )


@pytest.fixture()
def client(web_service) -> TestClient:
    return TestClient(create_app(service=web_service))


def test_activities_listing(client):
    payload = client.get("/api/activities").json()
    assert [item["display_name"] for item in payload["activities"]] == [
        "Relax",
        "Research",
        "Work",
        "Content",
        "Job Search",
    ]


def test_start_and_status(client, clock):
    response = client.post("/api/activities/2/start")
    assert response.json()["status"] == "ok"
    clock.advance(65)
    status = client.get("/api/status").json()
    assert status["tracking"] is True
    assert status["activity"]["display_name"] == "Work"
    assert status["session_seconds"] == pytest.approx(65)
    assert status["reminder_state"] == "armed"
    assert status["reminder_seconds"] == 5


def test_unknown_activity_is_ignored(client):
    response = client.post("/api/activities/17/start")
    assert response.status_code == 200
    assert response.json() == {"status": "ignored", "reason": "unknown_activity"}
    assert client.get("/api/status").json()["tracking"] is False


def test_totals_include_running_session(client, clock):
    client.post("/api/activities/1/start")
    clock.advance(3725)
    totals = client.get("/api/totals").json()
    research = next(item for item in totals["entries"] if item["id"] == 1)
    assert research["formatted"] == "01:02:05"
    assert totals["overall_seconds"] == pytest.approx(3725)


def test_stop_and_reset(client, clock):
    assert client.post("/api/stop").json() == {"status": "ignored"}
    client.post("/api/activities/0/start")
    clock.advance(10)
    assert client.post("/api/stop").json() == {"status": "ok"}
    assert client.post("/api/reset").json() == {"status": "ok"}
    totals = client.get("/api/totals").json()
    assert totals["overall_seconds"] == 0


def test_check_in_flow(client, timers):
    assert client.get("/api/check-in").json() == {"check_in": None}
    client.post("/api/activities/1/start")
    timers.fire_next()

    pending = client.get("/api/check-in").json()["check_in"]
    assert pending["activity"]["display_name"] == "Research"

    response = client.post(
        "/api/check-in",
        json={"choice": "change_activity", "activity_id": 3, "token": pending["token"]},
    )
    assert response.json() == {"status": "ok", "choice": "change_activity"}
    assert client.get("/api/check-in").json() == {"check_in": None}
    assert client.get("/api/status").json()["activity"]["display_name"] == "Content"

    stale = client.post("/api/check-in", json={"choice": "stop", "token": pending["token"]})
    assert stale.status_code == 409


def test_check_in_rejects_bad_payloads(client, timers):
    client.post("/api/activities/1/start")
    timers.fire_next()
    assert client.post("/api/check-in", json={"choice": "timeout"}).status_code == 422
    assert client.post("/api/check-in", json={"choice": "stop", "extra": 1}).status_code == 422


def test_check_in_with_unknown_activity_is_ignored(client, timers):
    client.post("/api/activities/1/start")
    timers.fire_next()
    response = client.post("/api/check-in", json={"choice": "change_activity", "activity_id": 9})
    assert response.status_code == 200
    assert response.json() == {"status": "ignored", "reason": "unknown_activity"}
    assert client.get("/api/check-in").json()["check_in"] is not None
    assert client.get("/api/status").json()["activity"]["display_name"] == "Research"
    assert (
        client.post("/api/check-in", json={"choice": "change_activity", "activity_id": 9}).status_code
        == 400
    )
    assert client.post("/api/check-in", json={"choice": "stop", "extra": 1}).status_code == 422


def test_check_in_timeout_stops_tracking(client, timers, status_sink):
    client.post("/api/activities/1/start")
    timers.fire_next()
    timers.fire_next()
    assert client.get("/api/status").json()["tracking"] is False
    assert client.get("/api/check-in").json() == {"check_in": None}

    status_sink.flush()
    events = client.get("/api/status-events").json()["events"]
    assert [(e["activity"], e["is_active"]) for e in events] == [
        ("none", False),
        ("Research", True),
    ]


def test_default_app_persists_totals_on_shutdown(db_path):
    settings = TrackerSettings.from_intervals(reminder_seconds=60, grace_seconds=5)
    app = create_app(db_path=db_path, settings=settings)
    with TestClient(app) as live:
        assert live.post("/api/activities/2/start").json()["status"] == "ok"
        assert live.post("/api/stop").json() == {"status": "ok"}
        assert live.get("/api/status").json()["reminder_state"] == "disarmed"
    reopened = TotalsStore(db_path)
    try:
        assert set(reopened.load()) <= {lookup(2)}
    finally:
        reopened.close()
    with database_connection(db_path) as conn:
        rows = fetch_status_events(conn)
    assert [(row["activity_name"], row["is_active"]) for row in rows] == [("none", 0), ("Work", 1)]
