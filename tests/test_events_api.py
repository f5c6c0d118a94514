import json
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from event_hub.calendar.types import Attendee, Event
from event_hub.core.config import AppConfig
from event_hub.events.manager import EventManager
from event_hub.main import create_app


def event_body(title="Meetup", date="2030-01-01", time="10:00", **extra):
    body = {"title": title, "date": date, "time": time, "location": "Hub", "description": "Monthly"}
    body.update(extra)
    return body


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "events.json"


@pytest.fixture
def manager():
    return EventManager()


@pytest.fixture
def client(data_file, manager):
    app = create_app(AppConfig(events_file=str(data_file)), manager=manager)
    return TestClient(app)


class TestEventCrud:
    """Test CRUD endpoints."""

    def test_list_empty(self, client):
        r = client.get("/events")
        assert r.status_code == 200
        assert r.json() == {"ok": True, "events": []}

    def test_add_and_list(self, client, manager):
        r = client.post("/events", json=event_body())
        assert r.status_code == 201
        created = r.json()["event"]
        assert created["index"] == 0
        assert created["handle"] == manager.handle_at(0)
        assert created["date"] == "2030-01-01T00:00:00.000"

        listed = client.get("/events").json()["events"]
        assert [e["title"] for e in listed] == ["Meetup"]

    def test_add_conflict_rejected(self, client, manager):
        client.post("/events", json=event_body("First"))
        r = client.post("/events", json=event_body("Second", location="Elsewhere"))
        assert r.status_code == 409
        assert len(manager) == 1

    def test_add_conflict_forced(self, client, manager):
        client.post("/events", json=event_body("First"))
        r = client.post("/events?force=true", json=event_body("Second"))
        assert r.status_code == 201
        assert len(manager) == 2

    def test_add_invalid_body(self, client):
        r = client.post("/events", json={"title": "x"})
        assert r.status_code == 422

    def test_add_invalid_date(self, client):
        r = client.post("/events", json=event_body(date="next tuesday"))
        assert r.status_code == 422

    def test_get_by_index(self, client):
        client.post("/events", json=event_body())
        assert client.get("/events/0").json()["event"]["title"] == "Meetup"
        assert client.get("/events/3").status_code == 404

    def test_edit(self, client, manager):
        client.post("/events", json=event_body())
        r = client.put("/events/0", json=event_body("Renamed", time="12:00"))
        assert r.status_code == 200
        assert manager.get_event(0).title == "Renamed"
        assert client.put("/events/5", json=event_body()).status_code == 404

    def test_delete_shifts_indices(self, client, manager):
        for title, time in [("A", "09:00"), ("B", "10:00"), ("C", "11:00")]:
            client.post("/events", json=event_body(title, time=time))

        r = client.delete("/events/0")
        assert r.status_code == 200
        assert r.json()["event_count"] == 2
        assert client.get("/events/0").json()["event"]["title"] == "B"
        assert client.delete("/events/2").status_code == 404


class TestEventViews:
    """Test derived views."""

    def test_upcoming_and_past_report_stored_indices(self, client, manager):
        now = datetime.now()
        manager.add_event(Event(title="Past", date=now - timedelta(days=3), time="x", location="", description=""))
        manager.add_event(Event(title="Future", date=now + timedelta(days=3), time="x", location="", description=""))

        upcoming = client.get("/events/upcoming").json()["events"]
        past = client.get("/events/past").json()["events"]

        assert [(e["title"], e["index"]) for e in upcoming] == [("Future", 1)]
        assert [(e["title"], e["index"]) for e in past] == [("Past", 0)]

    def test_chronological_sorts_in_place(self, client, manager):
        client.post("/events", json=event_body("Later", date="2031-01-01"))
        client.post("/events", json=event_body("Sooner", date="2030-01-01"))

        events = client.get("/events/chronological").json()["events"]

        assert [(e["title"], e["index"]) for e in events] == [("Sooner", 0), ("Later", 1)]
        assert manager.get_event(0).title == "Sooner"

    def test_conflict_check(self, client):
        client.post("/events", json=event_body())
        assert client.post("/events/conflicts", json=event_body("Other")).json() == {"conflict": True}
        assert client.post("/events/conflicts", json=event_body(time="11:00")).json() == {"conflict": False}


class TestAttendeeEndpoints:
    """Test attendee registration and attendance."""

    def test_register_and_list(self, client):
        client.post("/events", json=event_body())
        r = client.post("/events/0/attendees", json={"name": "Ada"})
        assert r.status_code == 201
        assert r.json()["attendee"] == {"name": "Ada", "isPresent": False}

        attendees = client.get("/events/0/attendees").json()["attendees"]
        assert attendees == [{"name": "Ada", "isPresent": False}]

    def test_register_empty_name_rejected(self, client):
        client.post("/events", json=event_body())
        assert client.post("/events/0/attendees", json={"name": "  "}).status_code == 422

    def test_register_blank_string_rejected(self, client):
        client.post("/events", json=event_body())
        assert client.post("/events/0/attendees", json={"name": ""}).status_code == 422
        assert client.get("/events/0/attendees").json()["attendees"] == []

    def test_register_bad_index(self, client):
        assert client.post("/events/0/attendees", json={"name": "Ada"}).status_code == 404
        assert client.get("/events/0/attendees").status_code == 404

    def test_mark_attendance_updates_duplicates(self, client, manager):
        client.post("/events", json=event_body())
        for name in ["Ada", "Ada", "Bob"]:
            client.post("/events/0/attendees", json={"name": name})

        r = client.post("/events/0/attendance", json={"name": "Ada", "isPresent": True})

        assert r.json() == {"ok": True, "updated": True}
        assert [a.is_present for a in manager.get_attendees(0)] == [True, True, False]

    def test_mark_attendance_unknown_name(self, client):
        client.post("/events", json=event_body())
        r = client.post("/events/0/attendance", json={"name": "Nobody", "isPresent": True})
        assert r.json()["updated"] is False


class TestPersistenceEndpoints:
    """Test save/reload and lifecycle persistence."""

    def test_save_then_reload(self, client, manager, data_file):
        client.post("/events", json=event_body())
        r = client.post("/events/save")
        assert r.json() == {"ok": True, "action": "saved", "path": str(data_file), "event_count": 1}

        manager.delete_event(0)
        r = client.post("/events/reload")
        assert r.json()["action"] == "loaded"
        assert len(manager) == 1

    def test_reload_missing_file_keeps_state(self, client, manager):
        client.post("/events", json=event_body())
        r = client.post("/events/reload")
        assert r.json()["action"] == "load_skipped"
        assert len(manager) == 1

    def test_reload_corrupt_file_is_400(self, client, manager, data_file):
        client.post("/events", json=event_body())
        data_file.write_text('[{"title":"x"}]', encoding="utf-8")

        r = client.post("/events/reload")

        assert r.status_code == 400
        assert r.json()["errors"]
        assert len(manager) == 1

    def test_startup_loads_and_shutdown_saves(self, data_file):
        stored = Event(title="Stored", date=datetime(2030, 1, 1), time="10:00", location="", description="")
        data_file.write_text(json.dumps([stored.to_json()]), encoding="utf-8")
        manager = EventManager()
        app = create_app(AppConfig(events_file=str(data_file)), manager=manager)

        with TestClient(app) as client:
            assert client.get("/events").json()["events"][0]["title"] == "Stored"
            client.post("/events/0/attendees", json={"name": "Ada"})

        saved = json.loads(data_file.read_text(encoding="utf-8"))
        assert saved[0]["attendees"] == [{"name": "Ada", "isPresent": False}]

    def test_autosave_after_mutation(self, data_file):
        app = create_app(AppConfig(events_file=str(data_file), autosave=True), manager=EventManager())
        client = TestClient(app)

        client.post("/events", json=event_body())

        assert json.loads(data_file.read_text(encoding="utf-8"))[0]["title"] == "Meetup"


class TestApiKey:
    """Test optional API key guard."""

    def test_guard_blocks_when_configured(self, data_file):
        app = create_app(AppConfig(events_file=str(data_file), api_key="secret123"), manager=EventManager())
        client = TestClient(app)

        r = client.get("/events")
        assert r.status_code == 401
        assert "api key" in r.json()["detail"].lower()

        r2 = client.get("/events", headers={"x-api-key": "secret123"})
        assert r2.status_code == 200
