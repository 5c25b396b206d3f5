import pytest
from fastapi.testclient import TestClient

from household_agenda.app import create_app
from household_agenda.models import Goal

from tests.factories import make_event, make_task

CTX = {"context_id": "household"}


@pytest.fixture
def client(store, clock):
    store.add_event(make_event("e1", "Team meeting", "09:00", "10:00", assigned_to="alice"))
    store.add_event(make_event("e2", "School run", "10:30", "11:00", assigned_to="alice"))
    store.add_task(make_task("t1", "Pay water bill", due_date="2024-05-08"))
    store.add_task(make_task("t2", "Sort photos", tags=["inbox"]))
    store.add_goal(Goal(id="g1", title="Run a 10k", target_date="2024-05-10"))
    return TestClient(create_app(store=store, clock=clock))


def _task_payload(task_id="t1", **extra):
    return {"id": task_id, "type": "task", "title": f"Task {task_id}", **extra}


def test_day_agenda(client):
    resp = client.get("/api/agenda/day", params={**CTX, "date": "2024-05-08"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["date"] == "2024-05-08"
    assert body["revision"] == 0
    assert body["failures"] == []
    ids = [entry["id"] for entry in body["entries"]]
    assert ids == ["e1", "transition-2024-05-08-0", "e2", "unscheduled-t1", "unscheduled-t2"]
    assert body["entries"][0]["status"] == "current"


def test_day_agenda_defaults_to_today(client):
    resp = client.get("/api/agenda/day", params=CTX)
    assert resp.json()["date"] == "2024-05-08"


def test_bad_date_is_400(client):
    resp = client.get("/api/agenda/day", params={**CTX, "date": "08/05/2024"})
    assert resp.status_code == 400


def test_week_agenda(client):
    resp = client.get("/api/agenda/week", params={**CTX, "week_start": "2024-05-08"})
    assert resp.status_code == 200
    week = resp.json()["week"]
    assert (week["week_start"], week["week_end"]) == ("2024-05-06", "2024-05-12")
    assert [day["day_name"] for day in week["days"]][:2] == ["Monday", "Tuesday"]
    assert [day["is_today"] for day in week["days"]].index(True) == 2
    assert [day["is_weekend"] for day in week["days"]] == [False] * 5 + [True] * 2
    assert len(week["days"][0]["time_slots"]) == 68
    assert week["total_events"] == 2
    assert week["total_duration"] == 90


def test_sidebar_ranks_and_filters(client):
    resp = client.get("/api/sidebar", params=CTX)
    assert resp.status_code == 200
    sources = [entry["source"]["id"] for entry in resp.json()["entries"]]
    assert sorted(sources) == ["g1", "t1", "t2"]

    resp = client.get("/api/sidebar", params={**CTX, "due_today": "true"})
    assert [entry["source"]["id"] for entry in resp.json()["entries"]] == ["t1"]

    resp = client.get("/api/sidebar", params={**CTX, "item_types": ["goal"]})
    assert [entry["title"] for entry in resp.json()["entries"]] == ["Goal: Run a 10k"]


def test_contradictory_sidebar_filters_are_400(client):
    resp = client.get("/api/sidebar", params={**CTX, "due_today": "true", "overdue": "true"})
    assert resp.status_code == 400


def test_schedule_then_refresh_then_undo(client):
    resp = client.post("/api/schedule", json={
        "item": _task_payload("t1", estimated_duration=45),
        "slot_start": "13:00",
        "date": "2024-05-08",
    })
    assert resp.status_code == 200
    result = resp.json()
    assert result["end_time"] == "13:45"
    assert result["revision"] == 1

    assert client.get("/api/refresh").json() == {"revision": 1}
    assert client.get("/api/refresh", params={"seen": 0}).json()["stale"] is True

    day = client.get("/api/agenda/day", params={**CTX, "date": "2024-05-08"}).json()
    assert result["event_id"] in [entry["id"] for entry in day["entries"]]
    assert "unscheduled-t1" not in [entry["id"] for entry in day["entries"]]

    resp = client.post("/api/schedule/undo",
                       json={"item_id": "t1", "event_id": result["event_id"]})
    assert resp.status_code == 200
    assert resp.json()["revision"] == 2


def test_schedule_overflow_is_400(client):
    resp = client.post("/api/schedule", json={
        "item": _task_payload("t1"),
        "slot_start": "23:50",
        "date": "2024-05-08",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["state"] == "requested"


def test_schedule_marking_failure_is_502(client):
    resp = client.post("/api/schedule", json={
        "item": _task_payload("missing"),
        "slot_start": "13:00",
        "date": "2024-05-08",
    })
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["state"] == "event_created"
    assert detail["compensated"] is True


def test_quick_schedule(client):
    resp = client.post("/api/schedule/quick", json={"item": _task_payload("t2")})
    assert resp.status_code == 200
    assert resp.json()["start_time"] == "09:30"


def test_undo_unknown_event_is_404(client):
    resp = client.post("/api/schedule/undo", json={"event_id": "nope"})
    assert resp.status_code == 404


def test_defer(client):
    resp = client.post("/api/items/t1/defer",
                       json={"item": _task_payload("t1"), "option": "next-week"})
    assert resp.status_code == 200
    assert resp.json()["due_date"] == "2024-05-13T09:00:00"

    resp = client.post("/api/items/t2/defer",
                       json={"item": _task_payload("t1"), "option": "archive"})
    assert resp.status_code == 400

    resp = client.post("/api/items/t1/defer",
                       json={"item": _task_payload("t1"), "option": "someday"})
    assert resp.status_code == 422


def test_move_event_conflict_is_409(client):
    event = make_event("e2", "School run", "10:30", "11:00", assigned_to="alice")
    resp = client.patch("/api/events/e2/move", params=CTX, json={
        "event": event.model_dump(mode="json"),
        "target_date": "2024-05-08",
        "target_time": "09:15",
    })
    assert resp.status_code == 409
    report = resp.json()["detail"]["report"]
    assert [e["id"] for e in report["conflicting_events"]] == ["e1"]
    assert len(report["suggestions"]) == 3


def test_move_event(client):
    event = make_event("e2", "School run", "10:30", "11:00", assigned_to="alice")
    resp = client.patch("/api/events/e2/move", params=CTX, json={
        "event": event.model_dump(mode="json"),
        "target_date": "2024-05-09",
        "target_time": "15:00",
    })
    assert resp.status_code == 200
    assert resp.json()["end_time"] == "15:30"
    assert resp.json()["date"] == "2024-05-09"


def test_move_event_rejects_non_positive_duration(client):
    event = make_event("e2", "School run", "10:30", "11:00")
    resp = client.patch("/api/events/e2/move", json={
        "event": event.model_dump(mode="json"),
        "target_date": "2024-05-08",
        "target_time": "15:00",
        "new_duration": 0,
    })
    assert resp.status_code == 422
