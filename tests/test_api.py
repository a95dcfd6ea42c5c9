from __future__ import annotations

from datetime import date
from urllib.parse import quote

import pytest

from src.club_attendance.club_attendance.container import build_container
from src.club_attendance.club_attendance.main import create_app


@pytest.fixture
def app(monkeypatch, memory_repo):
    monkeypatch.setenv("APP_ENV", "testing")
    container = build_container(backend="memory", attendance_repo=memory_repo)
    return create_app(CONTAINER=container)


@pytest.fixture
def client(app):
    return app.test_client()


def _url(key: str) -> str:
    return f"/api/attendance/sessions/{quote(key, safe='')}"


PAYLOAD = {
    "date": "2024-03-15",
    "branch": {"id": "b1", "name": "Central"},
    "group": {"id": "g1", "name": "Juniors", "branch_id": "b1"},
    "trainer": {"id": "t1", "name": "Ayse"},
    "entries": [
        {"student": {"id": "s1", "name": "Deniz"}, "status": "present"},
        {"student": {"id": "s2", "name": "Ece"}, "status": "absent", "notes": "sick"},
    ],
}


def test_take_attendance_then_list_sessions(client):
    resp = client.post("/api/attendance/sessions", json=PAYLOAD)
    assert resp.status_code == 201
    assert resp.get_json()["created"] == 2

    data = client.get("/api/attendance/sessions").get_json()
    assert data["success"] is True
    [session] = data["sessions"]
    assert session["key"] == "2024-03-15|g1|t1"
    assert session["present_count"] == 1
    assert session["absent_count"] == 1
    assert session["attendance_rate"] == 50.0


def test_session_detail_and_missing_session(client):
    client.post("/api/attendance/sessions", json=PAYLOAD)

    detail = client.get(_url("2024-03-15|g1|t1")).get_json()["session"]
    assert {r["student_name"] for r in detail["records"]} == {"Deniz", "Ece"}

    assert client.get(_url("2020-01-01|g1|t1")).status_code == 404


def test_edit_and_delete_session(client):
    client.post("/api/attendance/sessions", json=PAYLOAD)
    detail = client.get(_url("2024-03-15|g1|t1")).get_json()["session"]
    absent = next(r["id"] for r in detail["records"] if r["status"] == "absent")

    resp = client.patch(_url("2024-03-15|g1|t1"), json={"edits": {absent: "excused"}})
    assert resp.get_json() == {"success": True, "updated": 1}
    assert client.get(_url("2024-03-15|g1|t1")).get_json()["session"]["excused_count"] == 1

    resp = client.delete(_url("2024-03-15|g1|t1"))
    assert resp.get_json() == {"success": True, "deleted": 2}
    assert client.get("/api/attendance/sessions").get_json()["sessions"] == []


def test_list_filters(client):
    client.post("/api/attendance/sessions", json=PAYLOAD)
    other = dict(PAYLOAD, group={"id": "g2", "name": "Seniors", "branch_id": "b1"}, date="2024-03-16")
    client.post("/api/attendance/sessions", json=other)

    def keys(qs):
        return [s["key"] for s in client.get(f"/api/attendance/sessions?{qs}").get_json()["sessions"]]

    assert keys("") == ["2024-03-16|g2|t1", "2024-03-15|g1|t1"]
    assert keys("q=senior") == ["2024-03-16|g2|t1"]
    assert keys("group_id=g1") == ["2024-03-15|g1|t1"]
    assert keys("date=2024-03-15") == ["2024-03-15|g1|t1"]
    assert client.get("/api/attendance/sessions?date=soon").status_code == 400


def test_validation_errors_are_400(client):
    assert client.post("/api/attendance/sessions", data="nope").status_code == 400

    bad = dict(PAYLOAD, entries=[{"student": {"id": "s1", "name": "Deniz"}, "status": "asleep"}])
    resp = client.post("/api/attendance/sessions", json=bad)
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_writes_need_capability(app, client):
    app.config["ATTENDANCE_CAN_MANAGE"] = lambda: False

    assert client.post("/api/attendance/sessions", json=PAYLOAD).status_code == 403
    assert client.get("/api/attendance/sessions").get_json()["sessions"] == []


def test_student_history(client):
    client.post("/api/attendance/sessions", json=PAYLOAD)
    client.post("/api/attendance/sessions", json=dict(PAYLOAD, date="2024-03-22"))

    records = client.get("/api/attendance/students/s1/history?limit=1").get_json()["records"]

    assert len(records) == 1
    assert records[0]["date"] == date(2024, 3, 22).isoformat()
    assert client.get("/api/attendance/students/s1/history?limit=x").status_code == 400


def test_stats(client):
    client.post("/api/attendance/sessions", json=PAYLOAD)

    data = client.get("/api/attendance/stats?start=2024-03-01&end=2024-03-31&period=month").get_json()

    assert data["stats"]["total_sessions"] == 1
    assert data["stats"]["average_attendance"] == 50.0
    assert data["trend"] == [{"period": "2024-03", "present": 1, "absent": 1, "total": 2, "rate": 50.0}]
    assert client.get("/api/attendance/stats?start=2024-03-31&end=2024-03-01").status_code == 400
    assert client.get("/api/attendance/stats?period=year").status_code == 400


@pytest.mark.parametrize("flag", [False, 0, ""])
def test_plain_false_capability_blocks_writes(app, client, flag):
    app.config["ATTENDANCE_CAN_MANAGE"] = flag

    assert client.post("/api/attendance/sessions", json=PAYLOAD).status_code == 403
    assert client.get("/api/attendance/sessions").get_json()["sessions"] == []


def test_plain_true_capability_allows_writes(app, client):
    app.config["ATTENDANCE_CAN_MANAGE"] = True

    assert client.post("/api/attendance/sessions", json=PAYLOAD).status_code == 201
