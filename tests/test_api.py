from fastapi.testclient import TestClient

from roster.main import app

client = TestClient(app)

STAFF = [
    {"id": "amy", "name": "Amy", "group_id": "A", "certified": ["CT", "OPENING", "LATE"]},
    {"id": "ben", "name": "Ben", "group_id": "B", "certified": ["CT", "OPENING", "LATE"]},
]


def _seed():
    assert client.put("/api/settings", json={"cycle_start_date": "2030-01-01"}).status_code == 200
    assert client.put("/api/staff", json=STAFF).status_code == 200
    response = client.put("/api/stations", json=[{"name": "CT", "priority": 0}])
    assert response.status_code == 200


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_staff_round_trip_and_duplicate_ids():
    _seed()
    response = client.get("/api/staff")
    assert [member["id"] for member in response.json()] == ["amy", "ben"]
    assert response.headers["Cache-Control"].startswith("no-store")

    duplicate = client.put("/api/staff", json=[STAFF[0], STAFF[0]])
    assert duplicate.status_code == 400


def test_station_validation():
    assert client.put("/api/stations", json=[{"name": "OFF"}]).status_code == 422
    assert client.put("/api/stations", json=[{"name": "CT", "requirements": [1, 1]}]).status_code == 422
    assert client.put("/api/stations", json=[{"name": "CT", "requirements": [1, -1, 1, 1, 1, 1, 1]}]).status_code == 422

    response = client.put("/api/stations", json=[{"name": "ADMIN", "is_pool": True, "blocked_roles": ["LATE"]}])
    assert response.status_code == 200
    (station,) = client.get("/api/stations").json()
    assert station["requirements"] == [1] * 7
    assert station["blocked_roles"] == ["LATE"]


def test_auto_assign_stations_then_read_shifts():
    _seed()
    response = client.post("/api/auto-assign/stations", json={"start": "2024-06-10", "end": "2024-06-11"})
    assert response.status_code == 200
    body = response.json()
    assert len(body["written"]) == 2
    assert body["unfilled"] == []

    shifts = client.get("/api/shifts", params={"start": "2024-06-10", "end": "2024-06-11"}).json()
    assert {(s["date"], s["station"]) for s in shifts} == {("2024-06-10", "CT"), ("2024-06-11", "CT")}
    assert all(s["station_auto_generated"] for s in shifts)

    stats = client.get("/api/statistics", params={"start": "2024-06-10", "end": "2024-06-11"}).json()
    assert [(s["staff_id"], s["work_days"], s["off_days"], s["slots"]) for s in stats] == [
        ("amy", 2, 0, {"CT": 1}),
        ("ben", 2, 0, {"CT": 1}),
    ]


def test_auto_assign_roles_defaults_to_opening_and_late():
    _seed()
    response = client.post("/api/auto-assign/roles", json={"start": "2024-06-10", "end": "2024-06-10"})
    assert response.status_code == 200
    roles = sorted(role for s in response.json()["written"] for role in s["special_roles"])
    assert roles == ["LATE", "OPENING"]

    bad = client.post("/api/auto-assign/roles", json={"start": "2024-06-10", "end": "2024-06-10", "roles": ["JANITOR"]})
    assert bad.status_code == 422


def test_reversed_range_is_a_bad_request():
    _seed()
    response = client.post("/api/auto-assign/stations", json={"start": "2024-06-12", "end": "2024-06-10"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRange"
    assert client.get("/api/shifts", params={"start": "2024-06-12", "end": "2024-06-10"}).status_code == 400


def test_confirmed_cycle_locks_assignment_and_edits():
    _seed()
    cycle = client.post("/api/cycles", json={"name": "June A", "start_date": "2024-06-01", "end_date": "2024-06-14"})
    assert cycle.status_code == 201
    cycle_id = cycle.json()["id"]
    assert client.post(f"/api/cycles/{cycle_id}/confirm").json()["confirmed"] is True

    response = client.post("/api/auto-assign/stations", json={"start": "2024-06-10", "end": "2024-06-20"})
    assert response.status_code == 409
    assert response.json()["error"] == "CycleLocked"
    assert client.get("/api/shifts", params={"start": "2024-06-01", "end": "2024-06-30"}).json() == []

    edit = client.put("/api/shifts/amy/2024-06-10/station", json={"station": "CT"})
    assert edit.status_code == 409

    client.post(f"/api/cycles/{cycle_id}/unlock")
    assert client.post("/api/auto-assign/stations", json={"start": "2024-06-10", "end": "2024-06-20"}).status_code == 200


def test_cycle_with_reversed_dates_is_rejected():
    response = client.post("/api/cycles", json={"start_date": "2024-06-14", "end_date": "2024-06-01"})
    assert response.status_code == 422


def test_manual_edits_through_the_api():
    _seed()
    response = client.put("/api/shifts/amy/2024-06-10/station", json={"station": "CT"})
    assert response.status_code == 200
    assert response.json()["station_auto_generated"] is False

    response = client.post("/api/shifts/amy/2024-06-10/roles/OPENING")
    assert response.json()["special_roles"] == ["OPENING"]
    response = client.post("/api/shifts/amy/2024-06-10/roles/ASSIST")
    assert response.json()["special_roles"] == ["OPENING", "ASSIST"]
    assert response.json()["role_auto_generated"] is False

    assert client.put("/api/shifts/ghost/2024-06-10/station", json={"station": "CT"}).status_code == 404
    assert client.post("/api/shifts/amy/2024-06-10/roles/JANITOR").status_code == 400


def test_closed_date_blocks_edits():
    _seed()
    event = {"date": "2024-06-10", "type": "DEPARTMENT_CLOSED", "name": "Inventory"}
    assert client.post("/api/events", json=event).status_code == 201
    assert client.post("/api/events", json=event).status_code == 409

    response = client.put("/api/shifts/amy/2024-06-10/station", json={"station": "CT"})
    assert response.status_code == 409
    assert response.json()["error"] == "DateClosed"

    assert client.delete("/api/events/2024-06-10").status_code == 200
    assert client.get("/api/events").json() == []
