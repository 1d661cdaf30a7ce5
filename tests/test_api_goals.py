from datetime import timedelta

from fastapi.testclient import TestClient

from driver_finance.models.db import Goal
from driver_finance.utils.time import month_start, utc_now


def test_second_monthly_goal_for_same_month_conflicts(client: TestClient, auth_header, db_session):
    headers, owner = auth_header
    first = client.post(
        "/api/v1/goals/",
        json={"type": "monthly", "target_value": 5000, "target_period": "2024-05-01"},
        headers=headers,
    )
    assert first.status_code == 201, first.text
    second = client.post(
        "/api/v1/goals/",
        json={"type": "monthly", "target_value": 8000, "target_period": "2024-05-20"},
        headers=headers,
    )
    assert second.status_code == 409, second.text
    assert second.json()["field"] == "target_period"
    assert db_session.query(Goal).filter(Goal.owner_id == owner.id).count() == 1


def test_monthly_goal_is_anchored_on_first_day(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.post(
        "/api/v1/goals/",
        json={"type": "monthly", "target_value": 5000, "target_period": "2024-05-17"},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json()["target_period"] == "2024-05-01"
    assert r.json()["current_value"] == 0


def test_progress_sync_is_idempotent(client: TestClient, auth_header, record_factory):
    headers, owner = auth_header
    today = utc_now().date()
    client.post(
        "/api/v1/goals/",
        json={"type": "monthly", "target_value": 1000, "target_period": today.isoformat()},
        headers=headers,
    )
    record_factory(owner, month_start(today), revenue=250)

    first = client.get("/api/v1/goals/current/progress", headers=headers)
    assert first.status_code == 200, first.text
    assert first.json()["updated"] is True
    assert first.json()["current_value"] == 250.0
    assert first.json()["progress"] == 25.0

    second = client.get("/api/v1/goals/current/progress", headers=headers)
    assert second.json()["updated"] is False
    assert second.json()["current_value"] == 250.0


def test_progress_without_goal(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.get("/api/v1/goals/current/progress", headers=headers)
    assert r.status_code == 200
    assert r.json()["exists"] is False
    assert r.json()["updated"] is False


def test_custom_progress_requires_bounds(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.get("/api/v1/goals/current/progress", params={"type": "custom"}, headers=headers)
    assert r.status_code == 422
    assert r.json()["field"] == "start_date"


def test_goal_reached_sets_achieved_at(client: TestClient, auth_header, record_factory):
    headers, owner = auth_header
    today = utc_now().date()
    client.post(
        "/api/v1/goals/",
        json={"type": "monthly", "target_value": 300, "target_period": today.isoformat()},
        headers=headers,
    )
    record_factory(owner, month_start(today), revenue=400)
    body = client.get("/api/v1/goals/current/progress", headers=headers).json()
    assert body["achieved"] is True
    assert body["achieved_at"] is not None
    assert body["progress"] == 100.0
    assert body["progress_raw"] > 100.0


def test_update_and_delete_goal(client: TestClient, auth_header):
    headers, _ = auth_header
    created = client.post(
        "/api/v1/goals/",
        json={"type": "weekly", "target_value": 1000, "target_period": "2024-05-15"},
        headers=headers,
    ).json()
    assert created["target_period"] == "2024-05-13"

    r = client.put(f"/api/v1/goals/{created['id']}", json={"achieved": True}, headers=headers)
    assert r.status_code == 200
    assert r.json()["achieved_at"] is not None
    r = client.put(f"/api/v1/goals/{created['id']}", json={"achieved": False}, headers=headers)
    assert r.json()["achieved_at"] is None

    listing = client.get("/api/v1/goals/", params={"type": "weekly"}, headers=headers)
    assert len(listing.json()) == 1
    assert client.delete(f"/api/v1/goals/{created['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/goals/{created['id']}", headers=headers).status_code == 404


def test_list_goals_for_month(client: TestClient, auth_header, goal_factory):
    headers, owner = auth_header
    today = utc_now().date()
    goal_factory(owner, month_start(today), 1000)
    goal_factory(owner, month_start(month_start(today) - timedelta(days=1)), 900)
    r = client.get("/api/v1/goals/", params={"period": today.isoformat()}, headers=headers)
    assert [g["target_value"] for g in r.json()] == [1000.0]
