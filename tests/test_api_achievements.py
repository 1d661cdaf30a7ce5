from datetime import timedelta

from fastapi.testclient import TestClient

from driver_finance.utils.time import utc_now


def test_check_unlocks_each_achievement_once(client: TestClient, auth_header, record_factory):
    headers, owner = auth_header
    r = client.post("/api/v1/achievements/", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {"message": "No new achievements", "unlocked": [], "achievements": []}

    record_factory(owner, utc_now().date() - timedelta(days=1))
    r = client.post("/api/v1/achievements/", headers=headers)
    body = r.json()
    assert body["unlocked"] == ["first_record"]
    assert body["message"] == "1 new achievement(s) unlocked!"
    assert body["achievements"][0]["title"] == "First Step"
    assert body["achievements"][0]["metadata"] == {}

    again = client.post("/api/v1/achievements/", headers=headers).json()
    assert again["unlocked"] == []

    listing = client.get("/api/v1/achievements/", headers=headers).json()
    assert [a["type"] for a in listing] == ["first_record"]
