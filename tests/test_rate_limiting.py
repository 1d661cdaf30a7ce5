from fastapi.testclient import TestClient

from driver_finance.utils.ratelimiter import rate_limiter


def _record(day: int):
    return {"date": f"2024-05-{day:02d}", "revenue": 100.0, "distance": 10.0}


def test_record_writes_are_limited(client: TestClient, auth_header, fast_limits):
    fast_limits("record_write", 3)
    headers, _ = auth_header

    for i in range(3):
        r = client.post("/api/v1/records/", json=_record(i + 1), headers=headers)
        assert r.status_code == 201, r.text
        assert r.headers.get("X-RateLimit-Limit") == "3"
        assert int(r.headers.get("X-RateLimit-Remaining")) == 3 - (i + 1)

    r = client.post("/api/v1/records/", json=_record(10), headers=headers)
    assert r.status_code == 429
    body = r.json()
    assert body["message"].startswith("Rate limit exceeded")
    assert body["category"] == "record_write"
    assert int(r.headers["Retry-After"]) >= 1
    assert r.headers.get("X-RateLimit-Remaining") == "0"

    # Reads use the default bucket
    assert client.get("/api/v1/records/", headers=headers).status_code == 200


def test_limits_are_per_key(client: TestClient, owner_factory, fast_limits):
    fast_limits("record_write", 1)
    a, b = owner_factory(), owner_factory()
    assert client.post("/api/v1/records/", json=_record(1), headers={"Authorization": f"Bearer {a.api_key}"}).status_code == 201
    assert client.post("/api/v1/records/", json=_record(2), headers={"Authorization": f"Bearer {a.api_key}"}).status_code == 429
    assert client.post("/api/v1/records/", json=_record(1), headers={"Authorization": f"Bearer {b.api_key}"}).status_code == 201


def test_alert_generation_has_its_own_bucket(client: TestClient, auth_header, fast_limits):
    fast_limits("alert_generate", 1)
    headers, _ = auth_header
    assert client.post("/api/v1/alerts/generate", headers=headers).status_code == 200
    r = client.post("/api/v1/alerts/generate", headers=headers)
    assert r.status_code == 429
    assert r.json()["category"] == "alert_generate"


def test_detailed_health_reports_limiter(client: TestClient):
    client.get("/health")
    r = client.get("/health/detailed")
    assert r.status_code == 200
    assert r.json()["checks"]["rate_limiter"]["tracked_keys"] >= 1


def test_unknown_bearer_keys_share_the_anonymous_bucket(client: TestClient, owner_factory, fast_limits):
    fast_limits("default", 2)
    assert [client.get("/health").status_code for _ in range(3)] == [200, 200, 429]

    made_up = [
        client.get("/health", headers={"Authorization": f"Bearer junk{i}"}).status_code
        for i in range(5)
    ]
    assert made_up == [429] * 5

    owner = owner_factory()
    r = client.get("/health", headers={"Authorization": f"Bearer {owner.api_key}"})
    assert r.status_code == 200
    assert r.headers["X-RateLimit-Remaining"] == "1"


def test_made_up_keys_do_not_grow_the_key_table(client: TestClient):
    for i in range(10):
        client.get("/health", headers={"Authorization": f"Bearer junk{i}"})
    assert len(rate_limiter) == 1
