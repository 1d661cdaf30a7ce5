import secrets

from fastapi.testclient import TestClient


def _register(client: TestClient, **overrides):
    payload = {
        "name": "Maria Souza",
        "email": f"maria_{secrets.token_hex(4)}@example.com",
        "city": "Campinas",
        "state": "sp",
        "vehicle_type": "car",
    }
    payload.update(overrides)
    return client.post("/api/v1/owners/", json=payload)


def test_register_issues_key_and_default_preferences(client: TestClient):
    r = _register(client)
    assert r.status_code == 201, r.text
    body = r.json()
    assert len(body["api_key"]) == 32
    assert body["state"] == "SP"
    assert body["preferences"]["privacy"]["participate_benchmarking"] is False

    me = client.get("/api/v1/owners/me", headers={"Authorization": f"Bearer {body['api_key']}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["id"]


def test_duplicate_email_conflict(client: TestClient):
    email = f"dup_{secrets.token_hex(4)}@example.com"
    assert _register(client, email=email).status_code == 201
    second = _register(client, email=email)
    assert second.status_code == 409, second.text
    assert second.json()["field"] == "email"


def test_invalid_email_rejected(client: TestClient):
    r = _register(client, email="not-an-email")
    assert r.status_code == 422
    assert r.json()["field"] == "email"


def test_missing_or_bad_key(client: TestClient):
    assert client.get("/api/v1/owners/me").status_code in (401, 403)
    r = client.get("/api/v1/owners/me", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_inactive_owner_rejected(client: TestClient, owner_factory, db_session):
    owner = owner_factory()
    owner.is_active = False
    db_session.commit()
    r = client.get("/api/v1/owners/me", headers={"Authorization": f"Bearer {owner.api_key}"})
    assert r.status_code == 401


def test_preferences_deep_merge(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.put(
        "/api/v1/owners/me/preferences",
        json={"display": {"theme": "dark"}, "privacy": {"participate_benchmarking": True}},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    prefs = r.json()["data"]["preferences"]
    assert prefs["display"]["theme"] == "dark"
    assert prefs["display"]["currency"] == "BRL"
    assert prefs["privacy"]["participate_benchmarking"] is True
    assert prefs["privacy"]["share_data_for_improvements"] is False

    stored = client.get("/api/v1/owners/me/preferences", headers=headers).json()
    assert stored == prefs


def test_preferences_reject_unknown_theme(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.put("/api/v1/owners/me/preferences", json={"display": {"theme": "neon"}}, headers=headers)
    assert r.status_code == 422
    assert r.json()["field"] == "theme"


def test_health_and_root(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert "X-Request-ID" in r.headers
    root = client.get("/")
    assert root.json()["api_base"] == "/api/v1"


def test_request_id_is_echoed(client: TestClient):
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
