from datetime import timedelta

from fastapi.testclient import TestClient

from driver_finance.models.db import ApiKey
from driver_finance.services.api_keys import authenticate_api_key, hash_api_key, issue_api_key, is_live
from driver_finance.utils.time import utc_now


def test_issue_use_and_revoke_key(client: TestClient, auth_header, db_session):
    headers, owner = auth_header
    r = client.post("/api/v1/owners/me/api-keys", json={"name": "sheets sync", "expires_in_days": 30}, headers=headers)
    assert r.status_code == 201, r.text
    issued = r.json()
    raw_key = issued["key"]
    assert raw_key.startswith("sk_")
    assert issued["key_prefix"] == raw_key[:12]
    assert issued["expires_at"] is not None

    stored = db_session.query(ApiKey).one()
    assert stored.key_hash == hash_api_key(raw_key)
    assert raw_key not in (stored.key_hash, stored.key_prefix)

    me = client.get("/api/v1/owners/me", headers={"Authorization": f"Bearer {raw_key}"})
    assert me.status_code == 200
    assert me.json()["id"] == owner.id

    listing = client.get("/api/v1/owners/me/api-keys", headers=headers).json()
    assert [k["name"] for k in listing] == ["sheets sync"]
    assert "key" not in listing[0]
    assert listing[0]["last_used_at"] is not None

    r = client.delete(f"/api/v1/owners/me/api-keys/{issued['id']}", headers=headers)
    assert r.status_code == 200
    assert client.get("/api/v1/owners/me", headers={"Authorization": f"Bearer {raw_key}"}).status_code == 401
    assert client.get("/api/v1/owners/me/api-keys", headers=headers).json() == []
    # primary key is unaffected
    assert client.get("/api/v1/owners/me", headers=headers).status_code == 200


def test_cannot_revoke_another_owners_key(client: TestClient, owner_factory):
    owner, intruder = owner_factory(), owner_factory()
    created = client.post(
        "/api/v1/owners/me/api-keys",
        json={"name": "phone"},
        headers={"Authorization": f"Bearer {owner.api_key}"},
    ).json()
    r = client.delete(
        f"/api/v1/owners/me/api-keys/{created['id']}",
        headers={"Authorization": f"Bearer {intruder.api_key}"},
    )
    assert r.status_code == 404


def test_key_name_is_required(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.post("/api/v1/owners/me/api-keys", json={"name": ""}, headers=headers)
    assert r.status_code == 422
    assert r.json()["field"] == "name"


def test_expired_key_no_longer_authenticates(db_session, owner_factory):
    owner = owner_factory()
    now = utc_now()
    api_key, raw_key = issue_api_key(db_session, owner, "short lived", expires_in_days=1, now=now)

    assert authenticate_api_key(db_session, raw_key, now=now).id == owner.id
    later = now + timedelta(days=2)
    assert not is_live(api_key, later)
    assert authenticate_api_key(db_session, raw_key, now=later) is None


def test_inactive_owner_keys_are_rejected(db_session, owner_factory):
    owner = owner_factory()
    _, raw_key = issue_api_key(db_session, owner, "laptop")
    owner.is_active = False
    db_session.commit()
    assert authenticate_api_key(db_session, raw_key) is None
    assert authenticate_api_key(db_session, owner.api_key) is None
    assert authenticate_api_key(db_session, "") is None
