from fastapi.testclient import TestClient


def test_fuel_total_defaults_to_liters_times_price(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.post(
        "/api/v1/fuel/",
        json={"date": "2024-05-06", "liters": 40, "price": 5.899, "odometer": 48210},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    fuel_id = r.json()["id"]
    assert r.json()["total_cost"] == 235.96

    r = client.put(f"/api/v1/fuel/{fuel_id}", json={"liters": 50}, headers=headers)
    assert r.json()["total_cost"] == 294.95

    r = client.put(f"/api/v1/fuel/{fuel_id}", json={"total_cost": 300}, headers=headers)
    assert r.json()["total_cost"] == 300.0


def test_fuel_validation_and_listing(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.post("/api/v1/fuel/", json={"date": "2024-05-06", "liters": 0, "price": 5.0}, headers=headers)
    assert r.status_code == 422
    assert r.json()["field"] == "liters"

    for day in ("2024-05-01", "2024-06-01"):
        client.post("/api/v1/fuel/", json={"date": day, "liters": 10, "price": 6.0}, headers=headers)
    r = client.get("/api/v1/fuel/", params={"start_date": "2024-05-01", "end_date": "2024-05-31"}, headers=headers)
    assert [f["date"] for f in r.json()] == ["2024-05-01"]


def test_maintenance_crud(client: TestClient, auth_header, owner_factory):
    headers, _ = auth_header
    payload = {
        "date": "2024-05-06",
        "type": "oil_change",
        "description": "Oil and filter",
        "cost": 180.0,
        "odometer": 48000,
        "next_odometer": 53000,
    }
    r = client.post("/api/v1/maintenance/", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    maintenance_id = r.json()["id"]

    r = client.put(f"/api/v1/maintenance/{maintenance_id}", json={"cost": 200.0, "notes": None}, headers=headers)
    assert r.json()["cost"] == 200.0
    assert r.json()["next_odometer"] == 53000.0

    intruder = owner_factory()
    r = client.get(f"/api/v1/maintenance/{maintenance_id}", headers={"Authorization": f"Bearer {intruder.api_key}"})
    assert r.status_code == 404

    assert client.delete(f"/api/v1/maintenance/{maintenance_id}", headers=headers).status_code == 200
    assert client.get("/api/v1/maintenance/", headers=headers).json() == []
