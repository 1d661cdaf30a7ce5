import csv
import io
from datetime import date, timedelta

from fastapi.testclient import TestClient

from driver_finance.models.db import BenchmarkEntry, FuelLog, Maintenance
from driver_finance.utils.time import month_start, utc_now


def _headers(owner):
    return {"Authorization": f"Bearer {owner.api_key}"}


def test_submit_refused_without_opt_in(client: TestClient, owner_factory, record_factory, db_session):
    owner = owner_factory(benchmarking=False)
    record_factory(owner, date(2024, 5, 6))
    r = client.post("/api/v1/benchmark/submit", json={"period": "month", "period_date": "2024-05-01"}, headers=_headers(owner))
    assert r.status_code == 403, r.text
    assert r.json()["success"] is False
    assert db_session.query(BenchmarkEntry).count() == 0


def test_opt_in_through_preferences_then_submit(client: TestClient, owner_factory, record_factory, db_session):
    owner = owner_factory(benchmarking=False)
    record_factory(owner, date(2024, 5, 6), platforms=["uber", "99"])
    client.put(
        "/api/v1/owners/me/preferences",
        json={"privacy": {"participate_benchmarking": True}},
        headers=_headers(owner),
    )
    r = client.post("/api/v1/benchmark/submit", json={"period_date": "2024-05-01"}, headers=_headers(owner))
    assert r.status_code == 201, r.text
    assert r.json()["data"]["entries"] == 2
    assert db_session.query(BenchmarkEntry).count() == 2


def test_stats_compare_with_peers(client: TestClient, owner_factory, record_factory):
    peers = [owner_factory(benchmarking=True) for _ in range(2)]
    for peer, revenue in zip(peers, (100.0, 300.0)):
        record_factory(peer, date(2024, 5, 6), revenue=revenue, expenses=0)
        r = client.post("/api/v1/benchmark/submit", json={"period_date": "2024-05-01"}, headers=_headers(peer))
        assert r.status_code == 201

    me = owner_factory()
    record_factory(me, date(2024, 5, 7), revenue=200.0, expenses=0)
    body = client.get("/api/v1/benchmark/stats", headers=_headers(me)).json()
    assert body["stats"]["sample_size"] == 2
    assert body["stats"]["avg_daily_profit"] == 200.0
    assert body["user_stats"]["avg_daily_profit"] == 200.0
    assert body["percentile"] == 50.0

    elsewhere = client.get("/api/v1/benchmark/stats", params={"city": "Recife"}, headers=_headers(me)).json()
    assert elsewhere["stats"] is None
    assert elsewhere["percentile"] is None


def test_fiscal_report_json_and_csv(client: TestClient, auth_header, record_factory, db_session):
    headers, owner = auth_header
    record_factory(owner, date(2023, 3, 10), revenue=30000.0, expense_food=100.0)
    record_factory(owner, date(2023, 7, 10), revenue=10000.0)
    db_session.add(FuelLog(owner_id=owner.id, date=date(2023, 3, 9), liters=50, price=6.0, total_cost=300.0))
    db_session.add(Maintenance(owner_id=owner.id, date=date(2023, 5, 1), type="oil", description="Oil", cost=200.0))
    db_session.commit()

    r = client.get("/api/v1/reports/fiscal", params={"year": 2023}, headers=headers)
    assert r.status_code == 200, r.text
    summary = r.json()["summary"]
    assert summary["total_revenue"] == 40000.0
    assert summary["deductible_expenses"] == 500.0
    assert summary["net_profit"] == 39500.0
    assert summary["estimated_tax"] > 0
    assert len(r.json()["monthly_carne_leao"]) == 2

    csv_response = client.get("/api/v1/reports/fiscal", params={"year": 2023, "format": "csv"}, headers=headers)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert 'filename="income-tax-report-2023.csv"' in csv_response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(csv_response.text)))
    assert ["Total revenue (taxable)", "40000.00"] in rows


def test_empty_fiscal_year(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.get("/api/v1/reports/fiscal", params={"year": 2020}, headers=headers)
    assert r.json()["summary"]["estimated_tax"] == 0
    assert r.json()["monthly_carne_leao"] == []


def test_dashboard_stats(client: TestClient, auth_header, record_factory, db_session):
    headers, owner = auth_header
    today = utc_now().date()
    db_session.add(FuelLog(owner_id=owner.id, date=today, liters=40, price=6.0, total_cost=240.0))
    db_session.commit()
    record_factory(owner, today, revenue=300, distance=120, fuel_efficiency=12, expense_food=20)
    record_factory(owner, month_start(today) - timedelta(days=1), revenue=500, distance=50, expenses=100)

    r = client.get("/api/v1/stats/dashboard", params={"period": "today"}, headers=headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["average_fuel_price"] == 6.0
    stats = body["stats"]
    assert stats["days_worked"] == 1
    # 120 km / 12 km per litre * 6.00
    assert stats["fuel_cost"] == 60.0
    assert stats["expenses"] == 80.0
    assert stats["profit"] == 220.0
    assert stats["expense_strategy"] == "derived"
    assert body["all_time"]["days_worked"] == 2
    assert body["all_time"]["revenue"] == 800.0


def test_dashboard_custom_period_requires_dates(client: TestClient, auth_header):
    headers, _ = auth_header
    r = client.get("/api/v1/stats/dashboard", params={"period": "custom"}, headers=headers)
    assert r.status_code == 422
    assert r.json()["field"] == "start_date"
