import csv
import io
from datetime import date

import pandas as pd
from fastapi.testclient import TestClient

from driver_finance.models.db import FuelLog, Maintenance
from driver_finance.services.record_export import RECORD_COLUMNS


def test_csv_export_lists_records_then_fuel_and_maintenance(client: TestClient, auth_header, record_factory, db_session):
    headers, owner = auth_header
    record_factory(owner, date(2024, 5, 6), revenue=300.0, platforms=["uber"], notes="airport, late")
    record_factory(owner, date(2024, 5, 7), revenue=250.0, expenses=50.0)
    record_factory(owner, date(2024, 6, 1), revenue=999.0)
    db_session.add(FuelLog(owner_id=owner.id, date=date(2024, 5, 6), liters=40, price=6.0, total_cost=240.0))
    db_session.add(Maintenance(owner_id=owner.id, date=date(2024, 5, 2), type="oil", description="Oil", cost=180.0))
    db_session.commit()

    r = client.get(
        "/api/v1/records/export",
        params={"format": "csv", "start_date": "2024-05-01", "end_date": "2024-05-31"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="records-' in r.headers["content-disposition"]
    assert r.headers["content-disposition"].endswith('.csv"')

    rows = list(csv.reader(io.StringIO(r.text)))
    assert rows[0] == RECORD_COLUMNS
    assert [row[0] for row in rows[1:3]] == ["2024-05-07", "2024-05-06"]
    assert rows[2][RECORD_COLUMNS.index("Notes")] == "airport, late"
    assert ["Fuel logs"] in rows
    assert ["Maintenances"] in rows
    assert not any(row and row[0] == "2024-06-01" for row in rows)


def test_xlsx_export_has_summary_and_records_sheets(client: TestClient, auth_header, record_factory):
    headers, owner = auth_header
    record_factory(owner, date(2024, 5, 6), revenue=300.0, expenses=100.0)
    record_factory(owner, date(2024, 5, 7), revenue=200.0, expenses=0)

    r = client.get("/api/v1/records/export", params={"format": "xlsx"}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    sheets = pd.read_excel(io.BytesIO(r.content), sheet_name=None)
    assert list(sheets) == ["Summary", "Records"]
    summary = dict(zip(sheets["Summary"]["Item"], sheets["Summary"]["Value"]))
    assert summary["Period"] == "All time"
    assert float(summary["Total profit"]) == 400.0
    assert len(sheets["Records"]) == 2


def test_export_rejects_unknown_format_and_inverted_range(client: TestClient, auth_header):
    headers, _ = auth_header
    assert client.get("/api/v1/records/export", params={"format": "pdf"}, headers=headers).status_code == 422
    r = client.get(
        "/api/v1/records/export",
        params={"start_date": "2024-05-31", "end_date": "2024-05-01"},
        headers=headers,
    )
    assert r.status_code == 422
    assert r.json()["field"] == "start_date"


def test_export_requires_auth(client: TestClient):
    assert client.get("/api/v1/records/export").status_code in (401, 403)
