"""Spreadsheet export of daily records.

CSV: one row per record, followed by fuel and maintenance sections when the
window has any. XLSX: a summary sheet, the detailed record sheet and, when
present, fuel and maintenance sheets.
"""
from __future__ import annotations

import io
from typing import Optional, Sequence

import pandas as pd

from driver_finance.models.db import DailyRecord, FuelLog, Maintenance
from driver_finance.services.record_store import DateRange
from driver_finance.utils.metrics import as_float, round_money, safe_div

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

RECORD_COLUMNS = [
    "Date",
    "Platforms",
    "Revenue",
    "Total expenses",
    "Profit",
    "Distance (km)",
    "Profit/km",
    "Km per litre",
    "Trips",
    "Hours worked",
    "Start time",
    "End time",
    "Average ticket",
    "Profit/hour",
    "Fuel",
    "Maintenance",
    "Food",
    "Wash",
    "Toll",
    "Parking",
    "Other",
    "Notes",
]
FUEL_COLUMNS = ["Date", "Litres", "Unit price", "Total cost", "Odometer"]
MAINTENANCE_COLUMNS = ["Date", "Type", "Description", "Cost", "Odometer", "Next date", "Next odometer"]


def _optional_money(value) -> Optional[float]:
    return round_money(value) if value else None


def record_row(record: DailyRecord) -> dict:
    revenue = as_float(record.revenue)
    profit = as_float(record.profit)
    distance = as_float(record.distance)
    trips = record.trips_count or 0
    hours = as_float(record.hours_worked)
    return {
        "Date": record.date.isoformat(),
        "Platforms": "; ".join(record.platforms or []),
        "Revenue": round_money(revenue),
        "Total expenses": round_money(as_float(record.expenses)),
        "Profit": round_money(profit),
        "Distance (km)": round_money(distance),
        "Profit/km": round_money(safe_div(profit, distance)),
        "Km per litre": record.fuel_efficiency,
        "Trips": record.trips_count,
        "Hours worked": record.hours_worked,
        "Start time": record.start_time or "",
        "End time": record.end_time or "",
        "Average ticket": round_money(safe_div(revenue, trips)) if trips else None,
        "Profit/hour": round_money(safe_div(profit, hours)) if hours else None,
        "Fuel": _optional_money(record.expense_fuel),
        "Maintenance": _optional_money(record.expense_maintenance),
        "Food": _optional_money(record.expense_food),
        "Wash": _optional_money(record.expense_wash),
        "Toll": _optional_money(record.expense_toll),
        "Parking": _optional_money(record.expense_parking),
        "Other": _optional_money(record.expense_other),
        "Notes": record.notes or "",
    }


def records_frame(records: Sequence[DailyRecord]) -> pd.DataFrame:
    return pd.DataFrame([record_row(r) for r in records], columns=RECORD_COLUMNS)


def fuel_frame(fuel_logs: Sequence[FuelLog]) -> pd.DataFrame:
    rows = [
        {
            "Date": log.date.isoformat(),
            "Litres": as_float(log.liters),
            "Unit price": as_float(log.price),
            "Total cost": round_money(as_float(log.total_cost)),
            "Odometer": log.odometer,
        }
        for log in fuel_logs
    ]
    return pd.DataFrame(rows, columns=FUEL_COLUMNS)


def maintenance_frame(maintenances: Sequence[Maintenance]) -> pd.DataFrame:
    rows = [
        {
            "Date": m.date.isoformat(),
            "Type": m.type,
            "Description": m.description,
            "Cost": round_money(as_float(m.cost)),
            "Odometer": m.odometer,
            "Next date": m.next_date.isoformat() if m.next_date else "",
            "Next odometer": m.next_odometer,
        }
        for m in maintenances
    ]
    return pd.DataFrame(rows, columns=MAINTENANCE_COLUMNS)


def describe_window(window: DateRange) -> str:
    if window.start is None and window.end is None:
        return "All time"
    start = window.start.isoformat() if window.start else "..."
    end = window.end.isoformat() if window.end else "..."
    return f"{start} to {end}"


def summary_frame(records: Sequence[DailyRecord], owner_name: str, window: DateRange) -> pd.DataFrame:
    rows = [
        ("Period", describe_window(window)),
        ("Owner", owner_name),
        ("Records", len(records)),
        ("Total revenue", round_money(sum(as_float(r.revenue) for r in records))),
        ("Total expenses", round_money(sum(as_float(r.expenses) for r in records))),
        ("Total profit", round_money(sum(as_float(r.profit) for r in records))),
        ("Total distance (km)", round_money(sum(as_float(r.distance) for r in records))),
    ]
    return pd.DataFrame(rows, columns=["Item", "Value"])


def render_records_csv(
    records: Sequence[DailyRecord],
    fuel_logs: Sequence[FuelLog] = (),
    maintenances: Sequence[Maintenance] = (),
) -> str:
    output = io.StringIO()
    records_frame(records).to_csv(output, index=False)
    for title, frame in (
        ("Fuel logs", fuel_frame(fuel_logs)),
        ("Maintenances", maintenance_frame(maintenances)),
    ):
        if frame.empty:
            continue
        output.write(f"\n{title}\n")
        frame.to_csv(output, index=False)
    return output.getvalue()


def render_records_xlsx(
    records: Sequence[DailyRecord],
    owner_name: str,
    window: DateRange,
    fuel_logs: Sequence[FuelLog] = (),
    maintenances: Sequence[Maintenance] = (),
) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        summary_frame(records, owner_name, window).to_excel(writer, sheet_name="Summary", index=False)
        records_frame(records).to_excel(writer, sheet_name="Records", index=False)
        if fuel_logs:
            fuel_frame(fuel_logs).to_excel(writer, sheet_name="Fuel", index=False)
        if maintenances:
            maintenance_frame(maintenances).to_excel(writer, sheet_name="Maintenance", index=False)
    return output.getvalue()


__all__ = [
    "XLSX_MEDIA_TYPE",
    "RECORD_COLUMNS",
    "record_row",
    "records_frame",
    "fuel_frame",
    "maintenance_frame",
    "summary_frame",
    "render_records_csv",
    "render_records_xlsx",
]
