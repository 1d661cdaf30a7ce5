"""Annual income-tax (IRPF) report for self-employed drivers.

Deductible expenses are fuel and maintenance only. The annual estimate uses
fuel-log and maintenance-log totals; the monthly Carnê-Leão estimate uses
the fuel/maintenance fields itemized on that month's records and applies the
annual thresholds divided by 12. That monthly table is a simplification and
is kept as is.
"""
from __future__ import annotations

import csv
import io
import math
from collections import OrderedDict
from dataclasses import dataclass, asdict, replace
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from driver_finance.config import EXPENSE_CATEGORIES, TAX_BRACKETS, ExpenseCategory, TaxBracket
from driver_finance.models.db import DailyRecord, FuelLog, Maintenance, Owner
from driver_finance.services import record_store
from driver_finance.services.record_store import DateRange, RecordFilter
from driver_finance.utils.metrics import as_float


@dataclass
class BracketSlice:
    label: str
    lower: float
    upper: Optional[float]
    rate: float
    taxable: float
    amount: float


@dataclass
class TaxComputation:
    base: float
    tax: float
    slices: list[BracketSlice]


@dataclass
class MonthlyEstimate:
    year: int
    month: int
    revenue: float = 0.0
    deductible_expenses: float = 0.0
    net_profit: float = 0.0
    estimated_tax: float = 0.0


def scale_brackets(brackets: Sequence[TaxBracket], factor: float) -> tuple[TaxBracket, ...]:
    return tuple(
        replace(b, upper=b.upper * factor if b.upper is not None else None)
        for b in brackets
    )


def progressive_tax(base: float, brackets: Sequence[TaxBracket] = TAX_BRACKETS) -> TaxComputation:
    """Tax owed on ``base`` under a progressive table, with the slices that contributed."""
    if base <= 0:
        return TaxComputation(base=base, tax=0.0, slices=[])

    tax = 0.0
    lower = 0.0
    slices: list[BracketSlice] = []
    for bracket in brackets:
        if base <= lower:
            break
        upper = bracket.upper if bracket.upper is not None else math.inf
        taxable = min(base, upper) - lower
        amount = taxable * bracket.rate
        slices.append(BracketSlice(
            label=bracket.label,
            lower=lower,
            upper=bracket.upper,
            rate=bracket.rate,
            taxable=taxable,
            amount=amount,
        ))
        tax += amount
        lower = upper
    return TaxComputation(base=base, tax=tax, slices=slices)


def _other_itemized(record: DailyRecord) -> float:
    return (
        as_float(record.expense_wash)
        + as_float(record.expense_toll)
        + as_float(record.expense_parking)
        + as_float(record.expense_other)
    )


def monthly_carne_leao(
    records: Sequence[DailyRecord],
    brackets: Sequence[TaxBracket] = TAX_BRACKETS,
) -> list[MonthlyEstimate]:
    monthly_brackets = scale_brackets(brackets, 1 / 12)
    months: "OrderedDict[tuple[int, int], MonthlyEstimate]" = OrderedDict()
    for record in records:
        key = (record.date.year, record.date.month)
        entry = months.setdefault(key, MonthlyEstimate(year=key[0], month=key[1]))
        entry.revenue += as_float(record.revenue)
        entry.deductible_expenses += as_float(record.expense_fuel) + as_float(record.expense_maintenance)

    for entry in months.values():
        entry.net_profit = entry.revenue - entry.deductible_expenses
        entry.estimated_tax = progressive_tax(entry.net_profit, monthly_brackets).tax
    return [months[key] for key in sorted(months)]


def _category_amounts(records: Sequence[DailyRecord], fuel_total: float, maintenance_total: float) -> dict[str, float]:
    return {
        "fuel": fuel_total,
        "maintenance": maintenance_total,
        "food": sum(as_float(r.expense_food) for r in records),
        "other": sum(_other_itemized(r) for r in records),
    }


def build_fiscal_report(
    owner: Owner,
    year: int,
    records: Sequence[DailyRecord],
    fuel_logs: Sequence[FuelLog],
    maintenances: Sequence[Maintenance],
    *,
    brackets: Sequence[TaxBracket] = TAX_BRACKETS,
    categories: Sequence[ExpenseCategory] = EXPENSE_CATEGORIES,
) -> dict[str, Any]:
    total_revenue = sum(as_float(r.revenue) for r in records)
    fuel_total = sum(as_float(f.total_cost) for f in fuel_logs)
    maintenance_total = sum(as_float(m.cost) for m in maintenances)
    amounts = _category_amounts(records, fuel_total, maintenance_total)

    deductible = sum(
        amounts.get(cat.key, 0.0) * cat.deductible_pct / 100 for cat in categories
    )
    other_expenses = sum(as_float(r.expense_food) + _other_itemized(r) for r in records)
    net_profit = total_revenue - deductible
    annual = progressive_tax(net_profit, brackets)

    return {
        "year": year,
        "owner": {"name": owner.name, "email": owner.email},
        "summary": {
            "total_revenue": total_revenue,
            "deductible_expenses": deductible,
            "other_expenses": other_expenses,
            "net_profit": net_profit,
            "estimated_tax": annual.tax,
        },
        "expense_categories": {
            cat.key: {
                "name": cat.label,
                "amount": amounts.get(cat.key, 0.0),
                "deductible": cat.deductible_pct > 0,
                "deductible_percentage": cat.deductible_pct,
                "manual_review": cat.manual_review,
            }
            for cat in categories
        },
        "tax_brackets": [asdict(s) for s in annual.slices],
        "monthly_carne_leao": [asdict(m) for m in monthly_carne_leao(records, brackets)],
        "records_count": len(records),
        "fuel_logs_count": len(fuel_logs),
        "maintenances_count": len(maintenances),
    }


def generate_fiscal_report(session: Session, owner: Owner, year: int) -> dict[str, Any]:
    window = DateRange(date(year, 1, 1), date(year, 12, 31))
    records = record_store.find_records(session, RecordFilter(owner_id=owner.id, date_range=window))
    fuel_logs = record_store.find_fuel_logs(session, owner.id, window)
    maintenances = record_store.find_maintenances(session, owner.id, window)
    return build_fiscal_report(owner, year, records, fuel_logs, maintenances)


def _money(value: float) -> str:
    return f"{value:.2f}"


def render_fiscal_report_csv(report: dict[str, Any]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    summary = report["summary"]

    writer.writerow(["INCOME TAX REPORT"])
    writer.writerow(["Year", report["year"]])
    writer.writerow(["Owner", report["owner"]["name"]])
    writer.writerow([])
    writer.writerow(["ANNUAL SUMMARY"])
    writer.writerow(["Description", "Amount"])
    writer.writerow(["Total revenue (taxable)", _money(summary["total_revenue"])])
    writer.writerow(["Deductible expenses", _money(summary["deductible_expenses"])])
    writer.writerow(["Net profit", _money(summary["net_profit"])])
    writer.writerow(["Estimated tax", _money(summary["estimated_tax"])])
    writer.writerow([])
    writer.writerow(["EXPENSE BREAKDOWN"])
    writer.writerow(["Category", "Amount", "Deductible", "Percentage"])
    for category in report["expense_categories"].values():
        writer.writerow([
            category["name"],
            _money(category["amount"]),
            "yes" if category["deductible"] else "no",
            f"{category['deductible_percentage']:g}%",
        ])
    writer.writerow([])
    writer.writerow(["MONTHLY CARNE-LEAO"])
    writer.writerow(["Month", "Revenue", "Deductible expenses", "Net profit", "Estimated tax"])
    for month in report["monthly_carne_leao"]:
        writer.writerow([
            f"{month['month']:02d}/{month['year']}",
            _money(month["revenue"]),
            _money(month["deductible_expenses"]),
            _money(month["net_profit"]),
            _money(month["estimated_tax"]),
        ])
    return buffer.getvalue()


__all__ = [
    "BracketSlice",
    "TaxComputation",
    "MonthlyEstimate",
    "scale_brackets",
    "progressive_tax",
    "monthly_carne_leao",
    "build_fiscal_report",
    "generate_fiscal_report",
    "render_fiscal_report_csv",
]
