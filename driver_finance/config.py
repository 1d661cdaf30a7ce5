"""Core application configuration & tunable analytics rules.

Business thresholds that may evolve (insight heuristics, tax brackets,
achievement criteria, rate limits) are centralized here so they can be
adjusted without diving into service logic. Rule tables are immutable and
passed into the evaluating functions as parameters; the module-level values
below are only the defaults. Rate limit settings stay as a plain mutable dict
so tests can shrink windows in place.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

API_VERSION: str = "1.0.0"
SERVICE_NAME: str = "driver-finance-backend"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str | None = os.getenv("LOG_FILE", "logs/app.log") or None
CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")

# ------------------------------ Rate Limiting ----------------------------- #
# Category -> fixed window settings. Writes to daily records get their own
# tighter bucket; everything else shares the default one.
RATE_LIMIT_SETTINGS: dict[str, dict[str, int]] = {
	"default": {
		"limit": int(os.getenv("RATE_LIMIT_DEFAULT", "1000")),
		"window_seconds": 3600,
	},
	"record_write": {
		"limit": int(os.getenv("RATE_LIMIT_RECORD_WRITES", "20")),
		"window_seconds": 60,
	},
	"alert_generate": {
		"limit": 10,
		"window_seconds": 60,
	},
}

# Upper bound on tracked limiter keys; expired windows are evicted first.
RATE_LIMIT_MAX_KEYS: int = int(os.getenv("RATE_LIMIT_MAX_KEYS", "500"))


# -------------------------------- Fiscal ---------------------------------- #
@dataclass(frozen=True)
class TaxBracket:
	"""One slice of a progressive table. ``upper`` of None means unbounded."""
	upper: float | None
	rate: float
	label: str


# Annual IRPF table (values in BRL).
TAX_BRACKETS: tuple[TaxBracket, ...] = (
	TaxBracket(upper=22847.76, rate=0.0, label="Exempt"),
	TaxBracket(upper=33919.80, rate=0.075, label="7.5%"),
	TaxBracket(upper=45012.60, rate=0.15, label="15%"),
	TaxBracket(upper=55976.16, rate=0.225, label="22.5%"),
	TaxBracket(upper=None, rate=0.275, label="27.5%"),
)


@dataclass(frozen=True)
class ExpenseCategory:
	key: str
	label: str
	deductible_pct: float
	manual_review: bool = False


EXPENSE_CATEGORIES: tuple[ExpenseCategory, ...] = (
	ExpenseCategory(key="fuel", label="Fuel", deductible_pct=100.0),
	ExpenseCategory(key="maintenance", label="Maintenance", deductible_pct=100.0),
	ExpenseCategory(key="food", label="Food", deductible_pct=0.0),
	ExpenseCategory(key="other", label="Wash, toll, parking and other", deductible_pct=0.0, manual_review=True),
)


# ------------------------- Insights & Alert Rules ------------------------- #
@dataclass(frozen=True)
class InsightRules:
	window_days: int = 30
	sample_size: int = 7                     # "last 7 days" slices
	low_profit_per_distance: float = 1.5
	high_profit_per_distance: float = 2.5
	insight_best_day_min_records: int = 7
	opportunity_min_records: int = 14
	opportunity_min_samples: int = 3
	cost_increase_factor: float = 1.10
	expected_workdays: int = 22
	workday_ratio: float = 0.8
	goal_risk_progress_pct: float = 50.0
	goal_risk_days: int = 10
	maintenance_warning_distance: float = 500.0
	expense_ratio_pct: float = 60.0
	max_insights: int = 4
	dedup_scan_limit: int = 20


INSIGHT_RULES = InsightRules()

ACTION_URLS: Mapping[str, str] = MappingProxyType({
	"dashboard": "/dashboard",
	"history": "/dashboard/history",
	"goals": "/dashboard/goals",
	"maintenance": "/dashboard/maintenance",
	"benchmark": "/dashboard/benchmark",
})


# ----------------------------- Achievements ------------------------------- #
@dataclass(frozen=True)
class AchievementRules:
	streak_days: int = 7
	hundred_days: int = 100
	efficiency_window_days: int = 30
	efficiency_min_records: int = 20
	efficiency_min_profit_per_distance: float = 3.0
	growth_min_pct: float = 20.0


ACHIEVEMENT_RULES = AchievementRules()


# ------------------------------ Benchmarking ------------------------------ #
BENCHMARK_SETTINGS: Mapping[str, str] = MappingProxyType({
	"default_period": "month",
	"insufficient_data_message": "Not enough benchmark data for the selected filters",
})


__all__ = [
	"API_VERSION",
	"SERVICE_NAME",
	"LOG_LEVEL",
	"LOG_FILE",
	"CORS_ORIGINS",
	"RATE_LIMIT_SETTINGS",
	"RATE_LIMIT_MAX_KEYS",
	"TaxBracket",
	"TAX_BRACKETS",
	"ExpenseCategory",
	"EXPENSE_CATEGORIES",
	"InsightRules",
	"INSIGHT_RULES",
	"ACTION_URLS",
	"AchievementRules",
	"ACHIEVEMENT_RULES",
	"BENCHMARK_SETTINGS",
]
