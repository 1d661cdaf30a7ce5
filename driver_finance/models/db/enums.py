"""Central Enum definitions for domain states.

These replace scattered string literals so DB models, schemas and the
analytics services agree on the same vocabulary.
"""
from __future__ import annotations
import enum


class GoalType(str, enum.Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class AlertCategory(str, enum.Enum):
    PERFORMANCE = "performance"
    OPPORTUNITY = "opportunity"
    MAINTENANCE = "maintenance"
    BENCHMARK = "benchmark"


class AlertSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class InsightTone(str, enum.Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    INFO = "info"


class BenchmarkPeriod(str, enum.Enum):
    MONTH = "month"
    WEEK = "week"


class StatsPeriod(str, enum.Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


class ComparisonPeriod(str, enum.Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


class EvolutionPeriod(str, enum.Enum):
    MONTH = "month"
    YEAR = "year"


class ExpenseStrategy(str, enum.Enum):
    ITEMIZED = "itemized"        # itemized fields as entered
    DERIVED_FUEL = "derived"     # itemized, fuel estimated from distance/efficiency/avg price
    RAW = "raw"                  # the record's total ``expenses`` field
    NONE = "none"


class ReportFormat(str, enum.Enum):
    JSON = "json"
    CSV = "csv"


class ExportFormat(str, enum.Enum):
    CSV = "csv"
    XLSX = "xlsx"


__all__ = [
    "GoalType",
    "AlertCategory",
    "AlertSeverity",
    "InsightTone",
    "BenchmarkPeriod",
    "StatsPeriod",
    "ComparisonPeriod",
    "EvolutionPeriod",
    "ExpenseStrategy",
    "ReportFormat",
    "ExportFormat",
]
