from .owners import Owner
from .records import DailyRecord, ITEMIZED_EXPENSE_FIELDS
from .fuel_logs import FuelLog
from .maintenances import Maintenance
from .goals import Goal
from .alerts import Alert
from .benchmark_entries import BenchmarkEntry
from .achievements import Achievement
from .api_keys import ApiKey
from .enums import GoalType, AlertCategory, AlertSeverity, BenchmarkPeriod

__all__ = [
    "Owner",
    "DailyRecord",
    "ITEMIZED_EXPENSE_FIELDS",
    "FuelLog",
    "Maintenance",
    "Goal",
    "Alert",
    "BenchmarkEntry",
    "Achievement",
    "ApiKey",
    "GoalType",
    "AlertCategory",
    "AlertSeverity",
    "BenchmarkPeriod",
]
