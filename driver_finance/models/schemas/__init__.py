from .base import ResponseBase
from .owners import OwnerCreate, OwnerRead, PreferencesUpdate
from .records import RecordCreate, RecordUpdate, RecordRead
from .fuel import FuelLogCreate, FuelLogUpdate, FuelLogRead
from .maintenance import MaintenanceCreate, MaintenanceUpdate, MaintenanceRead
from .goals import GoalCreate, GoalUpdate, GoalRead
from .alerts import AlertCreate, AlertRead, AlertUpdate
from .benchmark import BenchmarkSubmit
from .achievements import AchievementRead, AchievementCheckResult

__all__ = [
    # Base
    "ResponseBase",

    # Owners
    "OwnerCreate",
    "OwnerRead",
    "PreferencesUpdate",

    # Records
    "RecordCreate",
    "RecordUpdate",
    "RecordRead",

    # Fuel & maintenance
    "FuelLogCreate",
    "FuelLogUpdate",
    "FuelLogRead",
    "MaintenanceCreate",
    "MaintenanceUpdate",
    "MaintenanceRead",

    # Goals
    "GoalCreate",
    "GoalUpdate",
    "GoalRead",

    # Alerts
    "AlertCreate",
    "AlertRead",
    "AlertUpdate",

    # Benchmark
    "BenchmarkSubmit",

    # Achievements
    "AchievementRead",
    "AchievementCheckResult",
]
