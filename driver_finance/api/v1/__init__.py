"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import (
    owners, records, fuel, maintenance, goals, alerts, insights, benchmark, reports, stats, achievements
)

api_router = APIRouter()

api_router.include_router(
    owners.router,
    prefix="/owners",
    tags=["owners"]
)

api_router.include_router(
    records.router,
    prefix="/records",
    tags=["records"]
)

api_router.include_router(
    fuel.router,
    prefix="/fuel",
    tags=["fuel"]
)

api_router.include_router(
    maintenance.router,
    prefix="/maintenance",
    tags=["maintenance"]
)

api_router.include_router(
    goals.router,
    prefix="/goals",
    tags=["goals"]
)

api_router.include_router(
    alerts.router,
    prefix="/alerts",
    tags=["alerts"]
)

api_router.include_router(
    insights.router,
    prefix="/insights",
    tags=["insights"]
)

api_router.include_router(
    benchmark.router,
    prefix="/benchmark",
    tags=["benchmark"]
)

api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["reports"]
)

api_router.include_router(
    stats.router,
    prefix="/stats",
    tags=["stats"]
)

api_router.include_router(
    achievements.router,
    prefix="/achievements",
    tags=["achievements"]
)
