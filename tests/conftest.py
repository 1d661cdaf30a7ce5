import secrets
import sys
from datetime import date
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root on sys.path so 'driver_finance' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from driver_finance.main import app  # type: ignore
from driver_finance.database import Base  # type: ignore
from driver_finance.api import deps  # type: ignore
"""Pytest fixtures and factories.

Important: SQLAlchemy relationship configuration requires all model modules to be imported
before Base.metadata.create_all(), otherwise back_populates targets might not exist yet.
"""
from driver_finance.config import RATE_LIMIT_SETTINGS
from driver_finance.models.db import (
    Owner, DailyRecord, FuelLog, Maintenance, Goal, Alert, BenchmarkEntry, Achievement, ApiKey,
)
from driver_finance.models.db.enums import GoalType
from driver_finance.services.preferences import default_preferences, merge_preferences
from driver_finance.services.record_store import apply_record_fields
from driver_finance.utils.ratelimiter import rate_limiter

# Single shared in-memory connection; every request and the test body see the same data.
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Each test starts from empty tables and an empty rate limiter."""
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield
    rate_limiter.reset()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


app.dependency_overrides[deps.get_db] = _override_get_db


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def fast_limits():
    """Shrink the record write bucket for a test and restore the settings afterwards."""
    saved = {name: dict(values) for name, values in RATE_LIMIT_SETTINGS.items()}

    def _set(category: str, limit: int, window_seconds: int = 60):
        RATE_LIMIT_SETTINGS[category] = {"limit": limit, "window_seconds": window_seconds}

    yield _set
    RATE_LIMIT_SETTINGS.clear()
    RATE_LIMIT_SETTINGS.update(saved)


# ---------- Data factory helpers ----------

@pytest.fixture()
def owner_factory(db_session):
    def _create(
        name: str = "Test Driver",
        *,
        email: str | None = None,
        city: str | None = "Campinas",
        state: str | None = "SP",
        vehicle_type: str | None = "car",
        benchmarking: bool = False,
    ):
        if email is None:
            email = f"{secrets.token_hex(4)}@example.com"
        preferences = merge_preferences(
            default_preferences(), {"privacy": {"participate_benchmarking": benchmarking}}
        )
        owner = Owner(
            name=name,
            email=email,
            api_key=f"drv_{secrets.token_hex(12)}",
            is_active=True,
            city=city,
            state=state,
            vehicle_type=vehicle_type,
            preferences=preferences,
        )
        db_session.add(owner)
        db_session.commit()
        db_session.refresh(owner)
        return owner
    return _create


@pytest.fixture()
def record_factory(db_session):
    def _create(owner, day: date, *, revenue: float = 200.0, distance: float = 100.0,
                expenses: float | None = None, **fields):
        record = DailyRecord(owner_id=owner.id)
        values = {"date": day, "revenue": revenue, "distance": distance, "platforms": fields.pop("platforms", [])}
        values.update(fields)
        apply_record_fields(record, values, explicit_expenses=expenses)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record
    return _create


@pytest.fixture()
def goal_factory(db_session):
    def _create(owner, target_period: date, target_value: float, goal_type: GoalType = GoalType.MONTHLY, **fields):
        goal = Goal(
            owner_id=owner.id,
            type=goal_type,
            target_period=target_period,
            target_value=target_value,
            current_value=fields.pop("current_value", 0),
            achieved=fields.pop("achieved", False),
            **fields,
        )
        db_session.add(goal)
        db_session.commit()
        db_session.refresh(goal)
        return goal
    return _create


def bearer(owner) -> dict:
    return {"Authorization": f"Bearer {owner.api_key}"}


@pytest.fixture()
def auth_header(owner_factory):
    owner = owner_factory()
    return bearer(owner), owner
