from __future__ import annotations

import pytest
from pathlib import Path
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from solar_site_sim.calendar_utils import build_hourly_calendar  # noqa: E402
from solar_site_sim.db.session import Base  # noqa: E402
from solar_site_sim.persistence import PersistenceService  # noqa: E402
from solar_site_sim.simulation.readings import HourlyBucket  # noqa: E402


@pytest.fixture()
def sqlite_session_factory():
    """Provide a session factory bound to an in-memory SQLite database."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    yield Session
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def persistence(sqlite_session_factory):
    """Provide a PersistenceService bound to the temporary SQLite DB."""
    return PersistenceService(session_factory=sqlite_session_factory)


def _day_load(hour: int) -> tuple[float, float]:
    # business-hours load with a 60 kW afternoon peak
    if 7 <= hour < 19:
        return 45.0, 55.0 + (5.0 if 13 <= hour <= 15 else 0.0)
    return 15.0, 18.0


@pytest.fixture()
def year_buckets() -> list[HourlyBucket]:
    """8,760 buckets of a commercial site (same day repeated all year)."""
    calendar = build_hourly_calendar()
    buckets = []
    for month, hour in zip(calendar.month, calendar.hour):
        kwh, kw = _day_load(int(hour))
        buckets.append(HourlyBucket(hour=int(hour), month=int(month), consumption_kwh=kwh, peak_kw=kw))
    return buckets


@pytest.fixture()
def short_buckets() -> list[HourlyBucket]:
    """One representative day per month (288 buckets) to keep sweeps fast."""
    buckets = []
    for month in range(1, 13):
        for hour in range(24):
            kwh, kw = _day_load(hour)
            buckets.append(HourlyBucket(hour=hour, month=month, consumption_kwh=kwh, peak_kw=kw))
    return buckets


def _build_site_payload() -> dict:
    return {
        "name": "Test Site",
        "roof_color": "gravel",
        "load": {
            "source": "synthetic",
            "archetype": "office",
            "annual_consumption_kwh": 150000,
        },
        "sizing": {
            "pv_kw": 40,
            "battery_kwh": 0,
            "battery_kw": 0,
        },
        "assumptions": {
            "tariff_code": "M",
            "max_pv_from_roof_kw": 60,
        },
        "monte_carlo": {
            "iterations": 4,
            "seed": 7,
        },
    }


@pytest.fixture()
def site_payload() -> dict:
    """Return a lightweight site payload used to speed up tests."""
    return _build_site_payload()
