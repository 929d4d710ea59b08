"""
Shared fixtures.

The cache runs on an in-memory SQLite database with a controllable clock,
so freshness windows can be tested without sleeping. FlightAware and
OpenAI are always mocked.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from tailwatch.cache import CacheStore
from tailwatch.models import Base, build_session_factory
from tailwatch.services.flightaware import FlightAwareClient, FlightRecord


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def cache_store(session_factory, clock):
    return CacheStore(session_factory=session_factory, clock=clock)


@pytest.fixture
def provider():
    """A FlightAwareClient stand-in with no behaviour configured."""
    return MagicMock(spec=FlightAwareClient)


def make_flight(
    fa_flight_id="N424BB-1",
    status="Arrived",
    operator=None,
    distance=100,
    off=None,
    origin="KPSM",
    destination="KBED",
    **extra,
):
    """Build a FlightRecord from AeroAPI-shaped data."""
    data = {
        "ident": "N424BB",
        "fa_flight_id": fa_flight_id,
        "status": status,
        "operator": operator,
        "route_distance": distance,
        "aircraft_type": "SR22",
        "actual_off": off,
        "origin": {"code": origin, "name": f"{origin} airport"},
        "destination": {"code": destination, "name": f"{destination} airport"},
    }
    data.update(extra)
    return FlightRecord.from_dict(data)


def this_year(month=3, day=1):
    """ISO timestamp inside the current UTC calendar year."""
    year = datetime.now(timezone.utc).year
    return f"{year}-{month:02d}-{day:02d}T14:00:00Z"


@pytest.fixture
def app():
    from tailwatch.app import create_app
    return create_app()


@pytest.fixture
def client(app):
    return app.test_client()
