"""
Shared fixtures: a SQLite file database per test, a controllable clock and a
fake FlightAware AeroAPI served through httpx.MockTransport.
"""

import json
import os
import sys
import threading
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from flightwatch.database import Base, build_engine
from flightwatch.models import Booking, Flight
from flightwatch.services.flightaware_client import FlightAwareClient

AERO_BASE_URL = "https://aeroapi.test/aeroapi"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeAeroApi:
    """
    Routes (method, path) to canned responses; unknown routes are 404.

    A route value is either (status, json_body) or a callable taking the
    httpx.Request and returning an httpx.Response.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []
        self._lock = threading.Lock()

    def add(self, method, path, status=200, body=None):
        self.routes[(method.upper(), path)] = (status, body)

    def add_handler(self, method, path, handler):
        self.routes[(method.upper(), path)] = handler

    def _handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/aeroapi"):
            path = path[len("/aeroapi"):]

        with self._lock:
            self.requests.append(request)

        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"title": "Not found"})
        if callable(route):
            return route(request)

        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def client(self) -> FlightAwareClient:
        return FlightAwareClient(
            api_key="test-api-key",
            base_url=AERO_BASE_URL,
            timeout=5,
            transport=httpx.MockTransport(self._handle),
        )

    def calls(self, method=None, path_prefix=None):
        matched = []
        for request in self.requests:
            path = request.url.path[len("/aeroapi"):]
            if method and request.method != method:
                continue
            if path_prefix and not path.startswith(path_prefix):
                continue
            matched.append(request)
        return matched

    @staticmethod
    def json_body(request: httpx.Request):
        return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def aero():
    return FakeAeroApi()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'flightwatch_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_flight(db):
    def _make(**overrides):
        values = dict(
            flight_number="BA74",
            flight_date=date(2026, 1, 15),
            fa_flight_id="BAW74-1768400000-airline-0123",
            origin_code="EGLL",
            origin_code_iata="LHR",
            destination_code="DNMM",
            destination_code_iata="LOS",
            scheduled_arrival=datetime(2026, 1, 15, 14, 0),
        )
        values.update(overrides)
        flight = Flight(**values)
        return _persist(db, flight)
    return _make


@pytest.fixture
def make_booking(db):
    def _make(flight_id, **overrides):
        values = dict(
            flight_id=flight_id,
            customer_name="Ada Obi",
            pickup_at=datetime(2026, 1, 15, 14, 30),
        )
        values.update(overrides)
        return _persist(db, Booking(**values))
    return _make


def _persist(db, row):
    db.add(row)
    db.commit()
    db.refresh(row)
    # Detached with attributes loaded; no SQLite read lock left open for other sessions
    db.expunge(row)
    db.rollback()
    return row
