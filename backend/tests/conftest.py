"""
Shared fixtures: a file-backed SQLite database per test, seeded with a
small service catalog and a few future appointment slots.
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from mcs_booking.api.app import create_app
from mcs_booking.lib.db import build_engine, build_session_factory, init_db, session_scope
from mcs_booking.lib.metrics import get_metrics_collector, reset_metrics
from mcs_booking.lib.settings import Settings
from mcs_booking.models.services import Service
from mcs_booking.models.slots import Slot, SlotStatus
from mcs_booking.services.booking_results import CustomerData
from mcs_booking.services.booking_service import BookingTransaction
from mcs_booking.services.distance_estimator import PostalCodeDistanceEstimator
from mcs_booking.services.notification_service import NotificationPort


BOOKING_DAY = date.today() + timedelta(days=3)


@pytest.fixture(autouse=True)
def clear_metrics():
    """Clear metrics before each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def metrics():
    return get_metrics_collector()


@pytest.fixture
def config(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'bookings.db'}",
        travel_cost_per_km=0.50,
        max_service_distance_km=100.0,
        fallback_distance_km=35.0,
        company_postal_code="48431",
        booking_number_prefix="MCS",
        notification_provider="console",
        google_maps_api_key="",
    )


@pytest.fixture
def engine(config):
    engine = build_engine(config=config)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def services(session_factory):
    """Three active services and one inactive one, keyed by short name."""
    rows = {
        "exterior": Service(name="Fahrzeugwäsche Außen", price=Decimal("25.00"), duration_minutes=30, sort_order=1),
        "complete": Service(name="Fahrzeugwäsche Komplett", price=Decimal("45.00"), duration_minutes=60, sort_order=2),
        "interior": Service(name="Innenraumreinigung", price=Decimal("35.00"), duration_minutes=45, sort_order=3),
        "engine": Service(name="Motorwäsche", price=Decimal("30.00"), duration_minutes=30, active=False, sort_order=4),
    }
    with session_scope(session_factory) as db:
        db.add_all(rows.values())
        db.flush()
        return {key: service.id for key, service in rows.items()}


@pytest.fixture
def slots(session_factory):
    """Free slots at 09:00-11:00 on BOOKING_DAY plus one slot yesterday."""
    rows = {
        "morning": Slot(date=BOOKING_DAY, time=time(9, 0)),
        "late_morning": Slot(date=BOOKING_DAY, time=time(10, 0)),
        "noon": Slot(date=BOOKING_DAY, time=time(11, 0)),
        "past": Slot(date=date.today() - timedelta(days=1), time=time(10, 0)),
    }
    with session_scope(session_factory) as db:
        db.add_all(rows.values())
        db.flush()
        return {key: slot.id for key, slot in rows.items()}


@pytest.fixture
def notifier():
    return MagicMock(spec=NotificationPort)


@pytest.fixture
def transaction(session_factory, notifier, config):
    return BookingTransaction(session_factory, notifier=notifier, config=config)


@pytest.fixture
def customer():
    return CustomerData(
        name="Max Mustermann",
        email="max@example.de",
        phone="+49 5971 123456",
        address="Emsstraße 1, 48431 Rheine",
    )


@pytest.fixture
def client(config, session_factory, notifier):
    """Test client for an app wired to the test database."""
    app = create_app(
        config=config,
        session_factory=session_factory,
        notifier=notifier,
        distance_estimator=PostalCodeDistanceEstimator(config.company_postal_code),
    )
    with TestClient(app) as client:
        yield client


def slot_status(session_factory, slot_id) -> SlotStatus:
    with session_factory() as db:
        return db.get(Slot, slot_id).status


@pytest.fixture
def get_slot_status(session_factory):
    """Read a slot's status in a fresh session."""
    return lambda slot_id: slot_status(session_factory, slot_id)


@pytest.fixture
def after_booking_day():
    """Clock positioned after every BOOKING_DAY slot has started."""
    return lambda: datetime.combine(BOOKING_DAY, time(23, 0))


@pytest.fixture
def booking_day():
    return BOOKING_DAY
