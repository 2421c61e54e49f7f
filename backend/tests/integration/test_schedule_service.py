"""
Integration tests for slot generation and catalog seeding.
"""
from datetime import date, time

import pytest
from sqlalchemy import func, select

from mcs_booking.lib.db import session_scope
from mcs_booking.lib.settings import Settings
from mcs_booking.models.services import Service
from mcs_booking.models.slots import Slot
from mcs_booking.services.schedule_service import DEFAULT_SERVICES, generate_slots, seed_services


# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)


@pytest.fixture
def schedule_config():
    return Settings(business_hours_start=8, business_hours_end=17, working_days=[1, 2, 3, 4, 5, 6])


@pytest.mark.integration
def test_generate_slots_for_working_days(session_factory, schedule_config):
    with session_scope(session_factory) as db:
        created = generate_slots(db, start=MONDAY, days=7, config=schedule_config)

    # Monday to Saturday, 08:00 to 17:00 inclusive
    assert created == 6 * 10

    with session_factory() as db:
        sunday = db.execute(
            select(func.count()).select_from(Slot).where(Slot.date == date(2030, 1, 13))
        ).scalar_one()
        times = db.execute(
            select(Slot.time).where(Slot.date == MONDAY).order_by(Slot.time)
        ).scalars().all()

    assert sunday == 0
    assert times[0] == time(8, 0)
    assert times[-1] == time(17, 0)


@pytest.mark.integration
def test_generate_slots_is_idempotent(session_factory, schedule_config):
    with session_scope(session_factory) as db:
        generate_slots(db, start=MONDAY, days=3, config=schedule_config)

    with session_scope(session_factory) as db:
        created = generate_slots(db, start=MONDAY, days=5, config=schedule_config)

    assert created == 2 * 10


@pytest.mark.integration
def test_generate_zero_days(session_factory, schedule_config):
    with session_scope(session_factory) as db:
        assert generate_slots(db, start=MONDAY, days=0, config=schedule_config) == 0


@pytest.mark.integration
def test_seed_services_once(session_factory):
    with session_scope(session_factory) as db:
        assert seed_services(db) == len(DEFAULT_SERVICES)

    with session_scope(session_factory) as db:
        assert seed_services(db) == 0

    with session_factory() as db:
        first = db.execute(select(Service).order_by(Service.sort_order)).scalars().first()

    assert first.name == "Fahrzeugwäsche Außen"
    assert str(first.price) == "25.00"
