"""
Integration tests for SlotRegistry.
"""
from datetime import date, time, timedelta
from uuid import uuid4

import pytest

from mcs_booking.models.slots import SlotStatus
from mcs_booking.services.slot_registry import ReservationResult, SlotRegistry


@pytest.mark.integration
def test_list_available_skips_past_slots(session_factory, slots):
    with session_factory() as db:
        available = SlotRegistry(db).list_available()

    assert [s.id for s in available] == [slots["morning"], slots["late_morning"], slots["noon"]]


@pytest.mark.integration
def test_list_available_dates(session_factory, slots, booking_day):
    with session_factory() as db:
        assert SlotRegistry(db).list_available_dates() == [booking_day]
        assert SlotRegistry(db).list_available_dates(booking_day + timedelta(days=1)) == []


@pytest.mark.integration
def test_list_times_for_date_ordered(session_factory, slots, booking_day):
    with session_factory() as db:
        times = SlotRegistry(db).list_times_for_date(booking_day)

    assert [s.time_label for s in times] == ["09:00", "10:00", "11:00"]


@pytest.mark.integration
def test_list_times_for_past_date_is_empty(session_factory, slots):
    with session_factory() as db:
        assert SlotRegistry(db).list_times_for_date(date.today() - timedelta(days=1)) == []


@pytest.mark.integration
def test_reserve_then_reserve_again(session_factory, slots, get_slot_status, booking_day):
    with session_factory() as db:
        registry = SlotRegistry(db)
        assert registry.reserve(slots["morning"]) is ReservationResult.RESERVED
        assert registry.reserve(slots["morning"]) is ReservationResult.ALREADY_TAKEN
        db.commit()

    assert get_slot_status(slots["morning"]) == SlotStatus.BOOKED

    with session_factory() as db:
        times = SlotRegistry(db).list_times_for_date(booking_day)
    assert [s.time for s in times] == [time(10, 0), time(11, 0)]


@pytest.mark.integration
def test_reserve_unknown_slot(session_factory, slots):
    with session_factory() as db:
        assert SlotRegistry(db).reserve(uuid4()) is ReservationResult.ALREADY_TAKEN


@pytest.mark.integration
def test_reserve_rolled_back_leaves_slot_available(session_factory, slots, get_slot_status):
    with session_factory() as db:
        SlotRegistry(db).reserve(slots["noon"])
        db.rollback()

    assert get_slot_status(slots["noon"]) == SlotStatus.AVAILABLE


@pytest.mark.integration
def test_release_is_idempotent(session_factory, slots, get_slot_status):
    with session_factory() as db:
        registry = SlotRegistry(db)
        registry.reserve(slots["noon"])
        registry.release(slots["noon"])
        registry.release(slots["noon"])
        db.commit()

    assert get_slot_status(slots["noon"]) == SlotStatus.AVAILABLE
