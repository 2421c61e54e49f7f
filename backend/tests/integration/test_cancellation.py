"""
Integration tests for BookingTransaction.cancel and booking lookups.
"""
import threading
from dataclasses import replace
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from mcs_booking.models.bookings import BookingStatus
from mcs_booking.models.slots import SlotStatus
from mcs_booking.services.booking_results import (
    BookingCancelled,
    BookingCreated,
    BookingNotFound,
    CancellationRejected,
    PersistenceFailure,
)
from mcs_booking.services.booking_service import BookingTransaction
from mcs_booking.services.slot_registry import SlotRegistry


@pytest.fixture
def booked(transaction, services, slots, customer):
    outcome = transaction.create(slots["morning"], [services["exterior"]], customer, 5)
    assert isinstance(outcome, BookingCreated)
    return outcome.booking


@pytest.mark.integration
def test_cancel_releases_slot(transaction, booked, slots, notifier, metrics, get_slot_status):
    outcome = transaction.cancel(booked.id, reason="Vehicle in the workshop")

    assert isinstance(outcome, BookingCancelled)
    assert outcome.booking.status == BookingStatus.CANCELLED
    assert outcome.booking.cancelled_at is not None
    assert "Reason: Vehicle in the workshop" in outcome.booking.notes
    assert outcome.booking.notes.startswith("Cancelled on ")
    assert get_slot_status(slots["morning"]) == SlotStatus.AVAILABLE
    notifier.booking_cancelled.assert_called_once_with(outcome.booking, "Vehicle in the workshop")
    assert metrics.get_counter_value("booking_cancellations_total") == 1


@pytest.mark.integration
def test_cancel_keeps_customer_notes(transaction, services, slots, customer):
    noted = replace(customer, notes="Gate code 1234")
    created = transaction.create(slots["noon"], [services["exterior"]], noted, 5)

    outcome = transaction.cancel(created.booking.id)

    assert outcome.booking.notes.startswith("Gate code 1234\n\nCancelled on ")
    assert "Reason" not in outcome.booking.notes


@pytest.mark.integration
def test_second_cancel_rejected_without_changes(transaction, booked, slots, session_factory, get_slot_status):
    transaction.cancel(booked.id)

    # Someone else books the freed slot in the meantime
    with session_factory() as db:
        SlotRegistry(db).reserve(slots["morning"])
        db.commit()

    outcome = transaction.cancel(booked.id)

    assert outcome == CancellationRejected(booking_id=booked.id, reason="Booking is already cancelled")
    assert get_slot_status(slots["morning"]) == SlotStatus.BOOKED
    assert transaction.get_booking(booked.id).notes.count("Cancelled on") == 1


@pytest.mark.integration
def test_concurrent_cancels_have_one_winner(session_factory, config, booked, slots, get_slot_status):
    """Four threads cancel the same booking: exactly one succeeds."""
    workers = 4
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()
    transaction = BookingTransaction(session_factory, config=config)

    def cancel(n: int):
        barrier.wait()
        outcome = transaction.cancel(booked.id, reason=f"Request {n}")
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=cancel, args=(n,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    cancelled = [o for o in outcomes if isinstance(o, BookingCancelled)]
    rejected = [o for o in outcomes if isinstance(o, CancellationRejected)]
    assert len(outcomes) == workers
    assert len(cancelled) == 1
    assert len(rejected) == workers - 1
    assert all(o.reason == "Booking is already cancelled" for o in rejected)

    stored = transaction.get_booking(booked.id)
    assert stored.status == BookingStatus.CANCELLED
    assert stored.notes.count("Cancelled on") == 1
    assert get_slot_status(slots["morning"]) == SlotStatus.AVAILABLE


@pytest.mark.integration
def test_cancel_past_booking_rejected(session_factory, config, booked, slots, after_booking_day, get_slot_status):
    later = BookingTransaction(session_factory, config=config, clock=after_booking_day)

    outcome = later.cancel(booked.id)

    assert isinstance(outcome, CancellationRejected)
    assert outcome.reason == "Past bookings cannot be cancelled"
    assert get_slot_status(slots["morning"]) == SlotStatus.BOOKED


@pytest.mark.integration
def test_cancel_unknown_booking(transaction, services, slots):
    missing = uuid4()
    assert transaction.cancel(missing) == BookingNotFound(reference=str(missing))


@pytest.mark.integration
def test_cancel_storage_failure(transaction, booked, slots, metrics, get_slot_status):
    error = OperationalError("UPDATE slots", {}, Exception("database is locked"))

    with patch.object(SlotRegistry, "release", side_effect=error):
        outcome = transaction.cancel(booked.id)

    assert isinstance(outcome, PersistenceFailure)
    assert transaction.get_booking(booked.id).status == BookingStatus.CONFIRMED
    assert get_slot_status(slots["morning"]) == SlotStatus.BOOKED
    assert metrics.get_counter_value("booking_failures_total", {"operation": "cancel"}) == 1


@pytest.mark.integration
def test_cancellation_notification_failure_is_ignored(transaction, booked, notifier):
    notifier.booking_cancelled.side_effect = RuntimeError("smtp down")

    assert isinstance(transaction.cancel(booked.id), BookingCancelled)


@pytest.mark.integration
def test_find_by_number(transaction, booked):
    found = transaction.find_by_number(booked.booking_number.lower())

    assert found.id == booked.id
    assert transaction.find_by_number("MCS000000XXXXXX") is None
    assert transaction.get_booking(uuid4()) is None
