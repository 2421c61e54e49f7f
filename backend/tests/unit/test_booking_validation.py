"""
Unit tests for booking input validation.
"""
from uuid import uuid4

import pytest

from mcs_booking.services.booking_results import CustomerData
from mcs_booking.services.booking_validation import (
    normalize_customer,
    validate_customer,
    validate_distance,
    validate_service_selection,
)


def make_customer(**overrides) -> CustomerData:
    fields = {
        "name": "Erika Musterfrau",
        "email": "erika@example.de",
        "phone": "05971-123456",
        "address": "Bahnhofstraße 5, 48431 Rheine",
    }
    fields.update(overrides)
    return CustomerData(**fields)


@pytest.mark.unit
def test_valid_customer_has_no_errors():
    assert validate_customer(make_customer()) == {}


@pytest.mark.unit
def test_collects_every_invalid_field():
    errors = validate_customer(make_customer(name="  ", email="not-an-email", phone="123", address=""))

    assert set(errors) == {"name", "email", "phone", "address"}
    assert errors["name"] == "Name is required"
    assert errors["email"] == "Email address is not valid"
    assert errors["phone"] == "Phone number is not valid"
    assert errors["address"] == "Address is required"


@pytest.mark.unit
@pytest.mark.parametrize("phone", ["+49 5971 123456", "(05971) 123-456", "+4915112345678"])
def test_accepts_common_phone_formats(phone):
    assert "phone" not in validate_customer(make_customer(phone=phone))


@pytest.mark.unit
def test_notes_length_limited():
    errors = validate_customer(make_customer(notes="x" * 2001))

    assert "notes" in errors


@pytest.mark.unit
def test_service_selection_required():
    assert validate_service_selection([], []) == "Select at least one service"


@pytest.mark.unit
def test_service_selection_names_invalid_ids():
    known, unknown = uuid4(), uuid4()

    error = validate_service_selection([known, unknown], [known])

    assert error.startswith("Unknown or inactive service")
    assert str(unknown) in error
    assert str(known) not in error


@pytest.mark.unit
def test_service_selection_valid():
    known = uuid4()
    assert validate_service_selection([known], {known}) is None


@pytest.mark.unit
def test_distance_rules():
    assert validate_distance(0, 100) is None
    assert validate_distance(100, 100) is None
    assert validate_distance(-0.5, 100) == "Distance must not be negative"
    assert "service area" in validate_distance(100.1, 100)
    assert validate_distance(500, None) is None


@pytest.mark.unit
@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_distance_rejected(value):
    assert validate_distance(value, 100) == "Distance must be a number"
    assert validate_distance(value, None) == "Distance must be a number"


@pytest.mark.unit
def test_normalize_customer_trims_and_lowercases_email():
    customer = normalize_customer(make_customer(name=" Erika ", email=" Erika@Example.DE ", notes="   "))

    assert customer.name == "Erika"
    assert customer.email == "erika@example.de"
    assert customer.notes is None
