"""
Input validation for new bookings.

Validators collect every problem instead of stopping at the first one, so
the booking form can highlight all offending fields at once.
"""
import math
import re
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from mcs_booking.services.booking_results import CustomerData


EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?)*\.[A-Za-z]{2,}$")

# German and international formats: optional +, then at least 10 digits/spaces/dashes/parens
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{10,}$")

MAX_NAME_LENGTH = 255
MAX_ADDRESS_LENGTH = 500
MAX_NOTES_LENGTH = 2000


def validate_customer(customer: CustomerData) -> Dict[str, str]:
    """
    Check the customer fields of a booking.

    Returns:
        Mapping of field name to error message; empty when valid
    """
    errors: Dict[str, str] = {}

    name = (customer.name or "").strip()
    if not name:
        errors["name"] = "Name is required"
    elif len(name) > MAX_NAME_LENGTH:
        errors["name"] = f"Name must be at most {MAX_NAME_LENGTH} characters"

    email = (customer.email or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = "Email address is not valid"

    phone = (customer.phone or "").strip()
    if not phone:
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.match(phone):
        errors["phone"] = "Phone number is not valid"

    address = (customer.address or "").strip()
    if not address:
        errors["address"] = "Address is required"
    elif len(address) > MAX_ADDRESS_LENGTH:
        errors["address"] = f"Address must be at most {MAX_ADDRESS_LENGTH} characters"

    if customer.notes and len(customer.notes) > MAX_NOTES_LENGTH:
        errors["notes"] = f"Notes must be at most {MAX_NOTES_LENGTH} characters"

    return errors


def validate_service_selection(
    requested_ids: List[UUID],
    active_ids: Iterable[UUID],
) -> Optional[str]:
    """
    Check that at least one service was picked and all of them are bookable.

    Returns:
        Error message, or None when valid
    """
    if not requested_ids:
        return "Select at least one service"

    active = set(active_ids)
    invalid = [service_id for service_id in requested_ids if service_id not in active]
    if invalid:
        return "Unknown or inactive service: " + ", ".join(str(i) for i in invalid)

    return None


def validate_distance(distance_km: float, max_distance_km: Optional[float]) -> Optional[str]:
    """Distance must be non-negative and inside the service area."""
    if distance_km is None:
        return "Distance is required"
    if not math.isfinite(distance_km):
        return "Distance must be a number"
    if distance_km < 0:
        return "Distance must not be negative"
    if max_distance_km is not None and distance_km > max_distance_km:
        return f"Address is outside our service area (max {max_distance_km:g} km)"
    return None


def normalize_customer(customer: CustomerData) -> CustomerData:
    """Trimmed copy of the customer fields, as stored on the booking."""
    return CustomerData(
        name=customer.name.strip(),
        email=customer.email.strip().lower(),
        phone=customer.phone.strip(),
        address=customer.address.strip(),
        notes=(customer.notes or "").strip() or None,
    )
