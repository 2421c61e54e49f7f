"""
Booking records and operation outcomes.

Expected outcomes (validation problems, a lost slot race, a booking that
cannot be cancelled) are returned as values, so callers handle each path
explicitly instead of catching exceptions.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional, Union
from uuid import UUID

from mcs_booking.models.bookings import Booking, BookingStatus


@dataclass(frozen=True)
class CustomerData:
    """Customer fields as submitted with a booking."""
    name: str
    email: str
    phone: str
    address: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class ServiceLineRecord:
    service_id: UUID
    service_name: str
    price_at_booking: Decimal


@dataclass(frozen=True)
class BookingRecord:
    """Detached, fully assembled booking (safe to hand to other threads)."""
    id: UUID
    booking_number: str
    status: BookingStatus
    slot_id: UUID
    slot_date: date
    slot_time: time
    customer: CustomerData
    lines: List[ServiceLineRecord]
    distance_km: Decimal
    travel_rate: Decimal
    service_total: Decimal
    travel_cost: Decimal
    total_price: Decimal
    notes: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingRecord":
        return cls(
            id=booking.id,
            booking_number=booking.booking_number,
            status=booking.status,
            slot_id=booking.slot_id,
            slot_date=booking.slot.date,
            slot_time=booking.slot.time,
            customer=CustomerData(
                name=booking.customer_name,
                email=booking.customer_email,
                phone=booking.customer_phone,
                address=booking.customer_address,
            ),
            lines=[
                ServiceLineRecord(
                    service_id=line.service_id,
                    service_name=line.service_name,
                    price_at_booking=Decimal(line.price_at_booking),
                )
                for line in booking.lines
            ],
            distance_km=Decimal(booking.distance_km),
            travel_rate=Decimal(booking.travel_rate),
            service_total=Decimal(booking.service_total),
            travel_cost=Decimal(booking.travel_cost),
            total_price=Decimal(booking.total_price),
            notes=booking.notes or "",
            created_at=booking.created_at,
            cancelled_at=booking.cancelled_at,
        )


# ===== create() outcomes =====

@dataclass(frozen=True)
class BookingCreated:
    booking: BookingRecord


@dataclass(frozen=True)
class ValidationFailed:
    """Every violated field with a human-readable message."""
    errors: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SlotConflict:
    slot_id: UUID


@dataclass(frozen=True)
class PersistenceFailure:
    """Storage error; the cause is logged, never exposed."""
    message: str = "Booking could not be completed"


BookingOutcome = Union[BookingCreated, ValidationFailed, SlotConflict, PersistenceFailure]


# ===== cancel() outcomes =====

@dataclass(frozen=True)
class BookingCancelled:
    booking: BookingRecord


@dataclass(frozen=True)
class CancellationRejected:
    booking_id: UUID
    reason: str


@dataclass(frozen=True)
class BookingNotFound:
    reference: str


CancellationOutcome = Union[BookingCancelled, CancellationRejected, BookingNotFound, PersistenceFailure]
