"""
Booking routes.

- POST /bookings: Create a booking
- GET /bookings/{booking_number}: Look up a booking by confirmation number
- POST /bookings/{booking_number}/cancel: Cancel a booking

The booking transaction returns outcome values; this module maps each of
them onto an HTTP status through the AppException hierarchy.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from mcs_booking.api.dependencies import get_booking_transaction, get_distance_estimator, get_settings
from mcs_booking.api.middleware.error_handler import (
    AppException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from mcs_booking.lib.logging import get_logger
from mcs_booking.lib.settings import Settings
from mcs_booking.services.booking_results import (
    BookingCancelled,
    BookingCreated,
    BookingNotFound,
    BookingRecord,
    CancellationRejected,
    CustomerData,
    SlotConflict,
    ValidationFailed,
)
from mcs_booking.services.booking_service import BookingTransaction
from mcs_booking.services.distance_estimator import DistanceEstimator, resolve_distance


logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


# ===== Schemas =====

class CustomerRequest(BaseModel):
    """Customer fields; content is checked by booking validation."""
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: Optional[str] = None


class BookingRequest(BaseModel):
    slot_id: UUID
    service_ids: List[UUID] = Field(default_factory=list)
    customer: CustomerRequest
    distance_km: Optional[float] = Field(
        None,
        allow_inf_nan=False,
        description="Pre-resolved travel distance; estimated from the address when omitted",
    )


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class CustomerResponse(BaseModel):
    name: str
    email: str
    phone: str
    address: str


class ServiceLineResponse(BaseModel):
    service_id: UUID
    name: str
    price: float


class BookingResponse(BaseModel):
    """Booking with its service lines and price breakdown."""
    id: UUID
    booking_number: str
    status: str
    slot_id: UUID
    date: str
    time: str
    customer: CustomerResponse
    services: List[ServiceLineResponse]
    distance_km: float
    travel_rate: float
    service_total: float
    travel_cost: float
    total_price: float
    notes: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None


def booking_response(record: BookingRecord) -> BookingResponse:
    return BookingResponse(
        id=record.id,
        booking_number=record.booking_number,
        status=record.status.value,
        slot_id=record.slot_id,
        date=record.slot_date.isoformat(),
        time=record.slot_time.strftime("%H:%M"),
        customer=CustomerResponse(
            name=record.customer.name,
            email=record.customer.email,
            phone=record.customer.phone,
            address=record.customer.address,
        ),
        services=[
            ServiceLineResponse(
                service_id=line.service_id,
                name=line.service_name,
                price=float(line.price_at_booking),
            )
            for line in record.lines
        ],
        distance_km=float(record.distance_km),
        travel_rate=float(record.travel_rate),
        service_total=float(record.service_total),
        travel_cost=float(record.travel_cost),
        total_price=float(record.total_price),
        notes=record.notes,
        created_at=record.created_at,
        cancelled_at=record.cancelled_at,
    )


# ===== Routes =====

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingRequest,
    transaction: BookingTransaction = Depends(get_booking_transaction),
    estimator: DistanceEstimator = Depends(get_distance_estimator),
    config: Settings = Depends(get_settings),
) -> BookingResponse:
    """
    Book a slot for one or more services.

    Returns 201 with the booking, 422 with per-field errors, 409 when the
    slot was taken in the meantime, or 500 on storage failure.
    """
    distance_km = payload.distance_km
    if distance_km is None:
        distance_km = resolve_distance(estimator, payload.customer.address, config.fallback_distance_km)

    outcome = transaction.create(
        slot_id=payload.slot_id,
        service_ids=payload.service_ids,
        customer=CustomerData(
            name=payload.customer.name,
            email=payload.customer.email,
            phone=payload.customer.phone,
            address=payload.customer.address,
            notes=payload.customer.notes,
        ),
        distance_km=distance_km,
    )

    if isinstance(outcome, BookingCreated):
        return booking_response(outcome.booking)
    if isinstance(outcome, ValidationFailed):
        raise ValidationException("Booking validation failed", errors=outcome.errors)
    if isinstance(outcome, SlotConflict):
        raise ConflictException(
            "The selected appointment is no longer available",
            details={"slot_id": str(outcome.slot_id)},
        )
    raise AppException(outcome.message)


@router.get("/{booking_number}", response_model=BookingResponse)
def get_booking(
    booking_number: str,
    transaction: BookingTransaction = Depends(get_booking_transaction),
) -> BookingResponse:
    """Look up a booking by its confirmation number."""
    record = transaction.find_by_number(booking_number)
    if record is None:
        raise NotFoundException("Booking", booking_number)
    return booking_response(record)


@router.post("/{booking_number}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_number: str,
    payload: Optional[CancelRequest] = None,
    transaction: BookingTransaction = Depends(get_booking_transaction),
) -> BookingResponse:
    """
    Cancel a booking and free its slot.

    Returns 404 for unknown numbers and 409 for bookings that are already
    cancelled or in the past.
    """
    record = transaction.find_by_number(booking_number)
    if record is None:
        raise NotFoundException("Booking", booking_number)

    outcome = transaction.cancel(record.id, reason=payload.reason if payload else None)

    if isinstance(outcome, BookingCancelled):
        return booking_response(outcome.booking)
    if isinstance(outcome, CancellationRejected):
        raise ConflictException(outcome.reason, details={"booking_number": record.booking_number})
    if isinstance(outcome, BookingNotFound):
        raise NotFoundException("Booking", booking_number)
    raise AppException(outcome.message)
