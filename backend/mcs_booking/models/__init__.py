"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from mcs_booking.models.services import Service
from mcs_booking.models.slots import Slot, SlotStatus
from mcs_booking.models.bookings import Booking, BookingServiceLine, BookingStatus

__all__ = [
    "Service",
    "Slot",
    "SlotStatus",
    "Booking",
    "BookingServiceLine",
    "BookingStatus",
]
