"""
Booking model - a confirmed reservation of one slot for one customer.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import (
    String,
    Text,
    Numeric,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mcs_booking.lib.db import Base
from mcs_booking.models.services import Service
from mcs_booking.models.slots import Slot


class BookingStatus(str, enum.Enum):
    """Booking status state machine."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(Base):
    """
    Booking entity.
    State machine: confirmed → completed (or cancelled).
    Customer fields are a snapshot taken at booking time.
    """
    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    booking_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    slot_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("slots.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Customer snapshot
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_address: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Pricing (fixed at creation)
    distance_km: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    travel_rate: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    service_total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    travel_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    slot: Mapped[Slot] = relationship(lazy="joined")
    lines: Mapped[List["BookingServiceLine"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("distance_km >= 0", name="booking_distance_non_negative"),
        CheckConstraint("total_price >= 0", name="booking_total_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, number={self.booking_number}, status={self.status})>"


class BookingServiceLine(Base):
    """
    One booked service with the price it had at booking time.
    """
    __tablename__ = "booking_service_lines"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    price_at_booking: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    booking: Mapped[Booking] = relationship(back_populates="lines")
    service: Mapped[Service] = relationship()

    def __repr__(self) -> str:
        return f"<BookingServiceLine(booking_id={self.booking_id}, service={self.service_name})>"


# At most one live booking per slot
Index(
    "uq_bookings_active_slot",
    Booking.slot_id,
    unique=True,
    sqlite_where=Booking.status != BookingStatus.CANCELLED,
    postgresql_where=Booking.status != BookingStatus.CANCELLED,
)
