"""
Service model - detailing services that can be booked.
"""
from decimal import Decimal
from typing import Optional
from uuid import uuid4, UUID

from sqlalchemy import String, Numeric, Integer, Boolean, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mcs_booking.lib.db import Base


class Service(Base):
    """
    Service entity - bookable services.
    Prices are captured on booking lines, so changing a price here
    never touches existing bookings.
    """
    __tablename__ = "services"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Service details
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Pricing and duration
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="service_price_non_negative"),
        CheckConstraint("duration_minutes > 0", name="service_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, price={self.price})>"
