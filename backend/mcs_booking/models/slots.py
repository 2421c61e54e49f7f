"""
Slot model - bookable appointment capacity (one date/time unit).
"""
import datetime as dt
from uuid import uuid4, UUID
import enum

from sqlalchemy import Date, Time, Enum as SQLEnum, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from mcs_booking.lib.db import Base


class SlotStatus(str, enum.Enum):
    """Slot availability state."""
    AVAILABLE = "available"
    BOOKED = "booked"


class Slot(Base):
    """
    Slot entity.
    Lifecycle: available → booked (booking commit) → available (cancellation).
    """
    __tablename__ = "slots"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    status: Mapped[SlotStatus] = mapped_column(
        SQLEnum(SlotStatus, name="slot_status"),
        nullable=False,
        default=SlotStatus.AVAILABLE,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("date", "time", name="uq_slots_date_time"),
    )

    def __repr__(self) -> str:
        return f"<Slot(id={self.id}, date={self.date}, time={self.time}, status={self.status})>"
