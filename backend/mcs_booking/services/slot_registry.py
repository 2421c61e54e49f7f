"""
Slot registry - appointment slots and their availability.

reserve() is a single conditional UPDATE, so two requests racing for the
same slot can never both win: the database decides which UPDATE matches.
"""
import enum
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mcs_booking.lib.logging import get_logger
from mcs_booking.models.slots import Slot, SlotStatus


logger = get_logger(__name__)


class ReservationResult(str, enum.Enum):
    """Outcome of a reservation attempt."""
    RESERVED = "reserved"
    ALREADY_TAKEN = "already_taken"


@dataclass(frozen=True)
class SlotView:
    """Free slot as shown to customers."""
    id: UUID
    date: date
    time: time

    @property
    def time_label(self) -> str:
        return self.time.strftime("%H:%M")


class SlotRegistry:
    """Slot queries and state transitions on a caller-provided session."""

    def __init__(self, db: Session, today: Callable[[], date] = date.today):
        self.db = db
        self._today = today

    def get(self, slot_id: UUID) -> Optional[Slot]:
        return self.db.get(Slot, slot_id)

    def list_available(self, from_date: Optional[date] = None, limit: int = 50) -> List[SlotView]:
        """
        Free slots from from_date (never before today), ascending.

        Args:
            from_date: First date to include; defaults to today
            limit: Maximum number of slots returned
        """
        start = max(from_date or self._today(), self._today())
        stmt = (
            select(Slot)
            .where(Slot.status == SlotStatus.AVAILABLE, Slot.date >= start)
            .order_by(Slot.date, Slot.time)
            .limit(limit)
        )
        return [
            SlotView(id=slot.id, date=slot.date, time=slot.time)
            for slot in self.db.execute(stmt).scalars().all()
        ]

    def list_available_dates(self, from_date: Optional[date] = None) -> List[date]:
        """Distinct dates that still have at least one free slot."""
        start = max(from_date or self._today(), self._today())
        stmt = (
            select(Slot.date)
            .where(Slot.status == SlotStatus.AVAILABLE, Slot.date >= start)
            .distinct()
            .order_by(Slot.date)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_times_for_date(self, day: date) -> List[SlotView]:
        """Free slots of one day, ordered by time. Past days are empty."""
        if day < self._today():
            return []
        stmt = (
            select(Slot)
            .where(Slot.date == day, Slot.status == SlotStatus.AVAILABLE)
            .order_by(Slot.time)
        )
        return [
            SlotView(id=slot.id, date=slot.date, time=slot.time)
            for slot in self.db.execute(stmt).scalars().all()
        ]

    def reserve(self, slot_id: UUID) -> ReservationResult:
        """
        Flip a slot from available to booked.

        Runs in the caller's transaction; nothing is committed here.
        Returns ALREADY_TAKEN when no available row matched.
        """
        result = self.db.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.status == SlotStatus.AVAILABLE)
            .values(status=SlotStatus.BOOKED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            logger.debug("Slot reserved", extra={"slot_id": str(slot_id)})
            return ReservationResult.RESERVED

        logger.info("Slot already taken", extra={"slot_id": str(slot_id)})
        return ReservationResult.ALREADY_TAKEN

    def release(self, slot_id: UUID) -> None:
        """
        Make a booked slot available again. No-op if it already is.

        Runs in the caller's transaction; nothing is committed here.
        """
        self.db.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.status == SlotStatus.BOOKED)
            .values(status=SlotStatus.AVAILABLE)
            .execution_options(synchronize_session=False)
        )
        logger.debug("Slot released", extra={"slot_id": str(slot_id)})


def slot_starts_at(slot: Slot) -> datetime:
    """Naive local start time of a slot."""
    return datetime.combine(slot.date, slot.time)
