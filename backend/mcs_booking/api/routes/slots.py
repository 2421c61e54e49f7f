"""
Slot availability routes.

- GET /slots/dates: Dates that still have free slots
- GET /slots?date=YYYY-MM-DD: Free times on one date
"""
from datetime import date as date_type
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel

from mcs_booking.api.dependencies import get_db
from mcs_booking.services.slot_registry import SlotRegistry


class SlotResponse(BaseModel):
    """Free slot on a given date."""
    id: UUID
    time: str


class AvailableDatesResponse(BaseModel):
    dates: List[date_type]


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/dates", response_model=AvailableDatesResponse)
def list_available_dates(
    from_date: Optional[date_type] = Query(None, description="First date to include (default: today)"),
    db: Session = Depends(get_db),
) -> AvailableDatesResponse:
    """List dates with at least one free slot, ascending."""
    return AvailableDatesResponse(dates=SlotRegistry(db).list_available_dates(from_date))


@router.get("", response_model=List[SlotResponse])
def list_slots(
    date: date_type = Query(..., description="Date to list free slots for (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
) -> List[SlotResponse]:
    """
    List free slots on one date, ordered by time.

    Past dates return an empty list.
    """
    return [
        SlotResponse(id=slot.id, time=slot.time_label)
        for slot in SlotRegistry(db).list_times_for_date(date)
    ]
