"""
Services API routes.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel

from mcs_booking.api.dependencies import get_db
from mcs_booking.services.service_catalog import ServiceCatalog


# Pydantic schemas
class ServiceResponse(BaseModel):
    """Bookable service."""
    id: UUID
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=List[ServiceResponse])
def list_services(db: Session = Depends(get_db)) -> List[ServiceResponse]:
    """
    List active services in display order.

    Returns:
        Services customers can currently book
    """
    return [
        ServiceResponse(
            id=s.id,
            name=s.name,
            description=s.description,
            price=float(s.price),
            duration_minutes=s.duration_minutes,
        )
        for s in ServiceCatalog(db).list_active()
    ]
