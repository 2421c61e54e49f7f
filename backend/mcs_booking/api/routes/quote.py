"""
Price preview route.

POST /quote prices a service selection before the customer books. The
distance is either passed in or estimated from the address, falling back
to the configured default when estimation fails.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from mcs_booking.api.dependencies import get_db, get_distance_estimator, get_settings
from mcs_booking.api.middleware.error_handler import ValidationException
from mcs_booking.lib.settings import Settings
from mcs_booking.services.booking_validation import validate_distance
from mcs_booking.services.distance_estimator import DistanceEstimator, resolve_distance
from mcs_booking.services.pricing_engine import CENT, PricingEngine, UnknownServiceError
from mcs_booking.services.service_catalog import ServiceCatalog


class QuoteRequest(BaseModel):
    service_ids: List[UUID] = Field(..., min_length=1)
    distance_km: Optional[float] = Field(None, allow_inf_nan=False)
    address: Optional[str] = None


class QuoteResponse(BaseModel):
    distance_km: float
    travel_rate: float
    service_total: float
    travel_cost: float
    total_price: float


router = APIRouter(prefix="/quote", tags=["bookings"])


@router.post("", response_model=QuoteResponse)
def create_quote(
    payload: QuoteRequest,
    db: Session = Depends(get_db),
    estimator: DistanceEstimator = Depends(get_distance_estimator),
    config: Settings = Depends(get_settings),
) -> QuoteResponse:
    """Price services plus travel without reserving anything."""
    if payload.distance_km is not None:
        distance_km = payload.distance_km
    elif payload.address:
        distance_km = resolve_distance(estimator, payload.address, config.fallback_distance_km)
    else:
        raise ValidationException(
            "Quote validation failed",
            errors={"distance_km": "Provide a distance or an address"},
        )

    distance_error = validate_distance(distance_km, config.max_service_distance_km)
    if distance_error:
        raise ValidationException("Quote validation failed", errors={"distance_km": distance_error})

    # Rounded like the distance stored on a booking
    distance = Decimal(str(distance_km)).quantize(CENT, rounding=ROUND_HALF_UP)

    engine = PricingEngine(ServiceCatalog(db).snapshot(payload.service_ids), config.travel_cost_per_km)
    try:
        quote = engine.compute_total(payload.service_ids, distance)
    except UnknownServiceError as e:
        raise ValidationException("Quote validation failed", errors={"service_ids": str(e)})

    return QuoteResponse(
        distance_km=float(distance),
        travel_rate=float(engine.rate_per_km),
        service_total=float(quote.service_total),
        travel_cost=float(quote.travel_cost),
        total_price=float(quote.total),
    )
