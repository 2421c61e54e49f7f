"""
Pricing engine - service subtotal plus distance-based travel cost.

Pure computation over a catalog snapshot; no database access, so it can be
used both inside the booking transaction and for price previews.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Union
from uuid import UUID

from mcs_booking.services.service_catalog import CatalogEntry


CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")

Number = Union[int, float, str, Decimal]


class UnknownServiceError(ValueError):
    """Raised when a priced service id is missing from the catalog or inactive."""

    def __init__(self, service_ids: Iterable[UUID]):
        self.service_ids = list(service_ids)
        super().__init__(
            "Unknown or inactive service: " + ", ".join(str(i) for i in self.service_ids)
        )


@dataclass(frozen=True)
class PriceQuote:
    """Price breakdown in EUR, all values rounded to cents."""
    service_total: Decimal
    travel_cost: Decimal
    total: Decimal


def to_money(value: Number) -> Decimal:
    """Round a value to cents, half-up."""
    return _to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of the binary float expansion
    return Decimal(str(value))


class PricingEngine:
    """
    Computes booking totals.

    Args:
        catalog: Mapping of service id to catalog entry (snapshot)
        rate_per_km: Travel cost per kilometre, non-negative
    """

    def __init__(self, catalog: Mapping[UUID, CatalogEntry], rate_per_km: Number):
        rate = _to_decimal(rate_per_km)
        if rate < 0:
            raise ValueError("Travel rate must not be negative")
        self._catalog = dict(catalog)
        self.rate_per_km = rate.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    def compute_total(self, service_ids: Iterable[UUID], distance_km: Number) -> PriceQuote:
        """
        Price a set of services plus travel.

        Args:
            service_ids: Services to price; duplicates count once
            distance_km: Travel distance, must be >= 0

        Returns:
            PriceQuote with service_total, travel_cost and total

        Raises:
            UnknownServiceError: If any id is unknown or inactive
            ValueError: If distance is negative or not finite
        """
        distance = _to_decimal(distance_km)
        if not distance.is_finite():
            raise ValueError("Distance must be a finite number")
        if distance < 0:
            raise ValueError("Distance must not be negative")

        unique_ids = list(dict.fromkeys(service_ids))
        invalid = [
            service_id for service_id in unique_ids
            if service_id not in self._catalog or not self._catalog[service_id].active
        ]
        if invalid:
            raise UnknownServiceError(invalid)

        service_total = sum(
            (self._catalog[service_id].price for service_id in unique_ids),
            Decimal("0"),
        )
        travel_cost = distance * self.rate_per_km

        return PriceQuote(
            service_total=to_money(service_total),
            travel_cost=to_money(travel_cost),
            total=to_money(service_total + travel_cost),
        )
