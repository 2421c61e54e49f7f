"""
Travel distance estimation from the company base to a customer address.

Two estimators:
- GoogleMapsDistanceEstimator: Distance Matrix API (driving distance)
- PostalCodeDistanceEstimator: offline heuristic on German postal codes

The booking transaction only ever sees a non-negative number; what to do
when estimation fails is decided by resolve_distance().
"""
import re
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from mcs_booking.lib.logging import get_logger
from mcs_booking.lib.settings import Settings, settings as default_settings


logger = get_logger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

_POSTAL_CODE_RE = re.compile(r"\b(\d{5}|\d{4})\b")


class DistanceEstimationError(Exception):
    """Raised when an address cannot be turned into a distance."""
    pass


class DistanceEstimator(ABC):
    """Maps an address to a driving distance in kilometres."""

    @abstractmethod
    def estimate(self, address: str) -> float:
        """
        Estimate the travel distance to address.

        Returns:
            Distance in km, >= 0

        Raises:
            DistanceEstimationError: If the address cannot be resolved
        """
        pass


# (first postal code, last postal code, estimate from postal code difference)
_POSTAL_REGIONS: List[Tuple[int, int, Callable[[int], float]]] = [
    (48000, 48999, lambda diff: min(5 + diff * 0.05, 50)),        # Münsterland
    (49000, 49999, lambda diff: 30 + min(diff * 0.08, 70)),       # Osnabrück
    (44000, 47999, lambda diff: 80 + min(diff * 0.02, 50)),       # Ruhr area
    (50000, 53999, lambda diff: 120 + min(diff * 0.01, 80)),      # Cologne/Bonn
    (40000, 43999, lambda diff: 100 + min(diff * 0.02, 60)),      # Düsseldorf
    (30000, 39999, lambda diff: 140 + min(diff * 0.01, 100)),     # Hanover
    (20000, 29999, lambda diff: 200 + min(diff * 0.005, 100)),    # Hamburg/Bremen
    (7000, 7999, lambda diff: 20 + min(diff * 0.1, 80)),          # Dutch border
]


class PostalCodeDistanceEstimator(DistanceEstimator):
    """
    Rough distance from the postal code found in the address.

    Only meant as an offline fallback; it has no notion of roads.
    """

    def __init__(self, company_postal_code: str = "48431"):
        self.company_postal_code = int(company_postal_code)

    def estimate(self, address: str) -> float:
        match = _POSTAL_CODE_RE.search(address or "")
        if not match:
            raise DistanceEstimationError("No postal code in address")

        postal_code = int(match.group(1))
        if postal_code == self.company_postal_code:
            return 0.0

        diff = abs(postal_code - self.company_postal_code)
        for first, last, estimate in _POSTAL_REGIONS:
            if first <= postal_code <= last:
                return round(estimate(diff), 1)

        return round(min(50 + diff * 0.01, 500), 1)


class GoogleMapsDistanceEstimator(DistanceEstimator):
    """
    Driving distance via the Google Distance Matrix API.
    """

    def __init__(
        self,
        api_key: str,
        origin: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ValueError("Google Maps API key not configured")
        self.api_key = api_key
        self.origin = origin
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def estimate(self, address: str) -> float:
        data = self._request(address)

        if data.get("status") != "OK":
            raise DistanceEstimationError(f"Distance Matrix error: {data.get('status')}")

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError) as e:
            raise DistanceEstimationError("Malformed Distance Matrix response") from e

        if element.get("status") != "OK":
            raise DistanceEstimationError(f"Route not found: {element.get('status')}")

        try:
            meters = float(element["distance"]["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise DistanceEstimationError("Malformed Distance Matrix element") from e
        return round(meters / 1000, 1)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _request(self, address: str) -> dict:
        response = self._client.get(
            DISTANCE_MATRIX_URL,
            params={
                "origins": self.origin,
                "destinations": address,
                "mode": "driving",
                "units": "metric",
                "key": self.api_key,
            },
        )
        response.raise_for_status()
        return response.json()


def build_distance_estimator(config: Optional[Settings] = None) -> DistanceEstimator:
    """Google estimator when an API key is configured, otherwise the heuristic."""
    config = config or default_settings
    if config.google_maps_api_key:
        return GoogleMapsDistanceEstimator(
            api_key=config.google_maps_api_key,
            origin=config.company_address,
            timeout_seconds=config.distance_timeout_seconds,
        )
    return PostalCodeDistanceEstimator(config.company_postal_code)


def resolve_distance(estimator: DistanceEstimator, address: str, fallback_km: float) -> float:
    """
    Estimate distance, substituting fallback_km on any failure.

    A conservative default keeps the booking flow going when the maps
    provider is down or the address is unusual.
    """
    try:
        distance = estimator.estimate(address)
    except (DistanceEstimationError, httpx.HTTPError, ValueError) as e:
        logger.warning(
            f"Distance estimation failed, using fallback: {e}",
            extra={"fallback_km": fallback_km},
        )
        return fallback_km

    if distance < 0:
        logger.warning("Estimator returned negative distance, using fallback", extra={"distance": distance})
        return fallback_km

    return distance
