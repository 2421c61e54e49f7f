"""
Unit tests for distance estimation and the fallback policy.
"""
from unittest.mock import MagicMock

import httpx
import pytest

from mcs_booking.lib.settings import Settings
from mcs_booking.services.distance_estimator import (
    DistanceEstimationError,
    GoogleMapsDistanceEstimator,
    PostalCodeDistanceEstimator,
    build_distance_estimator,
    resolve_distance,
)


def matrix_response(meters: int) -> dict:
    return {
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": meters}}]}],
    }


def google_estimator(handler) -> GoogleMapsDistanceEstimator:
    return GoogleMapsDistanceEstimator(
        api_key="test-key",
        origin="Industriestraße 15, 48431 Rheine",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


# ===== Postal code heuristic =====

@pytest.mark.unit
def test_same_postal_code_is_zero():
    estimator = PostalCodeDistanceEstimator("48431")
    assert estimator.estimate("Emsstraße 1, 48431 Rheine") == 0.0


@pytest.mark.unit
def test_nearby_postal_code():
    estimator = PostalCodeDistanceEstimator("48431")
    # 48429: diff 2 -> 5 + 0.1
    assert estimator.estimate("Marktplatz 3, 48429 Rheine") == 5.1


@pytest.mark.unit
def test_other_region_uses_region_table():
    estimator = PostalCodeDistanceEstimator("48431")
    distance = estimator.estimate("Domhof 1, 49074 Osnabrück")
    assert 30 <= distance <= 100


@pytest.mark.unit
def test_missing_postal_code_raises():
    estimator = PostalCodeDistanceEstimator("48431")
    with pytest.raises(DistanceEstimationError):
        estimator.estimate("Somewhere without a code")


# ===== Google Distance Matrix =====

@pytest.mark.unit
def test_google_estimator_parses_distance():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["destinations"] == "Domhof 1, 49074 Osnabrück"
        assert request.url.params["key"] == "test-key"
        return httpx.Response(200, json=matrix_response(48_260))

    assert google_estimator(handler).estimate("Domhof 1, 49074 Osnabrück") == 48.3


@pytest.mark.unit
def test_google_estimator_route_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]})

    with pytest.raises(DistanceEstimationError, match="ZERO_RESULTS"):
        google_estimator(handler).estimate("Atlantis")


@pytest.mark.unit
def test_google_estimator_api_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "REQUEST_DENIED"})

    with pytest.raises(DistanceEstimationError, match="REQUEST_DENIED"):
        google_estimator(handler).estimate("Anywhere 1, 48431 Rheine")


@pytest.mark.unit
def test_google_estimator_element_without_distance():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK", "rows": [{"elements": [{"status": "OK"}]}]})

    with pytest.raises(DistanceEstimationError, match="Malformed"):
        google_estimator(handler).estimate("Emsstraße 1, 48431 Rheine")

    assert resolve_distance(google_estimator(handler), "Emsstraße 1, 48431 Rheine", 35.0) == 35.0


@pytest.mark.unit
def test_google_estimator_retries_transport_error_once():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=matrix_response(10_000))

    assert google_estimator(handler).estimate("Emsstraße 1, 48431 Rheine") == 10.0
    assert len(calls) == 2


@pytest.mark.unit
def test_google_estimator_requires_api_key():
    with pytest.raises(ValueError):
        GoogleMapsDistanceEstimator(api_key="", origin="Rheine")


# ===== Factory and fallback policy =====

@pytest.mark.unit
def test_build_estimator_without_key_uses_postal_codes():
    estimator = build_distance_estimator(Settings(google_maps_api_key=""))
    assert isinstance(estimator, PostalCodeDistanceEstimator)


@pytest.mark.unit
def test_build_estimator_with_key_uses_google():
    estimator = build_distance_estimator(Settings(google_maps_api_key="abc"))
    assert isinstance(estimator, GoogleMapsDistanceEstimator)


@pytest.mark.unit
def test_resolve_distance_passes_estimate_through():
    estimator = MagicMock()
    estimator.estimate.return_value = 12.5

    assert resolve_distance(estimator, "Emsstraße 1, 48431 Rheine", fallback_km=35.0) == 12.5


@pytest.mark.unit
@pytest.mark.parametrize("error", [
    DistanceEstimationError("no route"),
    httpx.ConnectTimeout("timed out"),
    ValueError("bad payload"),
])
def test_resolve_distance_falls_back_on_failure(error):
    estimator = MagicMock()
    estimator.estimate.side_effect = error

    assert resolve_distance(estimator, "Somewhere", fallback_km=35.0) == 35.0


@pytest.mark.unit
def test_resolve_distance_rejects_negative_estimate():
    estimator = MagicMock()
    estimator.estimate.return_value = -3.0

    assert resolve_distance(estimator, "Somewhere", fallback_km=35.0) == 35.0
