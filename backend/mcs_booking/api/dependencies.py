"""
API dependencies for FastAPI dependency injection.

Everything is read from app.state, which create_app() fills in, so tests
can build an app around their own database and fakes.
"""
from fastapi import Request

from mcs_booking.lib.db import get_db as get_db_session
from mcs_booking.lib.settings import Settings
from mcs_booking.services.booking_service import BookingTransaction
from mcs_booking.services.distance_estimator import DistanceEstimator


# Re-export get_db for convenience
get_db = get_db_session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_distance_estimator(request: Request) -> DistanceEstimator:
    return request.app.state.distance_estimator


def get_booking_transaction(request: Request) -> BookingTransaction:
    """Booking transaction wired to the app's session factory and notifier."""
    return BookingTransaction(
        request.app.state.session_factory,
        notifier=request.app.state.notifier,
        config=request.app.state.settings,
    )
