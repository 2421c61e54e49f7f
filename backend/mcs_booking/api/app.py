"""
FastAPI application entry point with health check route.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcs_booking.api.routes import bookings, quote, services, slots
from mcs_booking.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from mcs_booking.lib.db import build_engine, build_session_factory
from mcs_booking.lib.logging import get_logger, set_correlation_id
from mcs_booking.lib.metrics import get_metrics_collector
from mcs_booking.lib.settings import Settings, settings as default_settings
from mcs_booking.services.distance_estimator import DistanceEstimator, build_distance_estimator
from mcs_booking.services.notification_service import NotificationPort, get_notification_service

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        # Get correlation ID from header or generate new one
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Store in request state for the error handlers, and in the
        # logging context so every log line of this request carries it
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info(
            "Response sent",
            extra={"status_code": response.status_code},
        )

        return response


def create_app(
    config: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    notifier: Optional[NotificationPort] = None,
    distance_estimator: Optional[DistanceEstimator] = None,
) -> FastAPI:
    """
    Build the booking API.

    Args:
        config: Settings; defaults to the environment
        session_factory: Session factory; defaults to one for config.database_url
        notifier: Booking notifier; defaults to the configured provider
        distance_estimator: Estimator used when a request carries no distance
    """
    config = config or default_settings
    owns_notifier = notifier is None

    if session_factory is None:
        session_factory = build_session_factory(build_engine(config=config))
    if notifier is None:
        notifier = get_notification_service(config)
    if distance_estimator is None:
        distance_estimator = build_distance_estimator(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager for startup/shutdown events.
        """
        logger.info(f"{config.app_name} starting up...")
        yield
        if owns_notifier:
            notifier.shutdown(wait=True)
        logger.info(f"{config.app_name} shutting down...")

    app = FastAPI(
        title=config.app_name,
        version="1.0.0",
        description="Booking API for mobile car detailing appointments",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.session_factory = session_factory
    app.state.notifier = notifier
    app.state.distance_estimator = distance_estimator

    # CORS middleware - booking frontend origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(CorrelationIdMiddleware)

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(services.router)
    app.include_router(slots.router)
    app.include_router(quote.router)
    app.include_router(bookings.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False, response_class=PlainTextResponse)
    def metrics_endpoint():
        """
        Prometheus-compatible metrics endpoint.

        Metrics exposed:
        - bookings_created_total: Committed bookings
        - booking_slot_conflicts_total: Attempts on an already booked slot
        - booking_rejections_total: Validation errors by field
        - booking_failures_total: Storage failures by operation
        - booking_cancellations_total: Cancelled bookings
        - notifications_total: Email sends by kind and status

        Returns:
            Prometheus text format metrics
        """
        return PlainTextResponse(
            content=get_metrics_collector().export_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app


app = create_app()
