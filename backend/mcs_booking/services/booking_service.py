"""
Booking transaction - the create and cancel flows.

create() runs as a pipeline:
1. Validate customer, services, distance and slot (read-only, collect-all)
2. Reserve the slot with a conditional UPDATE
3. Price the services against the catalog as seen inside the transaction
4. Insert the booking and its service lines, commit
5. Hand the committed booking to the notifier

Stages 2-4 share one database transaction: if anything fails after the
slot was flipped, the rollback puts it back. Notification happens after
commit and can never fail the booking.
"""
import secrets
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from tenacity import retry, stop_after_attempt, retry_if_exception_type

from mcs_booking.lib.logging import get_logger
from mcs_booking.lib.metrics import MetricsCollector, get_metrics_collector
from mcs_booking.lib.settings import Settings, settings as default_settings
from mcs_booking.models.bookings import Booking, BookingServiceLine, BookingStatus
from mcs_booking.models.slots import SlotStatus
from mcs_booking.services.booking_results import (
    BookingCancelled,
    BookingCreated,
    BookingNotFound,
    BookingOutcome,
    BookingRecord,
    CancellationOutcome,
    CancellationRejected,
    CustomerData,
    PersistenceFailure,
    SlotConflict,
    ValidationFailed,
)
from mcs_booking.services.booking_validation import (
    normalize_customer,
    validate_customer,
    validate_distance,
    validate_service_selection,
)
from mcs_booking.services.notification_service import NotificationPort
from mcs_booking.services.pricing_engine import CENT, PricingEngine, UnknownServiceError
from mcs_booking.services.service_catalog import ServiceCatalog
from mcs_booking.services.slot_registry import ReservationResult, SlotRegistry, slot_starts_at


logger = get_logger(__name__)


class BookingNumberCollision(Exception):
    """Generated confirmation number already exists."""
    pass


def generate_booking_number(prefix: str, today: date) -> str:
    """
    Confirmation number: prefix + yymmdd + 6 random hex chars, e.g. MCS261019A3F09C.

    Uniqueness is enforced by the database; see BookingTransaction._commit.
    """
    return f"{prefix}{today:%y%m%d}{secrets.token_hex(3).upper()}"


class BookingTransaction:
    """
    Creates and cancels bookings.

    Args:
        session_factory: Factory for database sessions; each operation opens its own
        notifier: Receives committed bookings; optional
        config: Application settings (travel rate, service area, number prefix)
        metrics: Metrics collector
        clock: Returns the current naive local time
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        notifier: Optional[NotificationPort] = None,
        config: Optional[Settings] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._session_factory = session_factory
        self._notifier = notifier
        self.config = config or default_settings
        self.metrics = metrics or get_metrics_collector()
        self._clock = clock

    # ===== Create =====

    def create(
        self,
        slot_id: UUID,
        service_ids: Iterable[UUID],
        customer: CustomerData,
        distance_km: float,
    ) -> BookingOutcome:
        """
        Book a slot.

        Returns:
            BookingCreated, ValidationFailed, SlotConflict or PersistenceFailure
        """
        requested = list(dict.fromkeys(service_ids))

        precheck = self._validate(slot_id, requested, customer, distance_km)
        if precheck is not None:
            return precheck

        distance = Decimal(str(distance_km)).quantize(CENT, rounding=ROUND_HALF_UP)

        try:
            outcome = self._commit(slot_id, requested, normalize_customer(customer), distance)
        except (BookingNumberCollision, SQLAlchemyError) as e:
            logger.error(
                f"Booking persistence failed: {e}",
                extra={"slot_id": str(slot_id)},
                exc_info=True,
            )
            self.metrics.increment_failures("create")
            return PersistenceFailure()

        if isinstance(outcome, SlotConflict):
            self.metrics.increment_slot_conflicts()
        elif isinstance(outcome, ValidationFailed):
            self._count_rejections(outcome)
        elif isinstance(outcome, BookingCreated):
            self.metrics.increment_bookings_created()
            logger.info(
                "Booking created",
                extra={
                    "booking_number": outcome.booking.booking_number,
                    "slot_id": str(slot_id),
                    "total_price": str(outcome.booking.total_price),
                },
            )
            if self._notifier is not None:
                self._notify(self._notifier.booking_confirmed, outcome.booking)

        return outcome

    def _validate(
        self,
        slot_id: UUID,
        requested: List[UUID],
        customer: CustomerData,
        distance_km: float,
    ) -> Optional[Union[ValidationFailed, SlotConflict]]:
        """Stage 1. Read-only; returns None when the booking may proceed."""
        errors = validate_customer(customer)

        distance_error = validate_distance(distance_km, self.config.max_service_distance_km)
        if distance_error:
            errors["distance_km"] = distance_error

        with self._session_factory() as db:
            active_ids = ServiceCatalog(db).find_many(requested).keys()
            service_error = validate_service_selection(requested, active_ids)
            if service_error:
                errors["service_ids"] = service_error

            slot = SlotRegistry(db).get(slot_id)
            slot_taken = False
            if slot is None:
                errors["slot_id"] = "Unknown appointment slot"
            elif slot_starts_at(slot) <= self._clock():
                errors["slot_id"] = "Appointment slot is in the past"
            else:
                slot_taken = slot.status == SlotStatus.BOOKED

        if errors:
            failed = ValidationFailed(errors=errors)
            self._count_rejections(failed)
            logger.info("Booking rejected", extra={"fields": sorted(errors)})
            return failed

        if slot_taken:
            self.metrics.increment_slot_conflicts()
            return SlotConflict(slot_id=slot_id)

        return None

    @retry(
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(BookingNumberCollision),
        reraise=True,
    )
    def _commit(
        self,
        slot_id: UUID,
        requested: List[UUID],
        customer: CustomerData,
        distance: Decimal,
    ) -> BookingOutcome:
        """Stages 2-4 in one transaction. Retried once on a confirmation number clash."""
        with self._session_factory() as db:
            try:
                if SlotRegistry(db).reserve(slot_id) is ReservationResult.ALREADY_TAKEN:
                    db.rollback()
                    return SlotConflict(slot_id=slot_id)

                catalog = ServiceCatalog(db).snapshot(requested)
                engine = PricingEngine(catalog, self.config.travel_cost_per_km)
                try:
                    quote = engine.compute_total(requested, distance)
                except UnknownServiceError as e:
                    # Deactivated between validation and reservation
                    db.rollback()
                    return ValidationFailed(errors={"service_ids": str(e)})

                booking = Booking(
                    booking_number=generate_booking_number(
                        self.config.booking_number_prefix, self._clock().date()
                    ),
                    slot_id=slot_id,
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    customer_address=customer.address,
                    notes=customer.notes or "",
                    distance_km=distance,
                    travel_rate=engine.rate_per_km,
                    service_total=quote.service_total,
                    travel_cost=quote.travel_cost,
                    total_price=quote.total,
                    status=BookingStatus.CONFIRMED,
                    lines=[
                        BookingServiceLine(
                            service_id=service_id,
                            service_name=catalog[service_id].name,
                            price_at_booking=catalog[service_id].price,
                        )
                        for service_id in requested
                    ],
                )
                db.add(booking)
                db.flush()
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if "booking_number" in str(e.orig):
                    logger.warning("Booking number collision, retrying", extra={"slot_id": str(slot_id)})
                    raise BookingNumberCollision(str(e.orig)) from e
                raise

            return BookingCreated(booking=BookingRecord.from_model(booking))

    # ===== Cancel =====

    def cancel(self, booking_id: UUID, reason: Optional[str] = None) -> CancellationOutcome:
        """
        Cancel a confirmed booking and free its slot in one transaction.

        Returns:
            BookingCancelled, CancellationRejected, BookingNotFound or PersistenceFailure
        """
        now = self._clock()

        with self._session_factory() as db:
            booking = db.get(Booking, booking_id)
            if booking is None:
                return BookingNotFound(reference=str(booking_id))

            rejection = self._cancellation_rejection(booking, now)
            if rejection:
                return CancellationRejected(booking_id=booking_id, reason=rejection)

            note = f"Cancelled on {now:%d.%m.%Y %H:%M}"
            if reason:
                note += f" - Reason: {reason.strip()}"
            notes = f"{booking.notes}\n\n{note}" if booking.notes else note

            try:
                result = db.execute(
                    update(Booking)
                    .where(Booking.id == booking_id, Booking.status != BookingStatus.CANCELLED)
                    .values(
                        status=BookingStatus.CANCELLED,
                        notes=notes,
                        cancelled_at=datetime.now(timezone.utc),
                        updated_at=datetime.now(timezone.utc),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    # Lost a race with a concurrent cancel
                    db.rollback()
                    return CancellationRejected(booking_id=booking_id, reason="Booking is already cancelled")

                SlotRegistry(db).release(booking.slot_id)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(
                    f"Booking cancellation failed: {e}",
                    extra={"booking_id": str(booking_id)},
                    exc_info=True,
                )
                self.metrics.increment_failures("cancel")
                return PersistenceFailure(message="Booking could not be cancelled")

            db.refresh(booking)
            record = BookingRecord.from_model(booking)

        self.metrics.increment_cancellations()
        logger.info("Booking cancelled", extra={"booking_number": record.booking_number})

        if self._notifier is not None:
            self._notify(self._notifier.booking_cancelled, record, reason)

        return BookingCancelled(booking=record)

    @staticmethod
    def _cancellation_rejection(booking: Booking, now: datetime) -> Optional[str]:
        if booking.status == BookingStatus.CANCELLED:
            return "Booking is already cancelled"
        if booking.status == BookingStatus.COMPLETED:
            return "Completed bookings cannot be cancelled"
        if slot_starts_at(booking.slot) < now:
            return "Past bookings cannot be cancelled"
        return None

    # ===== Queries =====

    def get_booking(self, booking_id: UUID) -> Optional[BookingRecord]:
        with self._session_factory() as db:
            booking = db.get(Booking, booking_id)
            return BookingRecord.from_model(booking) if booking else None

    def find_by_number(self, booking_number: str) -> Optional[BookingRecord]:
        with self._session_factory() as db:
            booking = self._load_by_number(db, booking_number)
            return BookingRecord.from_model(booking) if booking else None

    @staticmethod
    def _load_by_number(db: Session, booking_number: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.booking_number == booking_number.strip().upper())
        return db.execute(stmt).scalars().first()

    # ===== Helpers =====

    def _notify(self, send: Callable, *args) -> None:
        """Best effort: the booking is already committed."""
        try:
            send(*args)
        except Exception as e:
            logger.error(f"Notification dispatch failed: {e}", exc_info=True)
            self.metrics.increment_notifications("dispatch", "failed")

    def _count_rejections(self, failed: ValidationFailed) -> None:
        for field in failed.errors:
            self.metrics.increment_rejections(field)
