"""
Booking notifications (confirmation and cancellation emails).

Sends happen after the booking is committed, on a small thread pool, and
are never awaited by the booking path. A failed or slow send is logged and
counted; it cannot undo a booking.
"""
import smtplib
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage
from typing import Optional

from mcs_booking.lib.logging import get_logger
from mcs_booking.lib.metrics import MetricsCollector, get_metrics_collector
from mcs_booking.lib.settings import Settings, settings as default_settings
from mcs_booking.services.booking_results import BookingRecord


logger = get_logger(__name__)


class EmailProvider(ABC):
    """
    Abstract base class for email delivery providers.
    """

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> bool:
        """
        Send an email.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain-text body

        Returns:
            True if sent successfully, False otherwise
        """
        pass


class ConsoleEmailProvider(EmailProvider):
    """
    Console provider for development/testing.
    Prints emails instead of sending them.
    """

    def send(self, to: str, subject: str, body: str) -> bool:
        print("\n" + "=" * 60)
        print(f"Email to {to}: {subject}")
        print(body)
        print("=" * 60 + "\n")
        logger.info("Email logged to console", extra={"to": to})
        return True


class SMTPEmailProvider(EmailProvider):
    """
    SMTP provider (STARTTLS on 587, implicit TLS on 465).
    """

    def __init__(self, config: Settings):
        self.smtp_host = config.smtp_host
        self.smtp_port = config.smtp_port
        self.smtp_username = config.smtp_username
        self.smtp_password = config.smtp_password
        self.from_email = config.smtp_from_email or config.smtp_username
        self.from_name = config.smtp_from_name
        self.timeout = config.notification_timeout_seconds

    def send(self, to: str, subject: str, body: str) -> bool:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to
        msg.set_content(body)

        try:
            if self.smtp_port == 465:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    self._login_and_send(server, msg)
            else:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    server.starttls()
                    self._login_and_send(server, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send failed: {e}", extra={"to": to})
            return False

        logger.info("Email sent via SMTP", extra={"to": to})
        return True

    def _login_and_send(self, server: smtplib.SMTP, msg: EmailMessage) -> None:
        if self.smtp_username:
            server.login(self.smtp_username, self.smtp_password)
        server.send_message(msg)


class NotificationPort(ABC):
    """What the booking transaction calls after commit."""

    @abstractmethod
    def booking_confirmed(self, booking: BookingRecord) -> Optional[Future]:
        pass

    @abstractmethod
    def booking_cancelled(self, booking: BookingRecord, reason: Optional[str] = None) -> Optional[Future]:
        pass


def render_confirmation(booking: BookingRecord, business_name: str) -> str:
    """Plain-text confirmation body."""
    lines = [
        f"Hello {booking.customer.name},",
        "",
        f"thank you for your booking with {business_name}.",
        "",
        f"Confirmation number: {booking.booking_number}",
        f"Appointment: {booking.slot_date:%d.%m.%Y} at {booking.slot_time:%H:%M}",
        f"Address: {booking.customer.address}",
        "",
        "Services:",
    ]
    for line in booking.lines:
        lines.append(f"  - {line.service_name}: {line.price_at_booking:.2f} EUR")
    lines += [
        "",
        f"Services total: {booking.service_total:.2f} EUR",
        f"Travel ({booking.distance_km} km): {booking.travel_cost:.2f} EUR",
        f"Total: {booking.total_price:.2f} EUR",
    ]
    return "\n".join(lines)


def render_cancellation(booking: BookingRecord, business_name: str, reason: Optional[str]) -> str:
    """Plain-text cancellation body."""
    lines = [
        f"Hello {booking.customer.name},",
        "",
        f"your booking {booking.booking_number} on "
        f"{booking.slot_date:%d.%m.%Y} at {booking.slot_time:%H:%M} has been cancelled.",
    ]
    if reason:
        lines.append(f"Reason: {reason}")
    lines += ["", "Kind regards,", business_name]
    return "\n".join(lines)


def render_admin_notice(booking: BookingRecord) -> str:
    """Plain-text notice for the business owner."""
    lines = [
        "New booking received",
        "",
        f"Confirmation number: {booking.booking_number}",
        f"Customer: {booking.customer.name}",
        f"Email: {booking.customer.email}",
        f"Phone: {booking.customer.phone}",
        f"Address: {booking.customer.address}",
        f"Appointment: {booking.slot_date:%d.%m.%Y} at {booking.slot_time:%H:%M}",
        "",
        "Services:",
    ]
    for line in booking.lines:
        lines.append(f"  - {line.service_name} ({line.price_at_booking:.2f} EUR)")
    lines += ["", f"Total: {booking.total_price:.2f} EUR"]
    if booking.customer.notes:
        lines.append(f"Notes: {booking.customer.notes}")
    return "\n".join(lines)


class EmailNotificationService(NotificationPort):
    """
    Sends booking emails in the background.

    Handles:
    - Provider selection (console or SMTP)
    - Fire-and-forget dispatch on a thread pool
    - Logging and metrics for each send outcome
    """

    def __init__(
        self,
        provider: EmailProvider,
        business_name: str = "MCS Mobile Car Solutions",
        metrics: Optional[MetricsCollector] = None,
        max_workers: int = 2,
        admin_email: Optional[str] = None,
    ):
        self.provider = provider
        self.business_name = business_name
        self.metrics = metrics or get_metrics_collector()
        self.admin_email = admin_email or None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def booking_confirmed(self, booking: BookingRecord) -> Future:
        """Queue the customer confirmation and, if configured, the admin notice."""
        subject = f"Booking confirmation {booking.booking_number}"
        body = render_confirmation(booking, self.business_name)
        future = self._dispatch("confirmation", booking, booking.customer.email, subject, body)

        if self.admin_email:
            self._dispatch(
                "admin",
                booking,
                self.admin_email,
                f"New booking {booking.booking_number}",
                render_admin_notice(booking),
            )
        return future

    def booking_cancelled(self, booking: BookingRecord, reason: Optional[str] = None) -> Future:
        subject = f"Booking {booking.booking_number} cancelled"
        body = render_cancellation(booking, self.business_name, reason)
        return self._dispatch("cancellation", booking, booking.customer.email, subject, body)

    def _dispatch(self, kind: str, booking: BookingRecord, to: str, subject: str, body: str) -> Future:
        return self._executor.submit(self._deliver, kind, booking, to, subject, body)

    def _deliver(self, kind: str, booking: BookingRecord, to: str, subject: str, body: str) -> bool:
        context = {"booking_number": booking.booking_number, "kind": kind}
        try:
            success = self.provider.send(to, subject, body)
        except Exception as e:
            logger.error(f"Error sending {kind} email: {e}", extra=context, exc_info=True)
            success = False

        if success:
            logger.info(f"Booking {kind} sent", extra=context)
        else:
            logger.warning(f"Booking {kind} not delivered", extra=context)

        self.metrics.increment_notifications(kind, "sent" if success else "failed")
        return success

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


# Factory function
def get_notification_service(config: Optional[Settings] = None) -> EmailNotificationService:
    """
    Build the notification service for the configured provider.
    """
    config = config or default_settings
    provider_name = config.notification_provider.lower()

    if provider_name == "email":
        provider: EmailProvider = SMTPEmailProvider(config)
    elif provider_name == "console":
        provider = ConsoleEmailProvider()
        logger.info("Using console email provider (dev mode)")
    else:
        raise ValueError(
            f"Unknown notification provider: {provider_name}. "
            f"Valid options: console, email"
        )

    return EmailNotificationService(
        provider,
        business_name=config.smtp_from_name,
        admin_email=config.admin_email,
    )
