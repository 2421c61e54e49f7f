"""
Prometheus-compatible metrics for the booking backend.

Tracks:
- Bookings created and slot conflicts
- Validation rejections and persistence failures
- Cancellations
- Confirmation notification outcomes

Usage:
    from mcs_booking.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_bookings_created()
    metrics.increment_slot_conflicts()

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Optional, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style counter collector.

    Counters:
    - bookings_created_total: Committed bookings
    - booking_slot_conflicts_total: Create attempts that lost the slot race
    - booking_rejections_total: Validation failures (labels: field)
    - booking_failures_total: Storage failures (labels: operation)
    - booking_cancellations_total: Cancelled bookings
    - notifications_total: Confirmation sends (labels: kind, status)

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Optional[Dict[str, str]] = None, amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels or {})
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Booking Metrics =====

    def increment_bookings_created(self, amount: int = 1):
        """Increment committed bookings counter."""
        self._increment("bookings_created_total", amount=amount)

    def increment_slot_conflicts(self, amount: int = 1):
        """Increment lost slot races."""
        self._increment("booking_slot_conflicts_total", amount=amount)

    def increment_rejections(self, field: str, amount: int = 1):
        """
        Increment validation rejections, one per offending field.

        Args:
            field: Input field that failed validation (email, phone, service_ids, ...)
            amount: Increment amount
        """
        self._increment("booking_rejections_total", {"field": field.lower()}, amount)

    def increment_failures(self, operation: str, amount: int = 1):
        """Increment storage failures for create/cancel."""
        self._increment("booking_failures_total", {"operation": operation.lower()}, amount)

    def increment_cancellations(self, amount: int = 1):
        """Increment cancelled bookings counter."""
        self._increment("booking_cancellations_total", amount=amount)

    # ===== Notification Metrics =====

    def increment_notifications(self, kind: str, status: str, amount: int = 1):
        """
        Increment notification sends.

        Args:
            kind: Notification kind (confirmation, admin, cancellation, dispatch)
            status: Send status (sent, failed)
            amount: Increment amount
        """
        labels = {
            "kind": kind.lower(),
            "status": status.lower(),
        }
        self._increment("notifications_total", labels, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        # Group counters by metric name
        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self._get_help_text(metric_name)
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                if labels_dict:
                    labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                    output_lines.append(f"{metric_name}{{{labels_str}}} {value}")
                else:
                    output_lines.append(f"{metric_name} {value}")

            output_lines.append("")  # Blank line between metrics

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        """Get help text for metric."""
        help_texts = {
            "bookings_created_total": "Total number of committed bookings",
            "booking_slot_conflicts_total": "Total number of booking attempts on an already booked slot",
            "booking_rejections_total": "Total number of booking validation errors by field",
            "booking_failures_total": "Total number of storage failures during booking operations",
            "booking_cancellations_total": "Total number of cancelled bookings",
            "notifications_total": "Total number of booking notifications by outcome",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current value of a specific counter."""
        return self._get_value(metric_name, labels or {})

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
