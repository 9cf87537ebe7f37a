"""
Prometheus metrics for the gym scheduling engine.

Service timings are fed by the @measure_operation decorator; the remaining
counters track lock contention and how booking attempts end.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "gymschedule_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "gymschedule_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "gymschedule_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

resource_lock_events_total = Counter(
    "gymschedule_resource_lock_events_total",
    "Resource lock acquire/release outcomes",
    ["action", "outcome", "backend"],
    registry=REGISTRY,
)

booking_rejections_total = Counter(
    "gymschedule_booking_rejections_total",
    "Booking attempts rejected by business rules",
    ["operation", "reason"],
    registry=REGISTRY,
)

enrollment_attempts_total = Counter(
    "gymschedule_enrollment_attempts_total",
    "Class enrollment attempts by outcome",
    ["outcome"],  # admitted | full | duplicate
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers don't touch metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_session')
            duration: Operation duration in seconds
            status: "success", "rejected" (business rule) or "error" (infrastructure)
            error_type: Exception class name when the operation did not succeed
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status != "success" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_resource_lock(action: str, outcome: str, backend: str = "local") -> None:
        resource_lock_events_total.labels(action=action, outcome=outcome, backend=backend).inc()

    @staticmethod
    def record_booking_rejection(operation: str, reason: str) -> None:
        booking_rejections_total.labels(operation=operation, reason=reason).inc()

    @staticmethod
    def record_enrollment(outcome: str) -> None:
        enrollment_attempts_total.labels(outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Return the text exposition for the custom registry."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
