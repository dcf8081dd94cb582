"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'seat_reservation_attempts_total',
    'Total seat reservation attempts',
    ['status']  # success, conflict, rejected, error
)

reservation_latency = Histogram(
    'seat_reservation_latency_seconds',
    'Seat reservation latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Release / cancellation metrics
seat_releases = Counter(
    'seat_releases_total',
    'Designated seats released into the floating pool',
    ['source']  # owner, cancellation
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Bookings cancelled'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Render the registry in Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(status: str):
    """Record reservation attempt. Status: success, conflict, rejected, error"""
    reservation_attempts.labels(status=status).inc()


def record_release(source: str):
    seat_releases.labels(source=source).inc()


def record_cancellation():
    booking_cancellations.inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
