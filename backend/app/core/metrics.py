"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total seat reservation attempts',
    ['status']  # success, conflict, not_found, invalid, error
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Seat reservation transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0]
)

seats_reserved = Counter(
    'seats_reserved_total',
    'Seats linked to committed bookings'
)

# Cancellation metrics
cancellations = Counter(
    'booking_cancellations_total',
    'Booking cancellation attempts',
    ['status']  # success, forbidden, not_found, started
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation(status: str, seat_count: int = 0):
    """Record reservation attempt. Status: success, conflict, not_found, invalid, error"""
    reservation_attempts.labels(status=status).inc()
    if status == "success" and seat_count:
        seats_reserved.inc(seat_count)


def record_cancellation(status: str):
    cancellations.labels(status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
