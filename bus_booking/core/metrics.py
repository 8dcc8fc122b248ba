"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Seat ledger metrics
ledger_operations = Counter(
    'seat_ledger_operations_total',
    'Seat ledger operations by outcome',
    ['operation', 'status']  # create/cancel_booking/cancel_seats x success/<error kind>
)

ledger_latency = Histogram(
    'seat_ledger_latency_seconds',
    'Seat ledger operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

seats_booked = Counter(
    'seats_booked_total',
    'Seats reserved by successful bookings'
)

seats_released = Counter(
    'seats_released_total',
    'Seats returned to trip inventory by cancellations',
    ['operation']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_ledger_operation(operation: str, status: str):
    """Record a ledger outcome. Status: success or an ErrorKind value."""
    ledger_operations.labels(operation=operation, status=status).inc()


def record_seats_booked(count: int):
    seats_booked.inc(count)


def record_seats_released(operation: str, count: int):
    seats_released.labels(operation=operation).inc(count)


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
