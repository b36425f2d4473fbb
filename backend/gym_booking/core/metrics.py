"""
Prometheus metrics for the reservation flows.
Exposed at /metrics.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total session reservation attempts',
    ['status']  # success, full, duplicate, inactive, not_found
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Reservation commit latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

benefit_consumption = Counter(
    'benefit_consumption_total',
    'Included benefits spent or refunded',
    ['benefit', 'direction']  # training_session; consumed, refunded
)

# Cancellation / attendance metrics
cancellation_attempts = Counter(
    'cancellation_attempts_total',
    'Reservation cancellation attempts',
    ['result']  # success, window_closed, invalid_state, forbidden
)

attendance_marks = Counter(
    'attendance_marks_total',
    'Attendance outcomes recorded by staff',
    ['outcome']  # attended, no-show
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

redis_available = Gauge(
    'redis_available',
    'Whether the listing cache is reachable (1=up, 0=down)'
)


def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(status: str):
    """Status: success, full, duplicate, inactive, not_found"""
    reservation_attempts.labels(status=status).inc()


def record_benefit(benefit: str, consumed: bool):
    direction = "consumed" if consumed else "refunded"
    benefit_consumption.labels(benefit=benefit, direction=direction).inc()


def record_cancellation(result: str):
    cancellation_attempts.labels(result=result).inc()


def record_attendance(outcome: str):
    attendance_marks.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
