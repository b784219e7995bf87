"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'pondside_booking_attempts_total',
    'Total booking attempts',
    ['type', 'status']  # success, capacity_exceeded, error
)

booking_retries = Counter(
    'pondside_booking_retry_attempts_total',
    'Capacity counter retries due to version conflicts'
)

booking_latency = Histogram(
    'pondside_booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Scan metrics
check_in_scans = Counter(
    'pondside_check_in_scans_total',
    'Seat QR scans at check-in stations',
    ['outcome']  # checked_in, already_checked_in, rejected
)

rods_issued = Counter(
    'pondside_rods_issued_total',
    'Rod labels issued',
    ['kind']  # first, replacement
)

catches_recorded = Counter(
    'pondside_catches_recorded_total',
    'Catch records written'
)

# Leaderboard metrics
leaderboard_cache_operations = Counter(
    'pondside_leaderboard_cache_total',
    'Leaderboard cache lookups',
    ['result']  # hit, miss, stale, error
)

leaderboard_build_latency = Histogram(
    'pondside_leaderboard_build_seconds',
    'Time spent recomputing a leaderboard',
    ['scope'],  # overall, event
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Side effects
side_effect_failures = Counter(
    'pondside_side_effect_failures_total',
    'Best-effort side effects that failed',
    ['effect']
)

# Devices
device_reports = Counter(
    'pondside_device_reports_total',
    'Status reports received from scales and printers',
    ['device_type', 'status']
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(booking_type: str, status: str):
    """Record booking attempt. Status: success, capacity_exceeded, seat_taken, error"""
    booking_attempts.labels(type=booking_type, status=status).inc()


def record_check_in(outcome: str):
    check_in_scans.labels(outcome=outcome).inc()


def record_rod_issued(replacement: bool):
    rods_issued.labels(kind="replacement" if replacement else "first").inc()


def record_cache_lookup(result: str):
    leaderboard_cache_operations.labels(result=result).inc()


def record_side_effect_failure(effect: str):
    side_effect_failures.labels(effect=effect).inc()


def record_device_report(device_type: str, status: str):
    device_reports.labels(device_type=device_type, status=status).inc()
