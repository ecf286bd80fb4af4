"""Monitoring configuration for the service."""
from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Notification metrics
notifications_sent = Counter(
    "braincraft_notifications_sent_total",
    "Total number of reminder messages pushed successfully",
)

notifications_failed = Counter(
    "braincraft_notifications_failed_total",
    "Total number of reminder pushes rejected or failed",
)

notifications_skipped = Counter(
    "braincraft_notifications_skipped_total",
    "Total number of due reminders with no content, marked sent without a push",
)

eligible_users = Gauge(
    "braincraft_eligible_users",
    "Number of users due in the most recent tick",
)

tick_duration = Histogram(
    "braincraft_tick_duration_seconds",
    "Duration of a notification tick in seconds",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0],
)

# Error metrics
error_count = Counter(
    "braincraft_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
