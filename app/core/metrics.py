"""
Prometheus metrics shared by the middleware and the services.

Metrics live at module level so they are registered exactly once per
process, no matter how many application instances are created.
"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

EMERGENCY_REQUESTS_CREATED = Counter(
    'emergency_requests_created_total',
    'Total emergency requests created',
    ['status']
)

STATS_REFRESH_FAILURES = Counter(
    'stats_refresh_failures_total',
    'Stats recomputations that failed after a committed mutation'
)

ACTIVITY_APPEND_FAILURES = Counter(
    'activity_append_failures_total',
    'Activity feed entries that could not be recorded'
)

NOTIFICATION_FAILURES = Counter(
    'notification_failures_total',
    'Status-change notifications that could not be recorded'
)
