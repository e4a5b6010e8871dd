# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics - single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "liftout_requests_total",
    "Total HTTP requests to the team service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "liftout_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "liftout_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
TEAMS_CREATED = Counter(
    "liftout_teams_created_total",
    "Total teams created",
)
READINESS_CHECKS = Counter(
    "liftout_readiness_checks_total",
    "Posting readiness evaluations served",
    ["can_post"],
)
POSTING_TRANSITIONS = Counter(
    "liftout_posting_transitions_total",
    "Posting status transitions by outcome",
    ["transition", "outcome"],
)
INVITATIONS_TOTAL = Counter(
    "liftout_invitations_total",
    "Invitation lifecycle actions",
    ["action"],
)
MEMBERS_REMOVED = Counter(
    "liftout_members_removed_total",
    "Members moved to inactive",
)
NOTIFICATIONS_SENT = Counter(
    "liftout_notifications_sent_total",
    "Notifications handed to the notification service",
    ["channel", "status"],
)
