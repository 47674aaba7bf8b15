# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics, single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "membership_requests_total",
    "Total HTTP requests to membership service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "membership_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "membership_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
TRANSACTIONS_PROCESSED = Counter(
    "membership_transactions_processed_total",
    "Transactions consumed by reconciliation",
    ["outcome"],
)
AMBIGUOUS_TRANSACTIONS = Counter(
    "membership_ambiguous_transactions_total",
    "Transactions deferred because several members matched",
)
MEMBERS_MIGRATED = Counter(
    "membership_members_migrated_total",
    "Members imported from the legacy table",
)
MERGES_TOTAL = Counter(
    "membership_merges_total",
    "Join-to-renew merges",
    ["outcome"],
)
EXPIRY_NOTIFICATIONS = Counter(
    "membership_expiry_notifications_total",
    "Expiry notifications generated",
    ["type"],
)
QUEUE_ITEMS = Counter(
    "membership_queue_items_total",
    "FIFO items drained, by outcome",
    ["outcome"],
)
EMAILS_SENT = Counter(
    "membership_emails_sent_total",
    "Emails accepted by the mail service",
)
GROUP_OPERATIONS = Counter(
    "membership_group_operations_total",
    "List membership changes made in the directory",
    ["operation"],
)
ACTIVE_MEMBERS = Gauge(
    "membership_active_members",
    "Number of Active member rows",
)
QUEUE_DEPTH = Gauge(
    "membership_queue_depth",
    "Items in the live FIFO queue",
)
DEAD_LETTERS = Gauge(
    "membership_dead_letters",
    "Items in the dead-letter store",
)
