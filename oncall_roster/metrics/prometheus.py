# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "roster_requests_total",
    "Total HTTP requests to the roster service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "roster_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "roster_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
SCHEDULE_WEEKS_GENERATED = Counter(
    "roster_schedule_weeks_generated_total",
    "Schedule weeks written by the generator",
)
LOCKED_WEEKS_KEPT = Counter(
    "roster_locked_weeks_kept_total",
    "Locked schedule weeks left untouched during generation",
)
ONCALL_LOOKUPS = Counter(
    "roster_oncall_lookups_total",
    "On-call resolutions by result source",
    ["source"],
)
OVERRIDES_CREATED = Counter(
    "roster_overrides_created_total",
    "Total overrides created",
)
COVERAGE_GAP_HOURS = Gauge(
    "roster_coverage_gap_hours",
    "Total gap hours found by the most recent coverage analysis",
)
HANDOFFS_DETECTED = Counter(
    "roster_handoffs_detected_total",
    "Handoff boundaries detected by the ticker",
)
NOTIFICATIONS_SENT = Counter(
    "roster_notifications_sent_total",
    "Handoff notifications delivered to the notification service",
    ["channel"],
)
BACKGROUND_TASKS = Counter(
    "roster_background_tasks_total",
    "Background tasks by outcome",
    ["task", "outcome"],
)
BACKGROUND_QUEUE_DEPTH = Gauge(
    "roster_background_queue_depth",
    "Tasks waiting in the background queue",
)
TOPUP_RUNS = Counter(
    "roster_topup_runs_total",
    "Schedule top-up passes per roster by outcome",
    ["outcome"],
)
