from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response

# Report lifecycle metrics
reports_submitted = Counter(
    "groceryindex_price_reports_submitted_total",
    "Total price reports accepted as pending",
)

report_transitions = Counter(
    "groceryindex_price_report_transitions_total",
    "Price reports leaving the pending state",
    ["status"],  # status: verified | rejected
)

helpful_votes = Counter(
    "groceryindex_helpful_votes_total",
    "Helpful vote state changes",
    ["action"],  # action: cast | retract
)

# Reputation engine metrics
reputation_events = Counter(
    "groceryindex_reputation_events_total",
    "Reputation events appended to the audit log",
    ["direction"],  # direction: award | deduct
)

badges_awarded = Counter(
    "groceryindex_badges_awarded_total",
    "Badges granted to users",
    ["badge"],
)

# HTTP request metrics (from middleware)
http_requests = Counter(
    "groceryindex_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration = Histogram(
    "groceryindex_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


async def metrics_endpoint():
    """FastAPI endpoint handler that returns Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
