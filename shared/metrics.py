"""Prometheus metrics for pipeline observability.

Counters and histograms at each pipeline stage.
Exposed via /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, make_asgi_app

# Pipeline counters
ingestion_rows_total = Counter(
    "ingestion_rows_total",
    "Total CSV rows processed by the ingestion pipeline",
    ["status"],  # status: stored, rejected, storage_failed
)

validation_failures_total = Counter(
    "validation_failures_total",
    "Total row validation failures by field",
    ["field"],
)

ingestion_runs_total = Counter(
    "ingestion_runs_total",
    "Total ingestion runs by outcome",
    ["outcome"],  # outcome: completed, malformed
)

storage_failures_total = Counter(
    "storage_failures_total",
    "Total storage backend failures by operation",
    ["operation"],
)

# API counters
api_requests_total = Counter(
    "api_requests_total",
    "Total API requests",
    ["endpoint", "method", "status_code"],
)

# Histograms
ingestion_duration_seconds = Histogram(
    "ingestion_duration_seconds",
    "Duration of a full ingestion run",
)

api_response_duration_seconds = Histogram(
    "api_response_duration_seconds",
    "Duration of API responses",
    ["endpoint"],
)


def create_metrics_app():
    """Create ASGI app for /metrics endpoint."""
    return make_asgi_app()
