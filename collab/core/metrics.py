"""Application metrics using the Prometheus client library.

This module defines all metrics in one place: a single inventory of
everything the service measures.  Other modules import specific metrics
and increment/observe them at the point of action.

HTTP METRICS
-------------
Recorded by MetricsMiddleware for every request:

  http_requests_total            COUNTER   by method, endpoint, status_code
  http_request_duration_seconds  HISTOGRAM by method, endpoint
  http_active_requests           GAUGE     in-flight right now

DOMAIN METRICS
---------------
Recorded by ProjectLifecycleController for every operation, whether it
arrived over HTTP or from an in-process caller:

  collab_operations_total        COUNTER   by operation, outcome

``outcome`` is "ok" or the error code of the rejection (not_unlocked,
conflict, ...).  A rising rate of outcome="conflict" means two parties
are racing on the same project; a rising rate of a precondition code
usually means a client is offering an action it should have hidden.

Prometheus PULLS these from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Collaboration engine metrics
# ---------------------------------------------------------------------------

COLLAB_OPERATIONS = Counter(
    "collab_operations_total",
    "Project lifecycle operations by operation name and outcome",
    ["operation", "outcome"],
)
