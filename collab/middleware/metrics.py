"""Prometheus metrics middleware; instruments every HTTP request.

For each request, this middleware:
  1. Increments the ACTIVE_REQUESTS gauge (decrement on completion)
  2. Times the request duration
  3. On completion: increments REQUEST_COUNT (by method/endpoint/status)
     and observes the duration in REQUEST_DURATION histogram

ENDPOINT LABEL
---------------
Every collaboration route carries a UUID (/v1/projects/{project_id}/...).
Labelling by the raw URL would mint a new time series per project.  The
label is the matched route template instead; unmatched paths (404s)
collapse into a single "unmatched" series.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from collab.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            # Route is resolved during call_next; read it afterwards.
            endpoint = _endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
