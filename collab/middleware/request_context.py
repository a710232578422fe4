"""Request context middleware: assigns a unique ID to every request.

When a Guide and an Apprentice act on the same project at once, their
log lines interleave; the request ID is what ties a "Rejected
approve_milestone ... code=conflict" line back to the HTTP call that
caused it.

The ID lives in a ContextVar rather than a thread-local: FastAPI runs
many requests concurrently on one thread, and each async task gets its
own copy of the variable.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Stamps the current request ID onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_request_id_filter() -> None:
    """Attach the filter to every root handler (idempotent).

    Handler-level, because root-logger filters don't run for records
    propagated up from child loggers.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request, and logs one summary line.

    Honors an incoming X-Request-ID header and echoes the ID back on the
    response so clients can correlate.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
