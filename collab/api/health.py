"""Operational endpoints: liveness and Prometheus scrape.

/health answers "is this process alive?" and reports which storage
backend is in use.  It returns 200 even when the database is down;
status="degraded" says so without making an orchestrator restart a
process that can recover on its own.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from collab.db import engine as db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["observability"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if db.engine is None:
        checks["database"] = "not_configured"
    else:
        try:
            async with db.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception:
            logger.exception("Database health check failed")
            checks["database"] = "degraded"
            overall = "degraded"

    return {"status": overall, "checks": checks}


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose all Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
