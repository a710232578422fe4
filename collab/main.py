from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from collab.api.errors import collab_error_handler
from collab.api.health import router as health_router
from collab.api.milestones import router as milestones_router
from collab.api.projects import router as projects_router
from collab.core.config import SETTINGS
from collab.core.logging import setup_logging
from collab.db.engine import lifespan_db
from collab.middleware.metrics import MetricsMiddleware
from collab.middleware.request_context import (
    RequestContextMiddleware,
    install_request_id_filter,
)
from collab.services.errors import CollabError

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        yield


app = FastAPI(
    title="collab-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_exception_handler(CollabError, collab_error_handler)  # type: ignore[arg-type]

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(projects_router)
app.include_router(milestones_router)

logger.info(
    "collab-service started  env=%s log_level=%s port=%d storage=%s max_milestones=%d",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgres" if SETTINGS.database_url else "memory",
    SETTINGS.max_milestones,
)
