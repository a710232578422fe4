"""Maps CollabError onto HTTP responses.

Body shape::

    {"error": "not_unlocked",
     "detail": "previous milestone not yet claimed",
     "project": {...current, unmodified project...} | null}

``project`` is present for precondition failures so the client can
show exactly why the action was refused.  Authorization and lookup
failures never carry it.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from collab.api import dependencies
from collab.api.views import project_out
from collab.services.errors import CollabError


async def collab_error_handler(_request: Request, exc: CollabError) -> JSONResponse:
    project = None
    if exc.project is not None:
        today = dependencies.controller.today()
        project = project_out(exc.project, today).model_dump(mode="json")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message, "project": project},
    )
