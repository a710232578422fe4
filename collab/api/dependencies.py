from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from collab.core.clock import SystemClock
from collab.core.config import SETTINGS
from collab.db import engine as db
from collab.models.principal import Principal
from collab.repos.pg_project_repo import PgProjectRepo
from collab.repos.project_repo import InMemoryProjectRepo
from collab.services import token_service
from collab.services.project_lifecycle import ProjectLifecycleController

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# --- Module-level singletons (in-memory unless DATABASE_URL is set) ---
project_repo = InMemoryProjectRepo()
controller = ProjectLifecycleController(
    project_repo, SystemClock(), milestone_limit=SETTINGS.max_milestones
)


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


async def get_controller() -> AsyncGenerator[ProjectLifecycleController, None]:
    """Controller bound to this request's storage.

    With a database, each request gets its own session (committed or
    rolled back by session_scope) wrapped in a PgProjectRepo.
    """
    if db.async_session_factory is None:
        yield controller
        return

    async with db.session_scope() as session:
        yield ProjectLifecycleController(
            PgProjectRepo(session),
            controller.clock,
            milestone_limit=SETTINGS.max_milestones,
        )
