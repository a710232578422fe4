"""Project-scoped endpoints: lifecycle, progress tracker, end-date handshake.

Sequence for a Guide recording progress:
  Client -> POST /v1/projects/{projectId}/progress
  -> load project (version v)
  -> guide owns project? else 403
  -> percentage > current, note >= 10 chars? else 409/422 + current project
  -> append entry, save if still at version v, else 409 conflict
  -> 200 updated project

Every handler delegates to ProjectLifecycleController; CollabError is
turned into a response by collab.api.errors.collab_error_handler.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from collab.api.dependencies import get_controller, require_user
from collab.api.views import (
    ProgressEntryOut,
    ProjectOut,
    progress_entry_out,
    project_out,
)
from collab.models.principal import Principal
from collab.services.project_lifecycle import ProjectLifecycleController

router = APIRouter(prefix="/v1/projects", tags=["projects"])

Controller = Annotated[ProjectLifecycleController, Depends(get_controller)]
Actor = Annotated[Principal, Depends(require_user)]


class ProjectCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class MilestoneCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    due_date: date | None = None


class ProgressIn(BaseModel):
    percentage: int = Field(ge=0, le=100)
    note: str


class EndDateIn(BaseModel):
    proposed: date = Field(alias="date")


class CompletionGuardOut(BaseModel):
    project_id: str
    can_complete: bool
    outstanding_milestones: int


# ---------------------------------------------------------------------------
# Project lifecycle
# ---------------------------------------------------------------------------


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def open_project(
    body: ProjectCreateIn, actor: Actor, controller: Controller
) -> ProjectOut:
    """Apprentice opens a project; it waits for a Guide."""
    project = await controller.open_project(actor, title=body.title)
    return project_out(project, controller.today())


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    project = await controller.get_project(actor, project_id)
    return project_out(project, controller.today())


@router.post("/{project_id}/accept", response_model=ProjectOut)
async def accept_project(
    project_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    """Guide takes the project; status becomes InProgress."""
    project = await controller.accept_project(actor, project_id)
    return project_out(project, controller.today())


@router.get("/{project_id}/completion-guard", response_model=CompletionGuardOut)
async def completion_guard(
    project_id: UUID,
    actor: Actor,
    controller: Controller,
    accept_outstanding: bool = False,
) -> CompletionGuardOut:
    """What the external completion workflow consults before closing."""
    project = await controller.get_project(actor, project_id)
    allowed = await controller.can_transition_to_completed(
        project_id, accept_outstanding=accept_outstanding
    )
    outstanding = sum(1 for m in project.milestones if not m.is_completed)
    return CompletionGuardOut(
        project_id=str(project_id),
        can_complete=allowed,
        outstanding_milestones=outstanding,
    )


@router.post(
    "/{project_id}/milestones",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_milestone(
    project_id: UUID,
    body: MilestoneCreateIn,
    actor: Actor,
    controller: Controller,
) -> ProjectOut:
    project = await controller.add_milestone(
        actor,
        project_id,
        title=body.title,
        description=body.description,
        due_date=body.due_date,
    )
    return project_out(project, controller.today())


# ---------------------------------------------------------------------------
# Progress tracker
# ---------------------------------------------------------------------------


@router.post("/{project_id}/progress", response_model=ProjectOut)
async def record_progress(
    project_id: UUID,
    body: ProgressIn,
    actor: Actor,
    controller: Controller,
) -> ProjectOut:
    # Note length is checked by the tracker so it reports note_too_short.
    project = await controller.record_progress(
        actor, project_id, percentage=body.percentage, note=body.note
    )
    return project_out(project, controller.today())


@router.get("/{project_id}/progress", response_model=list[ProgressEntryOut])
async def get_progress_history(
    project_id: UUID, actor: Actor, controller: Controller
) -> list[ProgressEntryOut]:
    entries = await controller.progress_history(actor, project_id)
    return [progress_entry_out(e) for e in entries]


# ---------------------------------------------------------------------------
# End-date negotiation
# ---------------------------------------------------------------------------


@router.post("/{project_id}/end-date", response_model=ProjectOut)
async def propose_end_date(
    project_id: UUID,
    body: EndDateIn,
    actor: Actor,
    controller: Controller,
) -> ProjectOut:
    project = await controller.propose_end_date(actor, project_id, body.proposed)
    return project_out(project, controller.today())


@router.post("/{project_id}/end-date/confirm", response_model=ProjectOut)
async def confirm_end_date(
    project_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    project = await controller.confirm_end_date(actor, project_id)
    return project_out(project, controller.today())
