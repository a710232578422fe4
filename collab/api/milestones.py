"""Milestone endpoints, addressed by milestone id alone.

The controller resolves the owning project, so every response is the
whole updated project (milestone unlock flags shift when a neighbour
changes).

  POST   /v1/milestones/{id}/claim        apprentice marks done (notes, link)
  POST   /v1/milestones/{id}/approval     guide approves (notes, rating, feedback)
  DELETE /v1/milestones/{id}/approval     guide revokes approval
  PATCH  /v1/milestones/{id}              apprentice edits
  DELETE /v1/milestones/{id}              apprentice deletes
  PUT    /v1/milestones/{id}/review-note  guide writes a review note
  POST   /v1/milestones/{id}/review-read  apprentice marks the note read
"""

from __future__ import annotations

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from collab.api.dependencies import get_controller, require_user
from collab.api.views import ProjectOut, project_out
from collab.models.principal import Principal
from collab.services.project_lifecycle import ProjectLifecycleController

router = APIRouter(prefix="/v1/milestones", tags=["milestones"])

Controller = Annotated[ProjectLifecycleController, Depends(get_controller)]
Actor = Annotated[Principal, Depends(require_user)]


class MilestoneUpdateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    due_date: date | None = None


class ReviewNoteIn(BaseModel):
    note: str = Field(min_length=1, max_length=1000)


class ClaimIn(BaseModel):
    verification_notes: str | None = Field(default=None, max_length=500)
    submission_url: str | None = Field(default=None, max_length=2048)


class ApprovalIn(BaseModel):
    verification_notes: str | None = Field(default=None, max_length=500)
    rating: int | None = Field(default=None, ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=1000)


@router.post("/{milestone_id}/claim", response_model=ProjectOut)
async def claim_milestone(
    milestone_id: UUID,
    actor: Actor,
    controller: Controller,
    body: ClaimIn | None = None,
) -> ProjectOut:
    """Body is optional; an empty POST is a bare claim."""
    body = body or ClaimIn()
    project = await controller.claim_milestone(
        actor,
        milestone_id,
        notes=body.verification_notes,
        submission_url=body.submission_url,
    )
    return project_out(project, controller.today())


@router.post("/{milestone_id}/approval", response_model=ProjectOut)
async def approve_milestone(
    milestone_id: UUID,
    actor: Actor,
    controller: Controller,
    body: ApprovalIn | None = None,
) -> ProjectOut:
    body = body or ApprovalIn()
    project = await controller.approve_milestone(
        actor,
        milestone_id,
        notes=body.verification_notes,
        rating=body.rating,
        feedback=body.feedback,
    )
    return project_out(project, controller.today())


@router.delete("/{milestone_id}/approval", response_model=ProjectOut)
async def revoke_milestone_approval(
    milestone_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    project = await controller.revoke_milestone_approval(actor, milestone_id)
    return project_out(project, controller.today())


@router.patch("/{milestone_id}", response_model=ProjectOut)
async def edit_milestone(
    milestone_id: UUID,
    body: MilestoneUpdateIn,
    actor: Actor,
    controller: Controller,
) -> ProjectOut:
    project = await controller.edit_milestone(
        actor,
        milestone_id,
        title=body.title,
        description=body.description,
        due_date=body.due_date,
    )
    return project_out(project, controller.today())


@router.delete("/{milestone_id}", response_model=ProjectOut)
async def delete_milestone(
    milestone_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    project = await controller.delete_milestone(actor, milestone_id)
    return project_out(project, controller.today())


@router.put("/{milestone_id}/review-note", response_model=ProjectOut)
async def set_review_note(
    milestone_id: UUID,
    body: ReviewNoteIn,
    actor: Actor,
    controller: Controller,
) -> ProjectOut:
    project = await controller.set_review_note(actor, milestone_id, body.note)
    return project_out(project, controller.today())


@router.post("/{milestone_id}/review-read", response_model=ProjectOut)
async def mark_review_read(
    milestone_id: UUID, actor: Actor, controller: Controller
) -> ProjectOut:
    project = await controller.mark_review_read(actor, milestone_id)
    return project_out(project, controller.today())
