"""Milestone ledger: sequential gating and dual verification.

Each milestone carries two independent flags:

  learner (Apprentice says "done")  x  mentor (Guide approves)

  (F, F) not_started      editable, removable
  (T, F) learner_claimed  editable
  (T, T) completed        frozen
  (F, T) forbidden        a Guide cannot approve an unclaimed milestone

Only the mentor flag can be undone (mentor_unverify).  There is no
operation that retracts the learner claim.

A claim may carry notes and a submission link; an approval may carry
notes, a 1-5 rating and written feedback.

Gating: milestone i>0 is unlocked once milestone i-1 is learner-verified.
Unlock state is derived from the current sequence on every call and is
never stored.

All functions take a Project and return a new Project.  Authorization
is the controller's job; these only check milestone state.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import date, datetime
from urllib.parse import urlsplit
from uuid import UUID

from collab.models.project import (
    LearnerVerification,
    MentorVerification,
    Milestone,
    MilestoneState,
    Project,
    ProjectStatus,
)
from collab.services.errors import (
    AlreadyVerifiedError,
    InvalidInputError,
    InvariantViolation,
    MilestoneLimitReachedError,
    MilestoneLockedError,
    NotFoundError,
    NotUnlockedError,
    PrerequisiteNotMetError,
    ProjectNotActiveError,
)

logger = logging.getLogger(__name__)

DEFAULT_MILESTONE_LIMIT = 5
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
REVIEW_NOTE_MAX_LENGTH = 1000
VERIFICATION_NOTES_MAX_LENGTH = 500
FEEDBACK_MAX_LENGTH = 1000
SUBMISSION_URL_MAX_LENGTH = 2048
RATING_MIN, RATING_MAX = 1, 5


# ---------------------------------------------------------------------------
# Derived reads
# ---------------------------------------------------------------------------


def is_unlocked(milestones: Sequence[Milestone], index: int) -> bool:
    if index < 0 or index >= len(milestones):
        raise IndexError(f"milestone index {index} out of range")
    if index == 0:
        return True
    return milestones[index - 1].learner_verification.is_verified


def unlocked_flags(milestones: Sequence[Milestone]) -> list[bool]:
    return [is_unlocked(milestones, i) for i in range(len(milestones))]


def milestone_state(milestone: Milestone) -> MilestoneState:
    learner = milestone.learner_verification.is_verified
    mentor = milestone.mentor_verification.is_verified
    if mentor and not learner:
        raise InvariantViolation(
            f"milestone {milestone.id} is mentor-verified without a learner claim"
        )
    if learner and mentor:
        return MilestoneState.COMPLETED
    if learner:
        return MilestoneState.LEARNER_CLAIMED
    return MilestoneState.NOT_STARTED


def completed_count(milestones: Sequence[Milestone]) -> int:
    return sum(1 for m in milestones if m.is_completed)


def unread_review_count(milestones: Sequence[Milestone]) -> int:
    return sum(1 for m in milestones if m.has_unread_review)


def find_milestone(project: Project, milestone_id: UUID) -> tuple[int, Milestone]:
    index = project.milestone_index(milestone_id)
    if index is None:
        raise NotFoundError(f"milestone {milestone_id} not found")
    return index, project.milestones[index]


def _with_milestone(project: Project, index: int, milestone: Milestone) -> Project:
    milestones = list(project.milestones)
    milestones[index] = milestone
    return replace(project, milestones=tuple(milestones))


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


def _clean_text(value: str, *, name: str, max_length: int) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise InvalidInputError(f"{name} must be non-empty")
    if len(cleaned) > max_length:
        raise InvalidInputError(f"{name} must be at most {max_length} characters")
    return cleaned


def _optional_text(value: str | None, *, name: str, max_length: int) -> str | None:
    """Blank optional text is stored as None."""
    if value is None or not value.strip():
        return None
    return _clean_text(value, name=name, max_length=max_length)


def _submission_url(value: str | None) -> str | None:
    url = _optional_text(
        value, name="submission url", max_length=SUBMISSION_URL_MAX_LENGTH
    )
    if url is None:
        return None
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidInputError("submission url must be an http(s) link")
    return url


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


def add_milestone(
    project: Project,
    *,
    title: str,
    description: str,
    due_date: date | None,
    now: datetime,
    limit: int = DEFAULT_MILESTONE_LIMIT,
) -> Project:
    if project.status not in (ProjectStatus.OPEN, ProjectStatus.IN_PROGRESS):
        raise ProjectNotActiveError(
            f"cannot add milestones to a {project.status} project"
        )
    if len(project.milestones) >= limit:
        raise MilestoneLimitReachedError(
            f"maximum {limit} milestones allowed per project"
        )

    milestone = Milestone.new(
        title=_clean_text(title, name="title", max_length=TITLE_MAX_LENGTH),
        description=_clean_text(
            description, name="description", max_length=DESCRIPTION_MAX_LENGTH
        ),
        due_date=due_date,
        created_at=now,
    )
    return replace(project, milestones=(*project.milestones, milestone))


def update_milestone(
    project: Project,
    milestone_id: UUID,
    *,
    title: str,
    description: str,
    due_date: date | None,
) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    if milestone.is_completed:
        raise MilestoneLockedError("milestone is complete and cannot be modified")

    updated = replace(
        milestone,
        title=_clean_text(title, name="title", max_length=TITLE_MAX_LENGTH),
        description=_clean_text(
            description, name="description", max_length=DESCRIPTION_MAX_LENGTH
        ),
        due_date=due_date,
    )
    return _with_milestone(project, index, updated)


def remove_milestone(project: Project, milestone_id: UUID) -> Project:
    _, milestone = find_milestone(project, milestone_id)
    if (
        milestone.learner_verification.is_verified
        or milestone.mentor_verification.is_verified
    ):
        raise MilestoneLockedError("cannot delete a milestone with verifications")

    return replace(
        project,
        milestones=tuple(m for m in project.milestones if m.id != milestone_id),
    )


# ---------------------------------------------------------------------------
# Dual verification
# ---------------------------------------------------------------------------


def mark_learner_done(
    project: Project,
    milestone_id: UUID,
    now: datetime,
    *,
    notes: str | None = None,
    submission_url: str | None = None,
) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    if milestone.learner_verification.is_verified:
        raise AlreadyVerifiedError("milestone already marked done")
    if not is_unlocked(project.milestones, index):
        raise NotUnlockedError("previous milestone not yet claimed")

    claim = LearnerVerification(
        is_verified=True,
        verified_at=now,
        notes=_optional_text(
            notes, name="verification notes", max_length=VERIFICATION_NOTES_MAX_LENGTH
        ),
        submission_url=_submission_url(submission_url),
    )
    return _with_milestone(
        project, index, replace(milestone, learner_verification=claim)
    )


def mentor_verify(
    project: Project,
    milestone_id: UUID,
    now: datetime,
    *,
    notes: str | None = None,
    rating: int | None = None,
    feedback: str | None = None,
) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    if milestone.mentor_verification.is_verified:
        raise AlreadyVerifiedError("milestone already approved")
    if not milestone.learner_verification.is_verified:
        raise PrerequisiteNotMetError("apprentice must mark the milestone done first")
    if rating is not None and not RATING_MIN <= rating <= RATING_MAX:
        raise InvalidInputError(f"rating must be {RATING_MIN}-{RATING_MAX}")

    approval = MentorVerification(
        is_verified=True,
        verified_at=now,
        notes=_optional_text(
            notes, name="verification notes", max_length=VERIFICATION_NOTES_MAX_LENGTH
        ),
        rating=rating,
        feedback=_optional_text(
            feedback, name="feedback", max_length=FEEDBACK_MAX_LENGTH
        ),
    )
    return _with_milestone(
        project, index, replace(milestone, mentor_verification=approval)
    )


def mentor_unverify(project: Project, milestone_id: UUID) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    if not milestone.mentor_verification.is_verified:
        raise PrerequisiteNotMetError("milestone has not been approved")

    # Notes, rating and feedback go with the approval.
    updated = replace(milestone, mentor_verification=MentorVerification())
    return _with_milestone(project, index, updated)


# ---------------------------------------------------------------------------
# Review notes
# ---------------------------------------------------------------------------


def set_review_note(
    project: Project, milestone_id: UUID, note: str, now: datetime
) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    updated = replace(
        milestone,
        review_note=_clean_text(
            note, name="review note", max_length=REVIEW_NOTE_MAX_LENGTH
        ),
        reviewed_at=now,
        review_read_by_learner=False,
    )
    return _with_milestone(project, index, updated)


def mark_review_read(project: Project, milestone_id: UUID) -> Project:
    index, milestone = find_milestone(project, milestone_id)
    if milestone.review_note is None or milestone.review_read_by_learner:
        logger.debug("No unread review on milestone=%s; nothing to mark", milestone_id)
        return project
    return _with_milestone(
        project, index, replace(milestone, review_read_by_learner=True)
    )
