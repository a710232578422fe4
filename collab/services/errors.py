"""Typed failures for the collaboration engine.

Each error names one rejected precondition.  The HTTP layer maps
``status_code`` straight onto the response and echoes ``code`` so
clients can branch on it without parsing the message.

The controller attaches the unmodified project to ``project`` before
re-raising, so a rejected request still returns the current state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collab.models.project import Project


class CollabError(Exception):
    code = "collab_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.project: Project | None = None


class ForbiddenError(CollabError):
    code = "forbidden"
    status_code = 403


class NotFoundError(CollabError):
    code = "not_found"
    status_code = 404


# --- sequencing ---


class NotUnlockedError(CollabError):
    code = "not_unlocked"
    status_code = 409


class PrerequisiteNotMetError(CollabError):
    code = "prerequisite_not_met"
    status_code = 409


# --- idempotency / no-op ---


class AlreadyVerifiedError(CollabError):
    code = "already_verified"
    status_code = 409


class AlreadyConfirmedError(CollabError):
    code = "already_confirmed"
    status_code = 409


class NoPendingProposalError(CollabError):
    code = "no_pending_proposal"
    status_code = 409


# --- state locks ---


class MilestoneLockedError(CollabError):
    code = "milestone_locked"
    status_code = 409


class MilestoneLimitReachedError(CollabError):
    code = "milestone_limit_reached"
    status_code = 409


class ProjectNotActiveError(CollabError):
    code = "project_not_active"
    status_code = 409


class NonIncreasingProgressError(CollabError):
    code = "non_increasing_progress"
    status_code = 409


class ConflictError(CollabError):
    """The aggregate changed between read and write.  Re-read and retry."""

    code = "conflict"
    status_code = 409


# --- payload validation ---


class NoteTooShortError(CollabError):
    code = "note_too_short"
    status_code = 422


class DateNotInFutureError(CollabError):
    code = "date_not_in_future"
    status_code = 422


class InvalidInputError(CollabError):
    code = "invalid_input"
    status_code = 422


class InvariantViolation(Exception):
    """Stored state breaks a rule no operation can produce.  Not user-facing."""
