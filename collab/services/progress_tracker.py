"""Guide-authored progress log.

The log is append-only and strictly increasing: each entry must raise
the percentage.  A mistake is corrected only by a later, higher entry;
nothing is edited or deleted.  ``Project.progress_percentage`` mirrors
the latest entry so reads don't need to scan the history.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from collab.models.project import ProgressEntry, Project
from collab.services.errors import (
    InvalidInputError,
    NonIncreasingProgressError,
    NoteTooShortError,
    ProjectNotActiveError,
)

NOTE_MIN_LENGTH = 10


def record_progress(
    project: Project,
    *,
    percentage: int,
    note: str,
    author_id: str,
    now: datetime,
) -> Project:
    if not project.is_active:
        raise ProjectNotActiveError("progress can only be recorded while in progress")
    if not 0 <= percentage <= 100:
        raise InvalidInputError("percentage must be between 0 and 100")

    if percentage <= project.progress_percentage:
        raise NonIncreasingProgressError(
            f"progress must increase beyond {project.progress_percentage}%"
        )

    cleaned = note.strip()
    if len(cleaned) < NOTE_MIN_LENGTH:
        raise NoteTooShortError(
            f"progress note must be at least {NOTE_MIN_LENGTH} characters"
        )

    entry = ProgressEntry.new(
        percentage=percentage,
        note=cleaned,
        recorded_at=now,
        author_id=author_id,
    )
    return replace(
        project,
        progress_history=(*project.progress_history, entry),
        progress_percentage=percentage,
    )


def history(project: Project) -> tuple[ProgressEntry, ...]:
    """Entries in chronological order.  A fresh tuple on every call."""
    return tuple(sorted(project.progress_history, key=lambda e: e.recorded_at))
