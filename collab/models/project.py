"""Project aggregate: the unit of consistency for one Guide/Apprentice pair.

Everything a collaboration owns (milestones, progress log, end-date
negotiation) lives inside the Project and is saved together.  All
models are frozen; mutations produce a new instance via
dataclasses.replace() so a failed operation can never leave a
half-applied change behind.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID, uuid4


class ProjectStatus(enum.StrEnum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class MilestoneState(enum.StrEnum):
    """Derived from the two verification flags, never stored."""

    NOT_STARTED = "not_started"
    LEARNER_CLAIMED = "learner_claimed"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class Verification:
    is_verified: bool = False
    verified_at: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class LearnerVerification(Verification):
    """The Apprentice's "done" claim, optionally pointing at the work."""

    submission_url: str | None = None


@dataclass(frozen=True, slots=True)
class MentorVerification(Verification):
    """The Guide's approval; rating is 1-5 when given."""

    rating: int | None = None
    feedback: str | None = None


@dataclass(frozen=True, slots=True)
class Milestone:
    id: UUID
    title: str
    description: str
    created_at: datetime
    due_date: date | None = None
    learner_verification: LearnerVerification = field(
        default_factory=LearnerVerification
    )
    mentor_verification: MentorVerification = field(
        default_factory=MentorVerification
    )
    review_note: str | None = None
    reviewed_at: datetime | None = None
    # True until a note exists; every new note flips it back to unread.
    review_read_by_learner: bool = True

    @staticmethod
    def new(
        *,
        title: str,
        description: str,
        created_at: datetime,
        due_date: date | None = None,
    ) -> Milestone:
        return Milestone(
            id=uuid4(),
            title=title,
            description=description,
            created_at=created_at,
            due_date=due_date,
        )

    @property
    def is_completed(self) -> bool:
        return (
            self.learner_verification.is_verified
            and self.mentor_verification.is_verified
        )

    @property
    def has_unread_review(self) -> bool:
        return self.review_note is not None and not self.review_read_by_learner

    def is_overdue(self, today: date) -> bool:
        """Past its due date and not yet verified by both parties."""
        if self.is_completed or self.due_date is None:
            return False
        return self.due_date < today


@dataclass(frozen=True, slots=True)
class ProgressEntry:
    """One Guide-authored step of the append-only progress log."""

    id: UUID
    percentage: int
    note: str
    recorded_at: datetime
    author_id: str
    author_role: str = "guide"

    @staticmethod
    def new(
        *, percentage: int, note: str, recorded_at: datetime, author_id: str
    ) -> ProgressEntry:
        return ProgressEntry(
            id=uuid4(),
            percentage=percentage,
            note=note,
            recorded_at=recorded_at,
            author_id=author_id,
        )


@dataclass(frozen=True, slots=True)
class Project:
    id: UUID
    title: str
    apprentice_id: str
    created_at: datetime
    guide_id: str | None = None
    status: ProjectStatus = ProjectStatus.OPEN
    start_date: datetime | None = None
    expected_end_date: date | None = None
    temp_expected_end_date: date | None = None
    is_temp_end_date_confirmed: bool = False
    actual_end_date: datetime | None = None
    progress_percentage: int = 0
    milestones: tuple[Milestone, ...] = ()
    progress_history: tuple[ProgressEntry, ...] = ()
    version: int = 0

    @staticmethod
    def new(*, title: str, apprentice_id: str, created_at: datetime) -> Project:
        return Project(
            id=uuid4(),
            title=title,
            apprentice_id=apprentice_id,
            created_at=created_at,
        )

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.IN_PROGRESS

    def milestone_index(self, milestone_id: UUID) -> int | None:
        for i, m in enumerate(self.milestones):
            if m.id == milestone_id:
                return i
        return None
