"""Response schemas shared by the project and milestone routers.

``unlocked``, ``state`` and ``is_overdue`` are computed per response
from the current milestone sequence and the controller clock's date.
They are not stored anywhere, so a client can never see a stale flag.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from collab.models.project import Milestone, ProgressEntry, Project
from collab.services import milestone_ledger
from collab.services.project_lifecycle import ProjectLifecycleController


class VerificationOut(BaseModel):
    is_verified: bool
    verified_at: datetime | None
    verification_notes: str | None


class LearnerVerificationOut(VerificationOut):
    submission_url: str | None


class MentorVerificationOut(VerificationOut):
    rating: int | None
    feedback: str | None


class MilestoneOut(BaseModel):
    id: str
    position: int
    title: str
    description: str
    due_date: date | None
    state: str
    unlocked: bool
    is_overdue: bool
    learner_verification: LearnerVerificationOut
    mentor_verification: MentorVerificationOut
    review_note: str | None
    reviewed_at: datetime | None
    review_read_by_learner: bool


class ProgressEntryOut(BaseModel):
    id: str
    percentage: int
    note: str
    recorded_at: datetime
    author_id: str
    author_role: str


class ProjectOut(BaseModel):
    id: str
    title: str
    guide_id: str | None
    apprentice_id: str
    status: str
    start_date: datetime | None
    expected_end_date: date | None
    temp_expected_end_date: date | None
    is_temp_end_date_confirmed: bool
    actual_end_date: datetime | None
    progress_percentage: int
    milestone_completion_percentage: int
    unread_review_count: int
    milestones: list[MilestoneOut]
    progress_history: list[ProgressEntryOut]
    version: int


def milestone_out(
    m: Milestone, position: int, unlocked: bool, today: date
) -> MilestoneOut:
    learner, mentor = m.learner_verification, m.mentor_verification
    return MilestoneOut(
        id=str(m.id),
        position=position,
        title=m.title,
        description=m.description,
        due_date=m.due_date,
        state=str(milestone_ledger.milestone_state(m)),
        unlocked=unlocked,
        is_overdue=m.is_overdue(today),
        learner_verification=LearnerVerificationOut(
            is_verified=learner.is_verified,
            verified_at=learner.verified_at,
            verification_notes=learner.notes,
            submission_url=learner.submission_url,
        ),
        mentor_verification=MentorVerificationOut(
            is_verified=mentor.is_verified,
            verified_at=mentor.verified_at,
            verification_notes=mentor.notes,
            rating=mentor.rating,
            feedback=mentor.feedback,
        ),
        review_note=m.review_note,
        reviewed_at=m.reviewed_at,
        review_read_by_learner=m.review_read_by_learner,
    )


def progress_entry_out(e: ProgressEntry) -> ProgressEntryOut:
    return ProgressEntryOut(
        id=str(e.id),
        percentage=e.percentage,
        note=e.note,
        recorded_at=e.recorded_at,
        author_id=e.author_id,
        author_role=e.author_role,
    )


def project_out(project: Project, today: date) -> ProjectOut:
    """Serialize a project; ``today`` decides which milestones are overdue."""
    flags = milestone_ledger.unlocked_flags(project.milestones)
    return ProjectOut(
        id=str(project.id),
        title=project.title,
        guide_id=project.guide_id,
        apprentice_id=project.apprentice_id,
        status=str(project.status),
        start_date=project.start_date,
        expected_end_date=project.expected_end_date,
        temp_expected_end_date=project.temp_expected_end_date,
        is_temp_end_date_confirmed=project.is_temp_end_date_confirmed,
        actual_end_date=project.actual_end_date,
        progress_percentage=project.progress_percentage,
        milestone_completion_percentage=(
            ProjectLifecycleController.milestone_completion_percentage(project)
        ),
        unread_review_count=milestone_ledger.unread_review_count(project.milestones),
        milestones=[
            milestone_out(m, i, flags[i], today)
            for i, m in enumerate(project.milestones)
        ],
        progress_history=[
            progress_entry_out(e)
            for e in sorted(project.progress_history, key=lambda e: e.recorded_at)
        ],
        version=project.version,
    )
