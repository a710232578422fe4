"""Tests for the milestone ledger: gating, dual verification, locks."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, date, datetime
from uuid import uuid4

import pytest

from collab.models.project import (
    LearnerVerification,
    MentorVerification,
    MilestoneState,
    Project,
    ProjectStatus,
)
from collab.services import milestone_ledger as ledger
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

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
T1 = datetime(2025, 3, 2, 9, 0, tzinfo=UTC)


def _project(milestones: int = 0) -> Project:
    project = replace(
        Project.new(title="Robot arm", apprentice_id="a1", created_at=T0),
        guide_id="g1",
        status=ProjectStatus.IN_PROGRESS,
        start_date=T0,
    )
    for n in range(1, milestones + 1):
        project = ledger.add_milestone(
            project,
            title=f"M{n}",
            description=f"step {n}",
            due_date=None,
            now=T0,
        )
    return project


def _ids(project: Project) -> list:
    return [m.id for m in project.milestones]


# ---- unlock gating ----


def test_first_milestone_is_always_unlocked() -> None:
    project = _project(3)
    assert ledger.unlocked_flags(project.milestones) == [True, False, False]


def test_unlock_follows_learner_claim_of_predecessor() -> None:
    project = _project(3)
    m1, _, _ = _ids(project)
    project = ledger.mark_learner_done(project, m1, T1)
    assert ledger.unlocked_flags(project.milestones) == [True, True, False]


def test_unlock_does_not_wait_for_mentor_approval() -> None:
    project = _project(2)
    m1, m2 = _ids(project)
    project = ledger.mark_learner_done(project, m1, T1)
    # M1 is only learner-claimed, yet M2 can be claimed.
    project = ledger.mark_learner_done(project, m2, T1)
    assert project.milestones[1].learner_verification.is_verified


def test_is_unlocked_rejects_out_of_range_index() -> None:
    project = _project(1)
    with pytest.raises(IndexError):
        ledger.is_unlocked(project.milestones, 1)
    with pytest.raises(IndexError):
        ledger.is_unlocked(project.milestones, -1)


def test_unlocked_flags_empty_sequence() -> None:
    assert ledger.unlocked_flags(()) == []


# ---- learner claim ----


def test_claim_locked_milestone_rejected() -> None:
    project = _project(3)
    _, _, m3 = _ids(project)
    with pytest.raises(NotUnlockedError):
        ledger.mark_learner_done(project, m3, T1)


def test_claim_sets_timestamp() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T1)
    assert project.milestones[0].learner_verification == LearnerVerification(True, T1)


def test_claim_twice_rejected() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T1)
    with pytest.raises(AlreadyVerifiedError):
        ledger.mark_learner_done(project, m1, T1)


def test_claim_unknown_milestone_not_found() -> None:
    with pytest.raises(NotFoundError):
        ledger.mark_learner_done(_project(1), uuid4(), T1)


def test_claim_records_notes_and_submission_link() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(
        project,
        m1,
        T1,
        notes="  Wired the servos, see repo  ",
        submission_url="https://github.com/abe/robot-arm",
    )
    claim = project.milestones[0].learner_verification
    assert claim.notes == "Wired the servos, see repo"
    assert claim.submission_url == "https://github.com/abe/robot-arm"


def test_claim_blank_notes_stored_as_none() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T1, notes="   ")
    assert project.milestones[0].learner_verification.notes is None


@pytest.mark.parametrize("url", ["github.com/abe/robot-arm", "ftp://files.example"])
def test_claim_rejects_non_http_submission_link(url: str) -> None:
    project = _project(1)
    (m1,) = _ids(project)
    with pytest.raises(InvalidInputError):
        ledger.mark_learner_done(project, m1, T1, submission_url=url)


def test_claim_rejects_overlong_notes() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    with pytest.raises(InvalidInputError):
        ledger.mark_learner_done(
            project, m1, T1, notes="x" * (ledger.VERIFICATION_NOTES_MAX_LENGTH + 1)
        )


# ---- mentor verification ----


def test_mentor_verify_requires_learner_claim() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    with pytest.raises(PrerequisiteNotMetError):
        ledger.mentor_verify(project, m1, T1)


def test_mentor_verify_completes_milestone() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.mentor_verify(project, m1, T1)
    assert project.milestones[0].is_completed
    assert ledger.milestone_state(project.milestones[0]) == MilestoneState.COMPLETED


def test_mentor_verify_twice_rejected() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.mentor_verify(project, m1, T1)
    with pytest.raises(AlreadyVerifiedError):
        ledger.mentor_verify(project, m1, T1)


def test_mentor_verify_records_rating_and_feedback() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.mentor_verify(
        project, m1, T1, notes="Solid work", rating=4, feedback="Tidy the cabling"
    )
    assert project.milestones[0].mentor_verification == MentorVerification(
        is_verified=True,
        verified_at=T1,
        notes="Solid work",
        rating=4,
        feedback="Tidy the cabling",
    )


@pytest.mark.parametrize("rating", [0, 6])
def test_mentor_verify_rating_out_of_range(rating: int) -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    with pytest.raises(InvalidInputError):
        ledger.mentor_verify(project, m1, T1, rating=rating)


def test_mentor_unverify_clears_approval_details() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0, notes="done")
    project = ledger.mentor_verify(project, m1, T1, rating=5, feedback="Great")
    project = ledger.mentor_unverify(project, m1)
    milestone = project.milestones[0]
    assert milestone.mentor_verification.rating is None
    assert milestone.mentor_verification.feedback is None
    assert milestone.learner_verification.notes == "done"


def test_mentor_unverify_keeps_learner_claim() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.mentor_verify(project, m1, T1)
    project = ledger.mentor_unverify(project, m1)
    milestone = project.milestones[0]
    assert milestone.learner_verification.is_verified
    assert milestone.mentor_verification == MentorVerification()
    assert ledger.milestone_state(milestone) == MilestoneState.LEARNER_CLAIMED


def test_mentor_unverify_without_approval_rejected() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    with pytest.raises(PrerequisiteNotMetError):
        ledger.mentor_unverify(project, m1)


def test_milestone_state_flags_mentor_only_as_invariant_violation() -> None:
    project = _project(1)
    approval = MentorVerification(is_verified=True, verified_at=T0)
    broken = replace(project.milestones[0], mentor_verification=approval)
    with pytest.raises(InvariantViolation):
        ledger.milestone_state(broken)


# ---- authoring ----


def test_add_milestone_appends_in_order() -> None:
    project = _project(2)
    assert [m.title for m in project.milestones] == ["M1", "M2"]


def test_add_milestone_strips_and_validates_text() -> None:
    project = _project()
    project = ledger.add_milestone(
        project, title="  Wiring  ", description=" solder it ", due_date=None, now=T0
    )
    assert project.milestones[0].title == "Wiring"
    assert project.milestones[0].description == "solder it"
    with pytest.raises(InvalidInputError):
        ledger.add_milestone(
            project, title="   ", description="x", due_date=None, now=T0
        )
    with pytest.raises(InvalidInputError):
        ledger.add_milestone(
            project, title="x" * 201, description="x", due_date=None, now=T0
        )


def test_add_milestone_limit() -> None:
    project = _project(5)
    with pytest.raises(MilestoneLimitReachedError):
        ledger.add_milestone(
            project, title="M6", description="x", due_date=None, now=T0
        )


def test_add_milestone_custom_limit() -> None:
    project = _project(2)
    with pytest.raises(MilestoneLimitReachedError):
        ledger.add_milestone(
            project, title="M3", description="x", due_date=None, now=T0, limit=2
        )


def test_add_milestone_allowed_while_open() -> None:
    project = Project.new(title="Robot arm", apprentice_id="a1", created_at=T0)
    project = ledger.add_milestone(
        project, title="M1", description="x", due_date=None, now=T0
    )
    assert len(project.milestones) == 1


def test_add_milestone_rejected_on_closed_project() -> None:
    project = replace(_project(), status=ProjectStatus.COMPLETED)
    with pytest.raises(ProjectNotActiveError):
        ledger.add_milestone(project, title="M", description="x", due_date=None, now=T0)


def test_update_claimed_milestone_keeps_claim() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.update_milestone(
        project, m1, title="Renamed", description="new text", due_date=date(2025, 5, 1)
    )
    milestone = project.milestones[0]
    assert milestone.title == "Renamed"
    assert milestone.due_date == date(2025, 5, 1)
    assert milestone.learner_verification.is_verified


def test_update_completed_milestone_locked() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    project = ledger.mentor_verify(project, m1, T1)
    with pytest.raises(MilestoneLockedError):
        ledger.update_milestone(
            project, m1, title="x", description="y", due_date=None
        )


def test_remove_untouched_milestone() -> None:
    project = _project(2)
    m1, m2 = _ids(project)
    project = ledger.remove_milestone(project, m1)
    assert _ids(project) == [m2]
    # M2 moved to position 0 and is unlocked.
    assert ledger.unlocked_flags(project.milestones) == [True]


def test_remove_claimed_milestone_locked() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.mark_learner_done(project, m1, T0)
    with pytest.raises(MilestoneLockedError):
        ledger.remove_milestone(project, m1)


# ---- review notes ----


def test_review_note_marks_unread() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.set_review_note(project, m1, "Nice soldering", T1)
    milestone = project.milestones[0]
    assert milestone.review_note == "Nice soldering"
    assert milestone.reviewed_at == T1
    assert milestone.has_unread_review
    assert ledger.unread_review_count(project.milestones) == 1


def test_replacing_review_note_marks_unread_again() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.set_review_note(project, m1, "first", T0)
    project = ledger.mark_review_read(project, m1)
    assert ledger.unread_review_count(project.milestones) == 0
    project = ledger.set_review_note(project, m1, "second", T1)
    assert project.milestones[0].has_unread_review


def test_mark_review_read_without_note_is_noop() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    assert ledger.mark_review_read(project, m1) is project


def test_review_note_too_long_rejected() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    with pytest.raises(InvalidInputError):
        ledger.set_review_note(project, m1, "x" * 1001, T1)


def test_operations_never_mutate_input() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    ledger.mark_learner_done(project, m1, T1)
    assert not project.milestones[0].learner_verification.is_verified


# ---- overdue ----


def test_overdue_only_after_due_date_and_until_completed() -> None:
    project = _project(1)
    (m1,) = _ids(project)
    project = ledger.update_milestone(
        project, m1, title="M1", description="step 1", due_date=date(2025, 3, 10)
    )
    milestone = project.milestones[0]
    assert not milestone.is_overdue(date(2025, 3, 10))
    assert milestone.is_overdue(date(2025, 3, 11))

    # A learner claim alone does not clear it; full verification does.
    project = ledger.mark_learner_done(project, m1, T1)
    assert project.milestones[0].is_overdue(date(2025, 3, 11))
    project = ledger.mentor_verify(project, m1, T1)
    assert not project.milestones[0].is_overdue(date(2025, 3, 11))


def test_milestone_without_due_date_never_overdue() -> None:
    (milestone,) = _project(1).milestones
    assert not milestone.is_overdue(date(2099, 1, 1))
