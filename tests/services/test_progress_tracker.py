from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from collab.models.project import Project, ProjectStatus
from collab.services import progress_tracker as tracker
from collab.services.errors import (
    InvalidInputError,
    NonIncreasingProgressError,
    NoteTooShortError,
    ProjectNotActiveError,
)

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _active_project() -> Project:
    return replace(
        Project.new(title="Robot arm", apprentice_id="a1", created_at=T0),
        guide_id="g1",
        status=ProjectStatus.IN_PROGRESS,
    )


def _record(project: Project, percentage: int, note: str = "steady progress", at=T0):
    return tracker.record_progress(
        project, percentage=percentage, note=note, author_id="g1", now=at
    )


def test_record_appends_entry_and_mirrors_percentage() -> None:
    project = _record(_active_project(), 20, "Finished the wiring")
    assert project.progress_percentage == 20
    (entry,) = project.progress_history
    assert entry.percentage == 20
    assert entry.note == "Finished the wiring"
    assert entry.author_id == "g1"
    assert entry.author_role == "guide"
    assert entry.recorded_at == T0


def test_progress_must_strictly_increase() -> None:
    project = _record(_active_project(), 20)
    with pytest.raises(NonIncreasingProgressError):
        _record(project, 20)
    with pytest.raises(NonIncreasingProgressError):
        _record(project, 10)


def test_first_entry_must_exceed_zero() -> None:
    with pytest.raises(NonIncreasingProgressError):
        _record(_active_project(), 0)


def test_note_length_counted_after_trimming() -> None:
    project = _active_project()
    with pytest.raises(NoteTooShortError):
        _record(project, 10, "   short    ")
    # Exactly ten characters is enough.
    assert _record(project, 10, "0123456789").progress_percentage == 10


def test_percentage_out_of_range() -> None:
    with pytest.raises(InvalidInputError):
        _record(_active_project(), 101)
    with pytest.raises(InvalidInputError):
        _record(_active_project(), -5)


def test_lower_percentage_rejected_before_note_length() -> None:
    project = _record(_active_project(), 30, "kickoff done")
    with pytest.raises(NonIncreasingProgressError):
        _record(project, 25, "oops")
    assert len(project.progress_history) == 1


def test_record_rejected_unless_in_progress() -> None:
    project = replace(_active_project(), status=ProjectStatus.OPEN)
    with pytest.raises(ProjectNotActiveError):
        _record(project, 10)


def test_history_is_chronological_snapshot() -> None:
    project = _active_project()
    project = _record(project, 20, at=T0)
    project = _record(project, 60, at=T0 + timedelta(days=3))
    history = tracker.history(project)
    assert [e.percentage for e in history] == [20, 60]
    assert tracker.history(project) is not history


def test_reaching_hundred_does_not_change_status() -> None:
    project = _record(_active_project(), 100)
    assert project.status == ProjectStatus.IN_PROGRESS
    with pytest.raises(NonIncreasingProgressError):
        _record(project, 100)
