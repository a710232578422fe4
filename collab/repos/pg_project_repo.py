"""PostgreSQL implementation of ProjectRepo.

The aggregate spans three tables.  save() guards the whole write with
a compare-and-set on ``projects.version``:

  UPDATE projects SET ..., version = version + 1
   WHERE id = :id AND version = :expected

Zero rows updated means another writer got there first; ConflictError
is raised and the request-scoped session rolls back.  Milestones are
rewritten in full (a project holds only a handful); progress entries
are insert-only.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from collab.db.tables import MilestoneRow, ProgressEntryRow, ProjectRow
from collab.models.project import (
    LearnerVerification,
    MentorVerification,
    Milestone,
    ProgressEntry,
    Project,
    ProjectStatus,
)
from collab.services.errors import ConflictError


class PgProjectRepo:
    """Satisfies the ProjectRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, project_id: UUID) -> Project | None:
        stmt = select(ProjectRow).where(ProjectRow.id == project_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._hydrate(row)

    async def get_by_milestone(self, milestone_id: UUID) -> Project | None:
        stmt = select(MilestoneRow.project_id).where(MilestoneRow.id == milestone_id)
        project_id = (await self._session.execute(stmt)).scalar_one_or_none()
        if project_id is None:
            return None
        return await self.get(project_id)

    async def add(self, project: Project) -> Project:
        row = ProjectRow(
            id=project.id, version=project.version, **_project_values(project)
        )
        self._session.add(row)
        await self._session.flush()
        await self._write_milestones(project)
        await self._append_progress(project, stored_ids=set())
        return project

    async def save(self, project: Project, expected_version: int) -> Project:
        stmt = (
            update(ProjectRow)
            .where(ProjectRow.id == project.id)
            .where(ProjectRow.version == expected_version)
            .values(version=ProjectRow.version + 1, **_project_values(project))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise ConflictError(
                f"project {project.id} changed since version {expected_version}"
            )

        ids_stmt = select(ProgressEntryRow.id).where(
            ProgressEntryRow.project_id == project.id
        )
        stored_ids = set((await self._session.execute(ids_stmt)).scalars())

        await self._session.execute(
            delete(MilestoneRow).where(MilestoneRow.project_id == project.id)
        )
        await self._write_milestones(project)
        await self._append_progress(project, stored_ids=stored_ids)

        return replace(project, version=expected_version + 1)

    # ------------------------------------------------------------------

    async def _write_milestones(self, project: Project) -> None:
        if not project.milestones:
            return
        await self._session.execute(
            insert(MilestoneRow),
            [
                _milestone_values(project.id, position, m)
                for position, m in enumerate(project.milestones)
            ],
        )

    async def _append_progress(
        self, project: Project, *, stored_ids: set[UUID]
    ) -> None:
        new_entries = [e for e in project.progress_history if e.id not in stored_ids]
        if not new_entries:
            return
        await self._session.execute(
            insert(ProgressEntryRow),
            [
                {
                    "id": e.id,
                    "project_id": project.id,
                    "percentage": e.percentage,
                    "note": e.note,
                    "recorded_at": e.recorded_at,
                    "author_id": e.author_id,
                    "author_role": e.author_role,
                }
                for e in new_entries
            ],
        )

    async def _hydrate(self, row: ProjectRow) -> Project:
        milestone_rows = (
            await self._session.execute(
                select(MilestoneRow)
                .where(MilestoneRow.project_id == row.id)
                .order_by(MilestoneRow.position)
            )
        ).scalars()
        entry_rows = (
            await self._session.execute(
                select(ProgressEntryRow)
                .where(ProgressEntryRow.project_id == row.id)
                .order_by(ProgressEntryRow.recorded_at, ProgressEntryRow.percentage)
            )
        ).scalars()

        return Project(
            id=row.id,
            title=row.title,
            apprentice_id=row.apprentice_id,
            guide_id=row.guide_id,
            status=ProjectStatus(row.status),
            created_at=row.created_at,
            start_date=row.start_date,
            expected_end_date=row.expected_end_date,
            temp_expected_end_date=row.temp_expected_end_date,
            is_temp_end_date_confirmed=row.is_temp_end_date_confirmed,
            actual_end_date=row.actual_end_date,
            progress_percentage=row.progress_percentage,
            milestones=tuple(_row_to_milestone(m) for m in milestone_rows),
            progress_history=tuple(_row_to_entry(e) for e in entry_rows),
            version=row.version,
        )


def _project_values(project: Project) -> dict:
    return {
        "title": project.title,
        "apprentice_id": project.apprentice_id,
        "guide_id": project.guide_id,
        "status": str(project.status),
        "created_at": project.created_at,
        "start_date": project.start_date,
        "expected_end_date": project.expected_end_date,
        "temp_expected_end_date": project.temp_expected_end_date,
        "is_temp_end_date_confirmed": project.is_temp_end_date_confirmed,
        "actual_end_date": project.actual_end_date,
        "progress_percentage": project.progress_percentage,
    }


def _milestone_values(project_id: UUID, position: int, m: Milestone) -> dict:
    return {
        "id": m.id,
        "project_id": project_id,
        "position": position,
        "title": m.title,
        "description": m.description,
        "due_date": m.due_date,
        "created_at": m.created_at,
        "learner_verified": m.learner_verification.is_verified,
        "learner_verified_at": m.learner_verification.verified_at,
        "learner_notes": m.learner_verification.notes,
        "learner_submission_url": m.learner_verification.submission_url,
        "mentor_verified": m.mentor_verification.is_verified,
        "mentor_verified_at": m.mentor_verification.verified_at,
        "mentor_notes": m.mentor_verification.notes,
        "mentor_rating": m.mentor_verification.rating,
        "mentor_feedback": m.mentor_verification.feedback,
        "review_note": m.review_note,
        "reviewed_at": m.reviewed_at,
        "review_read_by_learner": m.review_read_by_learner,
    }


def _row_to_milestone(row: MilestoneRow) -> Milestone:
    return Milestone(
        id=row.id,
        title=row.title,
        description=row.description,
        due_date=row.due_date,
        created_at=row.created_at,
        learner_verification=LearnerVerification(
            is_verified=row.learner_verified,
            verified_at=row.learner_verified_at,
            notes=row.learner_notes,
            submission_url=row.learner_submission_url,
        ),
        mentor_verification=MentorVerification(
            is_verified=row.mentor_verified,
            verified_at=row.mentor_verified_at,
            notes=row.mentor_notes,
            rating=row.mentor_rating,
            feedback=row.mentor_feedback,
        ),
        review_note=row.review_note,
        reviewed_at=row.reviewed_at,
        review_read_by_learner=row.review_read_by_learner,
    )


def _row_to_entry(row: ProgressEntryRow) -> ProgressEntry:
    return ProgressEntry(
        id=row.id,
        percentage=row.percentage,
        note=row.note,
        recorded_at=row.recorded_at,
        author_id=row.author_id,
        author_role=row.author_role,
    )

