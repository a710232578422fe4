"""ProjectLifecycleController: the single entry point into the engine.

Every mutating call follows the same read-modify-write shape:

  1. load the Project aggregate (remember its version)
  2. check the actor is the assigned Guide or Apprentice
  3. hand the aggregate to the ledger / tracker / negotiator
  4. save with expected_version; a concurrent writer -> ConflictError

Step 3 never touches storage, so a rejected precondition leaves
nothing to roll back.  Rejections carry the unmodified project on
``error.project`` (except authorization failures, which must not leak
state to a non-party).  A ConflictError carries the version that won
the race, reloaded from the repo.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from uuid import UUID

from collab.core.clock import Clock
from collab.core.metrics import COLLAB_OPERATIONS
from collab.models.principal import APPRENTICE, GUIDE, Principal
from collab.models.project import ProgressEntry, Project, ProjectStatus
from collab.repos.project_repo import ProjectRepo
from collab.services import end_date_negotiator, milestone_ledger, progress_tracker
from collab.services.errors import (
    CollabError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    ProjectNotActiveError,
)

logger = logging.getLogger(__name__)

Mutation = Callable[[Project], Project]


class ProjectLifecycleController:
    def __init__(
        self,
        repo: ProjectRepo,
        clock: Clock,
        *,
        milestone_limit: int = milestone_ledger.DEFAULT_MILESTONE_LIMIT,
    ) -> None:
        self._repo = repo
        self.clock = clock
        self._milestone_limit = milestone_limit

    # ------------------------------------------------------------------
    # Derived, read-only
    # ------------------------------------------------------------------

    def today(self) -> date:
        """Calendar date used for due-date and end-date checks (UTC)."""
        return self.clock.now().date()

    @staticmethod
    def milestone_completion_percentage(project: Project) -> int:
        """Share of fully verified milestones, rounded half-up.

        Independent of ``project.progress_percentage``; the two signals
        are never reconciled.
        """
        total = len(project.milestones)
        if total == 0:
            return 0
        done = milestone_ledger.completed_count(project.milestones)
        return math.floor(100 * done / total + 0.5)

    async def can_transition_to_completed(
        self, project_id: UUID, *, accept_outstanding: bool = False
    ) -> bool:
        """Guard for the external completion workflow.

        Outstanding (not fully verified) milestones block completion
        unless the caller explicitly accepts them.
        """
        project = await self._load(project_id)
        if project.status != ProjectStatus.IN_PROGRESS:
            return False
        outstanding = len(project.milestones) - milestone_ledger.completed_count(
            project.milestones
        )
        if outstanding and not accept_outstanding:
            logger.info(
                "Completion blocked project=%s outstanding_milestones=%d",
                project.id,
                outstanding,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Project
    # ------------------------------------------------------------------

    async def open_project(self, actor: Principal, *, title: str) -> Project:
        with self._track("open_project", actor):
            if not actor.is_apprentice:
                raise ForbiddenError("only apprentices can open projects")
            cleaned = title.strip()
            if not cleaned or len(cleaned) > milestone_ledger.TITLE_MAX_LENGTH:
                raise InvalidInputError(
                    "title must be 1-"
                    f"{milestone_ledger.TITLE_MAX_LENGTH} characters"
                )
            project = Project.new(
                title=cleaned,
                apprentice_id=actor.user_id,
                created_at=self.clock.now(),
            )
            return await self._repo.add(project)

    async def accept_project(self, actor: Principal, project_id: UUID) -> Project:
        """A Guide takes an open project; it starts immediately."""
        with self._track("accept_project", actor):
            if not actor.is_guide:
                raise ForbiddenError("only guides can accept projects")
            project = await self._load(project_id)
            if actor.user_id == project.apprentice_id:
                raise ForbiddenError("a project cannot be guided by its apprentice")

            def _start(p: Project) -> Project:
                if p.status != ProjectStatus.OPEN or p.guide_id is not None:
                    raise ProjectNotActiveError("project is no longer open")
                return replace(
                    p,
                    guide_id=actor.user_id,
                    status=ProjectStatus.IN_PROGRESS,
                    start_date=self.clock.now(),
                )

            return await self._apply(project, _start)

    async def get_project(self, actor: Principal, project_id: UUID) -> Project:
        with self._track("get_project", actor):
            project = await self._load(project_id)
            self._require_party(actor, project)
            return project

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    async def add_milestone(
        self,
        actor: Principal,
        project_id: UUID,
        *,
        title: str,
        description: str,
        due_date: date | None = None,
    ) -> Project:
        with self._track("add_milestone", actor):
            project = await self._load(project_id)
            self._require_apprentice(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.add_milestone(
                    p,
                    title=title,
                    description=description,
                    due_date=due_date,
                    now=self.clock.now(),
                    limit=self._milestone_limit,
                ),
            )

    async def claim_milestone(
        self,
        actor: Principal,
        milestone_id: UUID,
        *,
        notes: str | None = None,
        submission_url: str | None = None,
    ) -> Project:
        with self._track("claim_milestone", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_apprentice(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.mark_learner_done(
                    p,
                    milestone_id,
                    self.clock.now(),
                    notes=notes,
                    submission_url=submission_url,
                ),
            )

    async def approve_milestone(
        self,
        actor: Principal,
        milestone_id: UUID,
        *,
        notes: str | None = None,
        rating: int | None = None,
        feedback: str | None = None,
    ) -> Project:
        with self._track("approve_milestone", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_guide(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.mentor_verify(
                    p,
                    milestone_id,
                    self.clock.now(),
                    notes=notes,
                    rating=rating,
                    feedback=feedback,
                ),
            )

    async def revoke_milestone_approval(
        self, actor: Principal, milestone_id: UUID
    ) -> Project:
        with self._track("revoke_milestone_approval", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_guide(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.mentor_unverify(p, milestone_id),
            )

    async def edit_milestone(
        self,
        actor: Principal,
        milestone_id: UUID,
        *,
        title: str,
        description: str,
        due_date: date | None = None,
    ) -> Project:
        with self._track("edit_milestone", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_apprentice(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.update_milestone(
                    p,
                    milestone_id,
                    title=title,
                    description=description,
                    due_date=due_date,
                ),
            )

    async def delete_milestone(self, actor: Principal, milestone_id: UUID) -> Project:
        with self._track("delete_milestone", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_apprentice(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.remove_milestone(p, milestone_id),
            )

    async def set_review_note(
        self, actor: Principal, milestone_id: UUID, note: str
    ) -> Project:
        with self._track("set_review_note", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_guide(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.set_review_note(
                    p, milestone_id, note, self.clock.now()
                ),
            )

    async def mark_review_read(self, actor: Principal, milestone_id: UUID) -> Project:
        with self._track("mark_review_read", actor):
            project = await self._load_by_milestone(milestone_id)
            self._require_apprentice(actor, project)
            return await self._apply(
                project,
                lambda p: milestone_ledger.mark_review_read(p, milestone_id),
            )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def record_progress(
        self, actor: Principal, project_id: UUID, *, percentage: int, note: str
    ) -> Project:
        with self._track("record_progress", actor):
            project = await self._load(project_id)
            self._require_guide(actor, project)
            return await self._apply(
                project,
                lambda p: progress_tracker.record_progress(
                    p,
                    percentage=percentage,
                    note=note,
                    author_id=actor.user_id,
                    now=self.clock.now(),
                ),
            )

    async def progress_history(
        self, actor: Principal, project_id: UUID
    ) -> tuple[ProgressEntry, ...]:
        with self._track("progress_history", actor):
            project = await self._load(project_id)
            self._require_party(actor, project)
            return progress_tracker.history(project)

    # ------------------------------------------------------------------
    # End date
    # ------------------------------------------------------------------

    async def propose_end_date(
        self, actor: Principal, project_id: UUID, proposed: date
    ) -> Project:
        with self._track("propose_end_date", actor):
            project = await self._load(project_id)
            self._require_guide(actor, project)
            return await self._apply(
                project,
                lambda p: end_date_negotiator.propose(p, proposed, self.today()),
            )

    async def confirm_end_date(self, actor: Principal, project_id: UUID) -> Project:
        with self._track("confirm_end_date", actor):
            project = await self._load(project_id)
            self._require_apprentice(actor, project)
            return await self._apply(project, end_date_negotiator.confirm)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _load(self, project_id: UUID) -> Project:
        project = await self._repo.get(project_id)
        if project is None:
            raise NotFoundError(f"project {project_id} not found")
        return project

    async def _load_by_milestone(self, milestone_id: UUID) -> Project:
        project = await self._repo.get_by_milestone(milestone_id)
        if project is None:
            raise NotFoundError(f"milestone {milestone_id} not found")
        return project

    async def _apply(self, project: Project, mutate: Mutation) -> Project:
        try:
            updated = mutate(project)
            if updated is project:
                return project
            return await self._repo.save(updated, expected_version=project.version)
        except ConflictError as e:
            # Another writer got there first; report what is stored now.
            e.project = await self._repo.get(project.id) or project
            raise
        except CollabError as e:
            e.project = project
            raise

    @staticmethod
    def _require_guide(actor: Principal, project: Project) -> None:
        if not actor.has_role(GUIDE) or actor.user_id != project.guide_id:
            raise ForbiddenError("only the project's guide can do this")

    @staticmethod
    def _require_apprentice(actor: Principal, project: Project) -> None:
        if not actor.has_role(APPRENTICE) or actor.user_id != project.apprentice_id:
            raise ForbiddenError("only the project's apprentice can do this")

    @staticmethod
    def _require_party(actor: Principal, project: Project) -> None:
        is_guide = actor.has_role(GUIDE) and actor.user_id == project.guide_id
        is_apprentice = (
            actor.has_role(APPRENTICE) and actor.user_id == project.apprentice_id
        )
        if not (is_guide or is_apprentice):
            raise ForbiddenError("not a party to this project")

    @contextmanager
    def _track(self, operation: str, actor: Principal) -> Iterator[None]:
        try:
            yield
        except CollabError as e:
            COLLAB_OPERATIONS.labels(operation=operation, outcome=e.code).inc()
            project_id = str(e.project.id) if e.project is not None else None
            logger.warning(
                "Rejected %s user=%s project=%s code=%s: %s",
                operation,
                actor.user_id,
                project_id or "-",
                e.code,
                e.message,
                extra={
                    "operation": operation,
                    "outcome": e.code,
                    "user_id": actor.user_id,
                    "project_id": project_id,
                },
            )
            raise
        COLLAB_OPERATIONS.labels(operation=operation, outcome="ok").inc()
        logger.info(
            "%s ok user=%s",
            operation,
            actor.user_id,
            extra={"operation": operation, "outcome": "ok", "user_id": actor.user_id},
        )

