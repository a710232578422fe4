from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from collab.models.project import Project
from collab.services.errors import ConflictError, NotFoundError


class ProjectRepo(Protocol):
    async def get(self, project_id: UUID) -> Project | None: ...
    async def get_by_milestone(self, milestone_id: UUID) -> Project | None: ...
    async def add(self, project: Project) -> Project: ...
    async def save(self, project: Project, expected_version: int) -> Project: ...


class InMemoryProjectRepo:
    """Optimistic-concurrency store for Project aggregates.

    save() writes only if the stored version still equals
    ``expected_version``; the stored copy gets ``version + 1``.
    """

    def __init__(self) -> None:
        self._store: dict[UUID, Project] = {}

    async def get(self, project_id: UUID) -> Project | None:
        return self._store.get(project_id)

    async def get_by_milestone(self, milestone_id: UUID) -> Project | None:
        for project in self._store.values():
            if project.milestone_index(milestone_id) is not None:
                return project
        return None

    async def add(self, project: Project) -> Project:
        if project.id in self._store:
            raise ValueError("project already exists")
        self._store[project.id] = project
        return project

    async def save(self, project: Project, expected_version: int) -> Project:
        current = self._store.get(project.id)
        if current is None:
            raise NotFoundError(f"project {project.id} not found")
        if current.version != expected_version:
            raise ConflictError(
                f"project {project.id} changed (version {current.version}, "
                f"expected {expected_version})"
            )
        stored = replace(project, version=expected_version + 1)
        self._store[project.id] = stored
        return stored
