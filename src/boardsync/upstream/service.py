"""ProjectService - project, repository and label operations outside a board."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from boardsync.board.exceptions import MappingError
from boardsync.board.normalizer import (
    nodes,
    normalize_label,
    normalize_project,
    normalize_repository,
    normalize_viewer,
)
from boardsync.upstream.exceptions import UpstreamError
from boardsync.upstream.operations import Operation

if TYPE_CHECKING:
    from boardsync.board.models import Label, Project, Repository, Viewer
    from boardsync.upstream.client import Transport

logger = logging.getLogger(__name__)


class ProjectService:
    """Thin typed wrappers over upstream operations that have no board delta."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def fetch_viewer(self) -> Viewer:
        data = await self.transport.query(Operation.GET_VIEWER)
        return normalize_viewer(data.get("viewer") or {})

    async def fetch_projects(self) -> list[Project]:
        """All projects visible to the viewer; malformed ones are skipped."""
        data = await self.transport.query(Operation.GET_ALL_INITIAL_DATA)
        projects: list[Project] = []
        for raw in nodes(data.get("viewer"), "projectsV2"):
            try:
                projects.append(normalize_project(raw))
            except MappingError as e:
                logger.warning("Skipping malformed project: %s", e)
        return projects

    async def fetch_repositories(self) -> list[Repository]:
        data = await self.transport.query(Operation.GET_ALL_INITIAL_DATA)
        repositories: list[Repository] = []
        for raw in nodes(data.get("viewer"), "repositories"):
            try:
                repositories.append(normalize_repository(raw))
            except MappingError as e:
                logger.warning("Skipping malformed repository: %s", e)
        return repositories

    async def create_project(self, title: str, owner_id: str | None = None) -> Project:
        """Create a project owned by `owner_id`, or by the viewer when omitted."""
        if owner_id is None:
            owner_id = (await self.fetch_viewer()).id
        data = await self.transport.mutate(
            Operation.CREATE_PROJECT, {"ownerId": owner_id, "title": title}
        )
        raw = (data.get("createProjectV2") or {}).get("projectV2")
        if not raw:
            raise UpstreamError("CreateProject returned no project")
        project = normalize_project(raw)
        logger.info("Created project %s (%s)", project.title, project.id)
        return project

    async def update_project(
        self, project_id: str, title: str | None = None, description: str | None = None
    ) -> Project:
        variables: dict[str, str] = {"projectId": project_id}
        if title is not None:
            variables["title"] = title
        if description is not None:
            variables["shortDescription"] = description
        data = await self.transport.mutate(Operation.UPDATE_PROJECT, variables)
        raw = (data.get("updateProjectV2") or {}).get("projectV2")
        if not raw:
            raise UpstreamError(f"UpdateProject returned no project for {project_id}")
        return normalize_project(raw)

    async def delete_project(self, project_id: str) -> bool:
        data = await self.transport.mutate(Operation.DELETE_PROJECT, {"projectId": project_id})
        deleted = bool((data.get("deleteProjectV2") or {}).get("projectV2"))
        logger.info("Deleted project %s: %s", project_id, deleted)
        return deleted

    async def create_repository(
        self,
        name: str,
        description: str = "",
        visibility: Literal["PRIVATE", "PUBLIC", "INTERNAL"] = "PRIVATE",
    ) -> Repository:
        data = await self.transport.mutate(
            Operation.CREATE_REPOSITORY,
            {"name": name, "description": description, "visibility": visibility},
        )
        raw = (data.get("createRepository") or {}).get("repository")
        if not raw:
            raise UpstreamError(f"CreateRepository returned no repository for {name}")
        repository = normalize_repository(raw)
        logger.info("Created repository %s", repository.full_name)
        return repository

    async def create_label(
        self, repository_id: str, name: str, color: str, description: str = ""
    ) -> Label:
        data = await self.transport.mutate(
            Operation.CREATE_LABEL,
            {
                "repositoryId": repository_id,
                "name": name,
                "color": color.lstrip("#"),
                "description": description,
            },
        )
        raw = (data.get("createLabel") or {}).get("label")
        if not raw:
            raise UpstreamError(f"CreateLabel returned no label for {name}")
        return normalize_label(raw)
