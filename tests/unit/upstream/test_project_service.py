"""Unit tests for ProjectService."""

import pytest

from boardsync.upstream import Operation, ProjectService, UpstreamError


@pytest.fixture
def service(transport) -> ProjectService:
    return ProjectService(transport)


@pytest.mark.unit
class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_viewer(self, service: ProjectService) -> None:
        viewer = await service.fetch_viewer()

        assert viewer.login == "octo"

    @pytest.mark.asyncio
    async def test_fetch_projects_skips_malformed(
        self, service: ProjectService, viewer_payload: dict
    ) -> None:
        viewer_payload["viewer"]["projectsV2"]["nodes"].append({"id": "PVT_BAD"})

        projects = await service.fetch_projects()

        assert [p.id for p in projects] == ["PVT_1"]

    @pytest.mark.asyncio
    async def test_fetch_repositories(self, service: ProjectService) -> None:
        repositories = await service.fetch_repositories()

        assert [r.full_name for r in repositories] == ["octo/repo", "octo/other"]


@pytest.mark.unit
class TestMutations:
    @pytest.mark.asyncio
    async def test_create_project_defaults_to_viewer(self, service: ProjectService, transport) -> None:
        transport.responses[Operation.CREATE_PROJECT] = {
            "createProjectV2": {"projectV2": {"id": "PVT_2", "title": "New"}}
        }

        project = await service.create_project("New")

        assert project.id == "PVT_2"
        assert transport.calls[0][1] == {"ownerId": "USER_1", "title": "New"}

    @pytest.mark.asyncio
    async def test_create_project_without_result(self, service: ProjectService) -> None:
        with pytest.raises(UpstreamError, match="no project"):
            await service.create_project("New", owner_id="ORG_1")

    @pytest.mark.asyncio
    async def test_update_project_sends_only_given_fields(
        self, service: ProjectService, transport
    ) -> None:
        transport.responses[Operation.UPDATE_PROJECT] = {
            "updateProjectV2": {"projectV2": {"id": "PVT_1", "title": "Roadmap", "shortDescription": "Q4"}}
        }

        project = await service.update_project("PVT_1", description="Q4")

        assert transport.calls[0][1] == {"projectId": "PVT_1", "shortDescription": "Q4"}
        assert project.description == "Q4"

    @pytest.mark.asyncio
    async def test_delete_project(self, service: ProjectService, transport) -> None:
        transport.responses[Operation.DELETE_PROJECT] = {
            "deleteProjectV2": {"projectV2": {"id": "PVT_1"}}
        }

        assert await service.delete_project("PVT_1") is True

    @pytest.mark.asyncio
    async def test_create_repository(self, service: ProjectService, transport) -> None:
        transport.responses[Operation.CREATE_REPOSITORY] = {
            "createRepository": {
                "repository": {"id": "REPO_3", "name": "fresh", "owner": {"login": "octo"}}
            }
        }

        repository = await service.create_repository("fresh", visibility="PUBLIC")

        assert repository.full_name == "octo/fresh"
        assert transport.calls[0][1]["visibility"] == "PUBLIC"

    @pytest.mark.asyncio
    async def test_create_label_strips_hash(self, service: ProjectService, transport) -> None:
        transport.responses[Operation.CREATE_LABEL] = {
            "createLabel": {"label": {"id": "L1", "name": "bug", "color": "d73a4a"}}
        }

        label = await service.create_label("REPO_1", "bug", "#d73a4a")

        assert transport.calls[0][1]["color"] == "d73a4a"
        assert label.name == "bug"
