"""Unit tests for board routes."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from boardsync.api.app import create_app
from boardsync.config import BoardSyncConfig, LoggingConfig
from boardsync.upstream.exceptions import UpstreamGraphQLError, UpstreamTransportError
from boardsync.upstream.operations import Operation

BOARD_URL = "/api/v1/projects/PVT_1/board"


@pytest.fixture
def app(transport, tmp_path) -> FastAPI:
    """Create the app against the in-memory transport."""
    config = BoardSyncConfig(logging=LoggingConfig(log_dir=str(tmp_path), console=False))
    return create_app(config=config, transport=transport)


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def loaded(client: TestClient) -> TestClient:
    """Client with the PVT_1 board loaded."""
    response = client.post(BOARD_URL)
    assert response.status_code == 200
    return client


def _issue(board: dict, issue_id: str) -> dict:
    return next(issue for issue in board["issues"] if issue["id"] == issue_id)


@pytest.mark.unit
class TestLoadBoard:
    """Tests for loading, reading and discarding a board."""

    def test_load(self, client: TestClient) -> None:
        response = client.post(BOARD_URL)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["project"]["title"] == "Roadmap"
        assert data["status_field"] == "Status"
        assert [col["name"] for col in data["columns"]] == ["Backlog", "Todo", "Done"]
        assert [col["type"] for col in data["columns"]] == ["BACKLOG", "TODO", "DONE"]
        assert _issue(data, "ITEM_2")["column_id"] is None

    def test_get_before_load(self, client: TestClient) -> None:
        response = client.get(BOARD_URL)

        assert response.status_code == 404
        assert response.json()["error"] == "Board not loaded"

    def test_unknown_project(self, client: TestClient) -> None:
        response = client.post("/api/v1/projects/PVT_404/board")

        assert response.status_code == 404
        assert response.json()["error"] == "Project not found"
        assert client.get("/api/v1/projects/PVT_404/board").status_code == 404

    def test_upstream_failure_on_load(self, client: TestClient, transport) -> None:
        async def failing_query(*_args, **_kwargs):
            raise UpstreamTransportError("timeout")

        transport.query = failing_query

        response = client.post(BOARD_URL)

        assert response.status_code == 502
        assert response.json()["error"] == "Upstream request failed"

    def test_get_snapshot(self, loaded: TestClient) -> None:
        response = loaded.get(BOARD_URL)

        assert response.status_code == 200
        assert len(response.json()["data"]["issues"]) == 3

    def test_close(self, loaded: TestClient) -> None:
        response = loaded.delete(BOARD_URL)

        assert response.status_code == 204
        assert loaded.get(BOARD_URL).status_code == 404


@pytest.mark.unit
class TestIntentRoutes:
    def test_move_issue_accepted(self, loaded: TestClient) -> None:
        response = loaded.post(f"{BOARD_URL}/issues/ITEM_2/move", json={"column_id": "OPT_DONE"})

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["intent"] == "move_issue"
        assert data["status"] == "pending"
        board = loaded.get(BOARD_URL).json()["data"]
        assert _issue(board, "ITEM_2")["column_id"] == "OPT_DONE"

    def test_move_issue_wait(self, loaded: TestClient) -> None:
        response = loaded.post(
            f"{BOARD_URL}/issues/ITEM_1/move", params={"wait": True}, json={"column_id": None}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "committed"
        assert data["conflicts"] == []
        board = loaded.get(BOARD_URL).json()["data"]
        assert _issue(board, "ITEM_1")["column_id"] is None
        assert board["pending_operations"] == []

    def test_rejected_mutation_rolls_back(self, loaded: TestClient, transport) -> None:
        transport.responses[Operation.UPDATE_ISSUE_STATUS] = UpstreamGraphQLError(
            "UpdateIssueStatus", [{"message": "forbidden"}]
        )

        response = loaded.post(
            f"{BOARD_URL}/issues/ITEM_2/move", params={"wait": True}, json={"column_id": "OPT_DONE"}
        )

        assert response.status_code == 502
        body = response.json()
        assert "forbidden" in body["error"]
        data = body["data"]
        assert data["status"] == "rolled_back"
        assert data["intent"] == "move_issue"
        assert data["entity_id"] == "ITEM_2"
        assert data["completed_steps"] == 0
        assert data["delta"] == {
            "kind": "MoveIssue",
            "touches": [["issue", "ITEM_2", "column_id"]],
        }
        board = loaded.get(BOARD_URL).json()["data"]
        assert _issue(board, "ITEM_2")["column_id"] is None

    def test_unknown_column(self, loaded: TestClient, transport) -> None:
        response = loaded.post(f"{BOARD_URL}/issues/ITEM_2/move", json={"column_id": "OPT_404"})

        assert response.status_code == 409
        assert transport.calls == []

    def test_unknown_issue(self, loaded: TestClient) -> None:
        response = loaded.delete(f"{BOARD_URL}/issues/ITEM_404")

        assert response.status_code == 409

    def test_add_column(self, loaded: TestClient, transport) -> None:
        response = loaded.post(f"{BOARD_URL}/columns", json={"name": "Review", "color": "purple"})

        assert response.status_code == 202
        board = loaded.get(BOARD_URL).json()["data"]
        assert [col["name"] for col in board["columns"]][-1] == "Review"
        assert transport.operations == [Operation.ADD_COLUMN]

    def test_add_column_validation(self, loaded: TestClient) -> None:
        response = loaded.post(f"{BOARD_URL}/columns", json={"name": ""})

        assert response.status_code == 422

    def test_delete_column(self, loaded: TestClient) -> None:
        response = loaded.delete(f"{BOARD_URL}/columns/OPT_TODO", params={"wait": True})

        assert response.status_code == 200
        board = loaded.get(BOARD_URL).json()["data"]
        assert [col["id"] for col in board["columns"]] == ["OPT_BACKLOG", "OPT_DONE"]
        assert _issue(board, "ITEM_1")["column_id"] is None

    def test_update_project(self, loaded: TestClient) -> None:
        response = loaded.patch(f"{BOARD_URL}/project", json={"title": "Renamed"})

        assert response.status_code == 202
        board = loaded.get(BOARD_URL).json()["data"]
        assert board["project"]["title"] == "Renamed"

    def test_empty_update_is_rejected(self, loaded: TestClient) -> None:
        response = loaded.patch(f"{BOARD_URL}/project", json={})

        assert response.status_code == 400
        assert "Nothing to update" in response.json()["error"]

    def test_collaborators(self, loaded: TestClient, transport) -> None:
        added = loaded.post(
            f"{BOARD_URL}/collaborators",
            params={"wait": True},
            json={"user_id": "USER_2", "role": "ADMIN", "login": "hubot"},
        )
        removed = loaded.delete(f"{BOARD_URL}/collaborators/USER_2", params={"wait": True})

        assert added.status_code == 200
        assert removed.status_code == 200
        assert transport.calls[0][1]["collaborators"] == [{"userId": "USER_2", "role": "ADMIN"}]
        board = loaded.get(BOARD_URL).json()["data"]
        assert board["project"]["collaborators"] == []

    def test_repository_routes(self, loaded: TestClient, transport) -> None:
        for action in ("link", "disable", "enable"):
            response = loaded.post(f"{BOARD_URL}/repositories/REPO_2/{action}", params={"wait": True})
            assert response.status_code == 200

        assert transport.operations == [
            Operation.LINK_REPOSITORY_TO_PROJECT,
            Operation.DISABLE_REPOSITORY,
            Operation.ENABLE_REPOSITORY,
        ]
        board = loaded.get(BOARD_URL).json()["data"]
        repository = next(r for r in board["repositories"] if r["id"] == "REPO_2")
        assert repository["enabled"] is True
        assert repository["project_ids"] == ["PVT_1"]

    def test_pending_operations_listed(self, loaded: TestClient, transport) -> None:
        transport.hold = True

        response = loaded.post(f"{BOARD_URL}/issues/ITEM_2/move", json={"column_id": "OPT_DONE"})

        operation_id = response.json()["data"]["operation_id"]
        listed = loaded.get(f"{BOARD_URL}/operations").json()["data"]
        assert listed == [operation_id]
