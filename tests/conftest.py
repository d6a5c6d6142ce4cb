"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from boardsync.upstream.exceptions import UpstreamGraphQLError
from boardsync.upstream.operations import QUERIES, Operation


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")
    config.addinivalue_line("markers", "real: tests against the live GitHub API (local only)")


class FakeTransport:
    """In-memory transport.

    Queries answer from `query_data`. Mutations answer from `responses`
    (operation -> data or exception) immediately, unless `hold` is set, in
    which case each mutation waits on a future the test resolves in any
    order via `calls`.
    """

    def __init__(self, query_data: dict[str, Any] | None = None) -> None:
        self.query_data = query_data or {}
        self.responses: dict[Operation, Any] = {}
        self.hold = False
        self.calls: list[tuple[Operation, dict[str, Any], asyncio.Future[dict[str, Any]]]] = []
        self.queries: list[Operation] = []

    async def query(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        operation = Operation(operation)
        assert operation in QUERIES
        self.queries.append(operation)
        return self.query_data

    async def mutate(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        operation = Operation(operation)
        assert operation not in QUERIES
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self.calls.append((operation, dict(variables or {}), future))
        if not self.hold:
            response = self.responses.get(operation, {})
            if isinstance(response, BaseException):
                future.set_exception(response)
            else:
                future.set_result(response)
        return await future

    async def wait_for_calls(self, count: int) -> None:
        """Yield to the loop until `count` mutations have been issued."""
        for _ in range(100):
            if len(self.calls) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} mutation call(s), saw {len(self.calls)}")

    def resolve(self, index: int, data: dict[str, Any] | None = None) -> None:
        self.calls[index][2].set_result(data or {})

    def reject(self, index: int, message: str = "boom") -> None:
        operation = self.calls[index][0]
        self.calls[index][2].set_exception(
            UpstreamGraphQLError(operation.value, [{"message": message}])
        )

    @property
    def operations(self) -> list[Operation]:
        return [call[0] for call in self.calls]


def _option(option_id: str, name: str, color: str = "GRAY") -> dict[str, Any]:
    return {"id": option_id, "name": name, "color": color, "description": ""}


def _item(item_id: str, number: int, title: str, option_id: str | None) -> dict[str, Any]:
    field_values = []
    if option_id is not None:
        field_values.append(
            {
                "__typename": "ProjectV2ItemFieldSingleSelectValue",
                "optionId": option_id,
                "name": "ignored",
                "field": {"id": "FIELD_STATUS", "name": "Status"},
            }
        )
    return {
        "id": item_id,
        "content": {
            "__typename": "Issue",
            "id": f"ISSUE_{number}",
            "number": number,
            "title": title,
            "body": "",
            "url": f"https://github.com/octo/repo/issues/{number}",
            "labels": {"nodes": []},
            "assignees": {"nodes": []},
        },
        "fieldValues": {"nodes": field_values},
    }


@pytest.fixture
def viewer_payload() -> dict[str, Any]:
    """GetAllInitialData payload: one project with Backlog/Todo/Done and three issues."""
    return {
        "viewer": {
            "id": "USER_1",
            "login": "octo",
            "name": "Octo Cat",
            "avatarUrl": "",
            "projectsV2": {
                "nodes": [
                    {
                        "id": "PVT_1",
                        "title": "Roadmap",
                        "shortDescription": "Q3",
                        "url": "https://github.com/users/octo/projects/1",
                        "number": 1,
                        "collaborators": {"edges": []},
                        "repositories": {"nodes": [{"id": "REPO_1"}]},
                        "fields": {
                            "nodes": [
                                {
                                    "__typename": "ProjectV2Field",
                                    "id": "FIELD_TITLE",
                                    "name": "Title",
                                    "dataType": "TITLE",
                                },
                                {
                                    "__typename": "ProjectV2SingleSelectField",
                                    "id": "FIELD_STATUS",
                                    "name": "Status",
                                    "dataType": "SINGLE_SELECT",
                                    "options": [
                                        _option("OPT_BACKLOG", "Backlog"),
                                        _option("OPT_TODO", "Todo", "BLUE"),
                                        _option("OPT_DONE", "Done", "GREEN"),
                                    ],
                                },
                            ]
                        },
                        "items": {
                            "nodes": [
                                _item("ITEM_1", 1, "First", "OPT_TODO"),
                                _item("ITEM_2", 2, "Second", None),
                                _item("ITEM_3", 3, "Third", "OPT_DONE"),
                            ]
                        },
                    }
                ]
            },
            "repositories": {
                "nodes": [
                    {
                        "id": "REPO_1",
                        "name": "repo",
                        "owner": {"login": "octo"},
                        "url": "https://github.com/octo/repo",
                        "isArchived": False,
                        "hasIssuesEnabled": True,
                        "projectsV2": {"nodes": [{"id": "PVT_1"}]},
                    },
                    {
                        "id": "REPO_2",
                        "name": "other",
                        "owner": {"login": "octo"},
                        "url": "https://github.com/octo/other",
                        "isArchived": False,
                        "hasIssuesEnabled": True,
                        "projectsV2": {"nodes": []},
                    },
                ]
            },
        }
    }


@pytest.fixture
def transport(viewer_payload: dict[str, Any]) -> FakeTransport:
    return FakeTransport(viewer_payload)
