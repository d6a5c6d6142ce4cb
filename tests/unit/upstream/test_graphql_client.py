"""Unit tests for GraphQLClient."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from boardsync.upstream import (
    GraphQLClient,
    Operation,
    UpstreamGraphQLError,
    UpstreamHTTPError,
    UpstreamTransportError,
    document_for,
)


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock async HTTP client."""
    client = MagicMock()
    client.post = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def graphql(mock_client: MagicMock) -> GraphQLClient:
    """Create a GraphQLClient with a mocked HTTP client."""
    client = GraphQLClient(token="test-token", base_url="https://ghe.example/graphql")
    client._client = mock_client
    return client


def _mock_response(payload: dict, status_code: int = 200) -> MagicMock:
    """Create a mock GraphQL response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


@pytest.mark.unit
class TestExecute:
    """Tests for query and mutate."""

    @pytest.mark.asyncio
    async def test_query_posts_document(
        self, graphql: GraphQLClient, mock_client: MagicMock
    ) -> None:
        mock_client.post.return_value = _mock_response({"data": {"viewer": {"id": "U1"}}})

        data = await graphql.query(Operation.GET_VIEWER)

        assert data == {"viewer": {"id": "U1"}}
        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == "https://ghe.example/graphql"
        assert payload["operationName"] == "GetViewer"
        assert payload["query"] == document_for(Operation.GET_VIEWER)
        assert "variables" not in payload

    @pytest.mark.asyncio
    async def test_mutate_sends_variables(
        self, graphql: GraphQLClient, mock_client: MagicMock
    ) -> None:
        mock_client.post.return_value = _mock_response({"data": {"deleteIssue": {}}})

        await graphql.mutate("DeleteIssue", {"issueId": "I_1"})

        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["operationName"] == "DeleteIssue"
        assert payload["variables"] == {"issueId": "I_1"}

    @pytest.mark.asyncio
    async def test_wrong_method(self, graphql: GraphQLClient) -> None:
        with pytest.raises(ValueError, match="use mutate"):
            await graphql.query(Operation.ADD_COLUMN)
        with pytest.raises(ValueError, match="use query"):
            await graphql.mutate(Operation.GET_ALL_INITIAL_DATA)

    @pytest.mark.asyncio
    async def test_unknown_operation(self, graphql: GraphQLClient) -> None:
        with pytest.raises(ValueError):
            await graphql.mutate("DropTables")

    @pytest.mark.asyncio
    async def test_http_error_is_sanitized(
        self, graphql: GraphQLClient, mock_client: MagicMock
    ) -> None:
        response = _mock_response({}, status_code=401)
        response.text = "Bad credentials for Bearer abc.def"
        mock_client.post.return_value = response

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await graphql.query(Operation.GET_VIEWER)

        assert exc_info.value.status_code == 401
        assert "abc.def" not in exc_info.value.body

    @pytest.mark.asyncio
    async def test_graphql_errors(self, graphql: GraphQLClient, mock_client: MagicMock) -> None:
        mock_client.post.return_value = _mock_response(
            {"data": None, "errors": [{"message": "Could not resolve to a node"}]}
        )

        with pytest.raises(UpstreamGraphQLError, match="Could not resolve") as exc_info:
            await graphql.mutate(Operation.DELETE_ISSUE, {"issueId": "I_404"})

        assert exc_info.value.operation == "DeleteIssue"

    @pytest.mark.asyncio
    async def test_transport_error(self, graphql: GraphQLClient, mock_client: MagicMock) -> None:
        mock_client.post.side_effect = httpx.ConnectTimeout("timed out")

        with pytest.raises(UpstreamTransportError, match="GetViewer"):
            await graphql.query(Operation.GET_VIEWER)


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes(self, mock_client: MagicMock) -> None:
        async with GraphQLClient(token="t") as client:
            client._client = mock_client

        mock_client.aclose.assert_awaited_once()
        assert client._client is None

    def test_lazy_client_has_auth_header(self) -> None:
        client = GraphQLClient(token="secret", timeout=5.0)

        http = client.client

        assert isinstance(http, httpx.AsyncClient)
        assert http.headers["Authorization"] == "Bearer secret"
        assert client.client is http


@pytest.mark.unit
class TestDocuments:
    def test_initial_data_selects_project_collaborators(self) -> None:
        document = document_for(Operation.GET_ALL_INITIAL_DATA)

        collaborators = document.split("collaborators(first: 100)", 1)[1]
        assert "edges" in collaborators
        assert "role" in collaborators
        assert "... on User { id login }" in collaborators
