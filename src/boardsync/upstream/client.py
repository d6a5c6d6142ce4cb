"""GraphQLClient - async transport for the GitHub GraphQL API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from boardsync.logging import sanitize_for_log
from boardsync.upstream.exceptions import (
    UpstreamGraphQLError,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from boardsync.upstream.operations import QUERIES, Operation, document_for

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the board layer needs from an upstream executor."""

    async def query(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a named query and return its data."""
        ...

    async def mutate(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a named mutation and return its data."""
        ...


class GraphQLClient:
    """Executes registered operations against a GraphQL endpoint.

    Owns no retry or caching; every failure surfaces as an UpstreamError.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com/graphql",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: GitHub token with project and repo scopes
            base_url: GraphQL endpoint (for testing/enterprise)
            timeout: Per-request timeout in seconds
        """
        self.token = token
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GraphQLClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def query(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        operation = Operation(operation)
        if operation not in QUERIES:
            raise ValueError(f"{operation} is a mutation; use mutate()")
        return await self._execute(operation, variables)

    async def mutate(
        self, operation: Operation | str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        operation = Operation(operation)
        if operation in QUERIES:
            raise ValueError(f"{operation} is a query; use query()")
        return await self._execute(operation, variables)

    async def _execute(
        self, operation: Operation, variables: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Post one operation and unwrap its data.

        Raises:
            UpstreamTransportError: If the request could not be sent or timed out
            UpstreamHTTPError: If the endpoint answered with a non-200 status
            UpstreamGraphQLError: If the response carries GraphQL errors
        """
        payload: dict[str, Any] = {
            "query": document_for(operation),
            "operationName": operation.value,
        }
        if variables:
            payload["variables"] = variables

        logger.debug("Executing %s", operation.value)
        try:
            response = await self.client.post(self.base_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"{operation.value}: {e}") from e

        if response.status_code != 200:
            raise UpstreamHTTPError(response.status_code, sanitize_for_log(response.text))

        data: dict[str, Any] = response.json()
        if data.get("errors"):
            logger.warning(
                "%s returned errors: %s", operation.value, sanitize_for_log(str(data["errors"]))
            )
            raise UpstreamGraphQLError(operation.value, data["errors"])

        return dict(data.get("data") or {})
