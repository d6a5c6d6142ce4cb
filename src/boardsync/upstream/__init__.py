"""Upstream - GraphQL transport and operations for GitHub Projects."""

from boardsync.upstream.client import GraphQLClient, Transport
from boardsync.upstream.exceptions import (
    UpstreamError,
    UpstreamGraphQLError,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from boardsync.upstream.operations import Operation, document_for
from boardsync.upstream.service import ProjectService

__all__ = [
    "GraphQLClient",
    "Operation",
    "ProjectService",
    "Transport",
    "UpstreamError",
    "UpstreamGraphQLError",
    "UpstreamHTTPError",
    "UpstreamTransportError",
    "document_for",
]
