"""Custom exceptions for the upstream GraphQL transport."""

from __future__ import annotations

from typing import Any


class UpstreamError(Exception):
    """Base exception for failed upstream calls."""


class UpstreamHTTPError(UpstreamError):
    """The endpoint answered with a non-200 status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"GraphQL request failed: {status_code} - {body}")


class UpstreamGraphQLError(UpstreamError):
    """The response carried GraphQL errors."""

    def __init__(self, operation: str, errors: list[dict[str, Any]]) -> None:
        self.operation = operation
        self.errors = errors
        messages = "; ".join(str(e.get("message", e)) for e in errors) or "unknown error"
        super().__init__(f"{operation}: {messages}")


class UpstreamTransportError(UpstreamError):
    """The request never got an answer (connection, timeout)."""
