"""Exceptions and notes raised by the board layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boardsync.board.deltas import BoardDelta


class BoardError(Exception):
    """Base exception for board layer errors."""


class MappingError(BoardError):
    """Upstream entity is missing a required field."""

    def __init__(self, entity: str, missing: str, raw_id: object = None) -> None:
        self.entity = entity
        self.missing = missing
        self.raw_id = raw_id
        where = f" (id={raw_id!r})" if raw_id is not None else ""
        super().__init__(f"{entity}{where} is missing required field '{missing}'")


class AmbiguousFieldError(BoardError):
    """No single status field could be chosen to drive the columns."""

    def __init__(self, field_name: str, candidates: list[str]) -> None:
        self.field_name = field_name
        self.candidates = candidates
        if candidates:
            detail = f"{len(candidates)} candidates: {candidates}"
        else:
            detail = "no candidates"
        super().__init__(f"Cannot resolve single-select field '{field_name}': {detail}")


class UnresolvedColumnError(BoardError):
    """Column is unknown or has no upstream option yet."""

    def __init__(self, column_id: str, reason: str = "has no upstream option yet") -> None:
        self.column_id = column_id
        super().__init__(f"Column '{column_id}' {reason}")


class UnresolvedIssueError(BoardError):
    """Issue is unknown or exists only optimistically."""

    def __init__(self, issue_id: str, reason: str = "has not been created upstream yet") -> None:
        self.issue_id = issue_id
        super().__init__(f"Issue '{issue_id}' {reason}")


class UpstreamMutationError(BoardError):
    """An upstream mutation failed and its optimistic change was rolled back.

    Carries enough context for the caller to retry or correct manually.
    """

    def __init__(
        self,
        operation_id: str,
        intent: str,
        entity_id: str | None,
        delta: BoardDelta,
        cause: BaseException,
        completed_steps: int = 0,
    ) -> None:
        self.operation_id = operation_id
        self.intent = intent
        self.entity_id = entity_id
        self.delta = delta
        self.cause = cause
        self.completed_steps = completed_steps
        super().__init__(
            f"{intent} failed for {entity_id or 'board'} "
            f"(operation {operation_id}, {completed_steps} step(s) applied upstream): {cause}"
        )


@dataclass(frozen=True)
class ConflictResolutionNote:
    """A stale result was discarded because a later-initiated operation owns the field."""

    operation_id: str
    winning_sequence: int
    entity: str
    entity_id: str
    field: str

    def __str__(self) -> str:
        return (
            f"Operation {self.operation_id} result for {self.entity} {self.entity_id}.{self.field} "
            f"discarded; superseded by operation #{self.winning_sequence}"
        )


class ProjectNotFoundError(BoardError):
    """The viewer has no project with the requested id."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")


class BoardNotLoadedError(BoardError):
    """The session has no board yet, or it was closed."""
