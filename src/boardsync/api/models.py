"""Pydantic models for REST API."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from boardsync.board.deltas import BoardDelta
from boardsync.board.models import Board, CollaboratorRole
from boardsync.board.session import OperationOutcome

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


# Board models


class LabelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
    description: str


class ColumnResponse(BaseModel):
    """Response model for a board column."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    option_id: str | None
    color: str
    description: str
    pending_operations: list[str]


class IssueResponse(BaseModel):
    """Response model for an issue on the board."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    content_id: str
    number: int | None
    title: str
    description: str
    labels: list[LabelResponse]
    assignees: list[str]
    column_id: str | None
    url: str
    pending_operations: list[str]


class RepositoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner: str
    name: str
    enabled: bool
    project_ids: list[str]
    url: str
    pending_operations: list[str]


class CollaboratorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    login: str
    role: str
    pending_operations: list[str]


class ProjectResponse(BaseModel):
    """Response model for the board's project."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    url: str
    number: int | None
    collaborators: list[CollaboratorResponse]
    repository_ids: list[str]


class BoardResponse(BaseModel):
    """Response model for a whole board snapshot."""

    project: ProjectResponse
    status_field: str | None
    columns: list[ColumnResponse]
    issues: list[IssueResponse]
    repositories: list[RepositoryResponse]
    pending_operations: list[str]


def board_to_response(board: Board) -> BoardResponse:
    """Convert a Board to BoardResponse."""
    return BoardResponse(
        project=ProjectResponse.model_validate(board.project),
        status_field=board.status_field.field_name if board.status_field else None,
        columns=[ColumnResponse.model_validate(col) for col in board.columns],
        issues=[IssueResponse.model_validate(issue) for issue in board.issues],
        repositories=[RepositoryResponse.model_validate(repo) for repo in board.repositories],
        pending_operations=sorted(board.pending_operations),
    )


# Intent request models


class ColumnCreate(BaseModel):
    """Request model for adding a column."""

    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(default="GRAY", max_length=32)
    description: str = Field(default="", max_length=1024)


class IssueCreate(BaseModel):
    """Request model for creating an issue on the board."""

    repository_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=1024)
    body: str = ""
    column_id: str | None = None


class IssueMove(BaseModel):
    """Request model for moving an issue. A null column unassigns it."""

    column_id: str | None


class ProjectUpdate(BaseModel):
    """Request model for updating the project (partial update)."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1024)


class CollaboratorAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: CollaboratorRole = CollaboratorRole.WRITER
    login: str = ""


# Operation models


class ConflictResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    operation_id: str
    winning_sequence: int
    entity: str
    entity_id: str
    field: str


class DeltaResponse(BaseModel):
    """The optimistic change an operation attempted."""

    kind: str
    touches: list[list[str]] = Field(description="(entity, id, field) keys the change writes")


def delta_to_response(delta: BoardDelta) -> DeltaResponse:
    return DeltaResponse(
        kind=delta.describe(), touches=[list(key) for key in sorted(delta.touches())]
    )


class OperationResponse(BaseModel):
    """Response model for an accepted or finished operation."""

    operation_id: str
    intent: str
    status: str = Field(description="pending, committed or rolled_back")
    conflicts: list[ConflictResponse] = Field(default_factory=list)
    entity_id: str | None = None
    delta: DeltaResponse | None = None
    error: str | None = None
    completed_steps: int | None = None


def outcome_to_response(outcome: OperationOutcome) -> OperationResponse:
    """Convert a finished OperationOutcome to OperationResponse."""
    if outcome.error is not None:
        return OperationResponse(
            operation_id=outcome.operation_id,
            intent=str(outcome.intent),
            status="rolled_back",
            entity_id=outcome.error.entity_id,
            delta=delta_to_response(outcome.error.delta),
            error=str(outcome.error.cause),
            completed_steps=outcome.error.completed_steps,
        )
    return OperationResponse(
        operation_id=outcome.operation_id,
        intent=str(outcome.intent),
        status="committed",
        conflicts=[ConflictResponse.model_validate(note) for note in outcome.notes],
    )
