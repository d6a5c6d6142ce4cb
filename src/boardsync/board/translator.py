"""Translate board intents into upstream mutations and optimistic deltas.

Every intent function validates against the current board, then returns a
MutationPlan: the ordered mutation steps to run upstream and the delta to
apply locally right away. Nothing here touches the network or mutates the
board. Validation failures are raised before any step exists.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from boardsync.board.deltas import (
    BoardDelta,
    EntitySnapshot,
    InsertColumn,
    InsertIssue,
    LinkRepository,
    MoveIssue,
    RemoveCollaborator,
    RemoveColumn,
    RemoveIssue,
    SetCollaborator,
    SetRepositoryEnabled,
    UpdateProject,
)
from boardsync.board.exceptions import (
    AmbiguousFieldError,
    UnresolvedColumnError,
    UnresolvedIssueError,
)
from boardsync.board.fields import column_type_for
from boardsync.board.models import (
    DEFAULT_COLUMN_TYPES,
    Board,
    Collaborator,
    CollaboratorRole,
    Column,
    ColumnType,
    Issue,
    local_id,
)
from boardsync.upstream.operations import Operation

DeltaT = TypeVar("DeltaT", bound=BoardDelta)


class Intent(StrEnum):
    """User intents the board accepts."""

    ADD_COLUMN = "add_column"
    DELETE_COLUMN = "delete_column"
    MOVE_ISSUE = "move_issue"
    CREATE_ISSUE = "create_issue"
    DELETE_ISSUE = "delete_issue"
    UPDATE_PROJECT = "update_project"
    ADD_COLLABORATOR = "add_collaborator"
    REMOVE_COLLABORATOR = "remove_collaborator"
    LINK_REPOSITORY = "link_repository"
    DISABLE_REPOSITORY = "disable_repository"
    ENABLE_REPOSITORY = "enable_repository"


@dataclass(frozen=True)
class ResultRef:
    """A variable whose value comes from an earlier step's result.

    `path` is a dotted path into that step's response data.
    """

    step: int
    path: str


@dataclass(frozen=True)
class MutationStep:
    operation: Operation
    variables: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MutationPlan:
    """Upstream steps plus the optimistic delta for one intent."""

    operation_id: str
    intent: Intent
    steps: tuple[MutationStep, ...]
    delta: BoardDelta
    entity_id: str | None = None


def new_operation_id() -> str:
    return uuid.uuid4().hex


def dig(data: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts; None when any part is missing."""
    for part in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


def resolve_variables(variables: dict[str, Any], results: list[dict[str, Any]]) -> dict[str, Any]:
    """Replace ResultRefs with values from completed step results.

    Raises:
        LookupError: If a referenced step has not run or lacks the value.
    """
    resolved: dict[str, Any] = {}
    for name, value in variables.items():
        if isinstance(value, ResultRef):
            if value.step >= len(results):
                raise LookupError(f"Step {value.step} has not completed")
            ref_value = dig(results[value.step], value.path)
            if ref_value is None:
                raise LookupError(f"Step {value.step} result has no '{value.path}'")
            value = ref_value
        resolved[name] = value
    return resolved


def _require_field(board: Board) -> str:
    if board.status_field is None:
        raise AmbiguousFieldError("Status", [])
    return board.status_field.field_id


def _require_column(board: Board, column_id: str) -> Column:
    column = board.column(column_id)
    if column is None:
        raise UnresolvedColumnError(column_id, "does not exist on this board")
    if column.option_id is None:
        raise UnresolvedColumnError(column_id)
    return column


def _require_issue(board: Board, issue_id: str) -> Issue:
    issue = board.issue(issue_id)
    if issue is None:
        raise UnresolvedIssueError(issue_id, "does not exist on this board")
    if not issue.is_resolved:
        raise UnresolvedIssueError(issue_id)
    return issue


def _option_input(column: Column) -> dict[str, str]:
    return {"name": column.name, "color": column.color, "description": column.description}


def add_column(
    board: Board,
    name: str,
    color: str = "GRAY",
    description: str = "",
    column_types: dict[str, ColumnType] | None = None,
    operation_id: str | None = None,
) -> MutationPlan:
    """Create a new option on the status field and append a column for it.

    Existing options are resent by name so the field keeps them, including
    options still being created by other pending operations.
    """
    operation_id = operation_id or new_operation_id()
    field_id = _require_field(board)
    column = Column(
        id=local_id(operation_id),
        name=name,
        type=column_type_for(name, column_types or DEFAULT_COLUMN_TYPES),
        field_id=field_id,
        option_id=None,
        project_id=board.project.id,
        color=color.upper(),
        description=description,
    )
    options = [_option_input(col) for col in board.columns] + [_option_input(column)]
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.ADD_COLUMN,
        steps=(MutationStep(Operation.ADD_COLUMN, {"fieldId": field_id, "options": options}),),
        delta=InsertColumn(column),
        entity_id=column.id,
    )


def delete_column(
    board: Board, column_id: str, operation_id: str | None = None
) -> MutationPlan:
    """Orphan the column's issues upstream, then drop its option."""
    operation_id = operation_id or new_operation_id()
    field_id = _require_field(board)
    column = _require_column(board, column_id)

    orphaned = board.issues_in(column.id)
    for issue in orphaned:
        if not issue.is_resolved:
            raise UnresolvedIssueError(issue.id)

    steps = [
        MutationStep(
            Operation.CLEAR_ISSUE_STATUS,
            {"projectId": board.project.id, "itemId": issue.id, "fieldId": field_id},
        )
        for issue in orphaned
    ]
    remaining = [_option_input(col) for col in board.columns if col.id != column.id]
    steps.append(MutationStep(Operation.DELETE_COLUMN, {"fieldId": field_id, "options": remaining}))

    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.DELETE_COLUMN,
        steps=tuple(steps),
        delta=RemoveColumn(column.id, tuple(issue.id for issue in orphaned)),
        entity_id=column.id,
    )


def move_issue(
    board: Board, issue_id: str, column_id: str | None, operation_id: str | None = None
) -> MutationPlan:
    """Set the issue's status field value; None clears it (unassigned).

    Raises:
        UnresolvedColumnError: If the target column has no upstream option yet.
        UnresolvedIssueError: If the issue is unknown or not created upstream yet.
    """
    operation_id = operation_id or new_operation_id()
    field_id = _require_field(board)
    issue = _require_issue(board, issue_id)

    if column_id is None:
        step = MutationStep(
            Operation.CLEAR_ISSUE_STATUS,
            {"projectId": board.project.id, "itemId": issue.id, "fieldId": field_id},
        )
    else:
        column = _require_column(board, column_id)
        step = MutationStep(
            Operation.UPDATE_ISSUE_STATUS,
            {
                "projectId": board.project.id,
                "itemId": issue.id,
                "fieldId": field_id,
                "optionId": column.option_id,
                "fieldName": board.status_field.field_name,
            },
        )

    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.MOVE_ISSUE,
        steps=(step,),
        delta=MoveIssue(issue.id, column_id, issue.column_id),
        entity_id=issue.id,
    )


def create_issue(
    board: Board,
    repository_id: str,
    title: str,
    body: str = "",
    column_id: str | None = None,
    operation_id: str | None = None,
) -> MutationPlan:
    """Create an issue in a repository, add it to the project, optionally place it."""
    operation_id = operation_id or new_operation_id()
    repository = board.repository(repository_id)
    if repository is not None and not repository.enabled:
        raise ValueError(f"Repository {repository.full_name} is disabled")

    steps = [
        MutationStep(
            Operation.CREATE_ISSUE,
            {"repositoryId": repository_id, "title": title, "body": body},
        ),
        MutationStep(
            Operation.ADD_PROJECT_ITEM,
            {"projectId": board.project.id, "contentId": ResultRef(0, "createIssue.issue.id")},
        ),
    ]
    if column_id is not None:
        field_id = _require_field(board)
        column = _require_column(board, column_id)
        steps.append(
            MutationStep(
                Operation.UPDATE_ISSUE_STATUS,
                {
                    "projectId": board.project.id,
                    "itemId": ResultRef(1, "addProjectV2ItemById.item.id"),
                    "fieldId": field_id,
                    "optionId": column.option_id,
                    "fieldName": board.status_field.field_name,
                },
            )
        )

    issue = Issue(
        id=local_id(operation_id),
        title=title,
        description=body,
        column_id=column_id,
    )
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.CREATE_ISSUE,
        steps=tuple(steps),
        delta=InsertIssue(issue),
        entity_id=issue.id,
    )


def delete_issue(board: Board, issue_id: str, operation_id: str | None = None) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    issue = _require_issue(board, issue_id)
    if not issue.content_id:
        raise UnresolvedIssueError(issue_id, "has no issue content id")
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.DELETE_ISSUE,
        steps=(MutationStep(Operation.DELETE_ISSUE, {"issueId": issue.content_id}),),
        delta=RemoveIssue(issue.id),
        entity_id=issue.id,
    )


def update_project(
    board: Board,
    title: str | None = None,
    description: str | None = None,
    operation_id: str | None = None,
) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    if title is None and description is None:
        raise ValueError("Nothing to update: give a title or a description")
    variables: dict[str, Any] = {"projectId": board.project.id}
    if title is not None:
        variables["title"] = title
    if description is not None:
        variables["shortDescription"] = description
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.UPDATE_PROJECT,
        steps=(MutationStep(Operation.UPDATE_PROJECT, variables),),
        delta=UpdateProject(board.project.id, title=title, description=description),
        entity_id=board.project.id,
    )


def add_collaborator(
    board: Board,
    user_id: str,
    role: CollaboratorRole,
    login: str = "",
    operation_id: str | None = None,
) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    if role is CollaboratorRole.NONE:
        raise ValueError("Use remove_collaborator to revoke access")
    collaborator = Collaborator(id=user_id, login=login, role=role, project_id=board.project.id)
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.ADD_COLLABORATOR,
        steps=(
            MutationStep(
                Operation.ADD_COLLABORATOR,
                {
                    "projectId": board.project.id,
                    "collaborators": [{"userId": user_id, "role": role.value}],
                },
            ),
        ),
        delta=SetCollaborator(collaborator),
        entity_id=user_id,
    )


def remove_collaborator(
    board: Board, user_id: str, operation_id: str | None = None
) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.REMOVE_COLLABORATOR,
        steps=(
            MutationStep(
                Operation.REMOVE_COLLABORATOR,
                {
                    "projectId": board.project.id,
                    "collaborators": [{"userId": user_id, "role": CollaboratorRole.NONE.value}],
                },
            ),
        ),
        delta=RemoveCollaborator(user_id),
        entity_id=user_id,
    )


def link_repository(
    board: Board, repository_id: str, operation_id: str | None = None
) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.LINK_REPOSITORY,
        steps=(
            MutationStep(
                Operation.LINK_REPOSITORY_TO_PROJECT,
                {"projectId": board.project.id, "repositoryId": repository_id},
            ),
        ),
        delta=LinkRepository(repository_id, board.project.id),
        entity_id=repository_id,
    )


def disable_repository(
    board: Board, repository_id: str, operation_id: str | None = None
) -> MutationPlan:
    """Disable a repository. Its project links stay; disabling is reversible."""
    operation_id = operation_id or new_operation_id()
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.DISABLE_REPOSITORY,
        steps=(MutationStep(Operation.DISABLE_REPOSITORY, {"repositoryId": repository_id}),),
        delta=SetRepositoryEnabled(repository_id, enabled=False),
        entity_id=repository_id,
    )


def enable_repository(
    board: Board, repository_id: str, operation_id: str | None = None
) -> MutationPlan:
    operation_id = operation_id or new_operation_id()
    return MutationPlan(
        operation_id=operation_id,
        intent=Intent.ENABLE_REPOSITORY,
        steps=(MutationStep(Operation.ENABLE_REPOSITORY, {"repositoryId": repository_id}),),
        delta=SetRepositoryEnabled(repository_id, enabled=True),
        entity_id=repository_id,
    )


# --- Response readers ---


def read_snapshots(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    """Authoritative entity values carried by a plan's mutation responses."""
    reader = _READERS.get(plan.intent)
    if reader is None or not results:
        return []
    return reader(plan, results, board)


def _delta_of(plan: MutationPlan, delta_type: type[DeltaT]) -> DeltaT:
    if not isinstance(plan.delta, delta_type):
        raise TypeError(
            f"{plan.intent} plan carries {type(plan.delta).__name__}, "
            f"expected {delta_type.__name__}"
        )
    return plan.delta


def _read_field_options(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    """Refresh columns from the option list an option mutation returns.

    Options are matched to columns by option id first, then by name in
    order. Only this plan's own unconfirmed column may be matched by name
    without an option id. One snapshot per column whose values changed.
    """
    options = [
        option
        for option in dig(results[-1], "updateProjectV2Field.projectV2Field.options") or []
        if option and option.get("id")
    ]
    own = plan.delta.column.id if isinstance(plan.delta, InsertColumn) else None
    candidates = [col for col in board.columns if col.option_id or col.id == own]

    matches: dict[str, dict[str, Any]] = {}
    unmatched = []
    by_option = {col.option_id: col for col in candidates if col.option_id}
    for option in options:
        column = by_option.pop(option["id"], None)
        if column is None:
            unmatched.append(option)
        else:
            matches[column.id] = option
    for option in unmatched:
        column = next(
            (
                col
                for col in candidates
                if col.id not in matches and col.name == option.get("name")
            ),
            None,
        )
        if column is not None:
            matches[column.id] = option

    snapshots = []
    for column in candidates:
        option = matches.get(column.id)
        if option is None:
            continue
        values: dict[str, Any] = {}
        for source, target in (("id", "option_id"), ("name", "name"), ("color", "color")):
            value = option.get(source)
            if value is not None and value != getattr(column, target):
                values[target] = value
        if values:
            snapshots.append(EntitySnapshot("column", column.id, values))
    return snapshots


def _read_move_issue(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    delta = _delta_of(plan, MoveIssue)
    item = dig(results[-1], "updateProjectV2ItemFieldValue.projectV2Item")
    if not item:
        return []
    option_id = dig(item, "fieldValueByName.optionId")
    if option_id is None:
        return []
    column = board.column_for_option(option_id)
    if column is None:
        return []
    return [EntitySnapshot("issue", delta.issue_id, {"column_id": column.id})]


def _read_create_issue(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    delta = _delta_of(plan, InsertIssue)
    created = dig(results[0], "createIssue.issue") or {}
    item_id = dig(results[1], "addProjectV2ItemById.item.id") if len(results) > 1 else None
    values: dict[str, Any] = {}
    for source, target in (("id", "content_id"), ("number", "number"), ("url", "url")):
        if created.get(source) is not None:
            values[target] = created[source]
    if item_id:
        values["id"] = item_id
    return [EntitySnapshot("issue", delta.issue.id, values)] if values else []


def _read_repository(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    repo = dig(results[-1], "updateRepository.repository")
    if not repo or not repo.get("id"):
        return []
    enabled = not repo.get("isArchived", False) and repo.get("hasIssuesEnabled", True) is not False
    return [EntitySnapshot("repository", repo["id"], {"enabled": enabled})]


def _read_update_project(
    plan: MutationPlan, results: list[dict[str, Any]], board: Board
) -> list[EntitySnapshot]:
    project = dig(results[-1], "updateProjectV2.projectV2")
    if not project or not project.get("id"):
        return []
    values: dict[str, Any] = {}
    if project.get("title") is not None:
        values["title"] = project["title"]
    if project.get("shortDescription") is not None:
        values["description"] = project["shortDescription"]
    return [EntitySnapshot("project", project["id"], values)] if values else []


_READERS = {
    Intent.ADD_COLUMN: _read_field_options,
    Intent.DELETE_COLUMN: _read_field_options,
    Intent.MOVE_ISSUE: _read_move_issue,
    Intent.CREATE_ISSUE: _read_create_issue,
    Intent.DISABLE_REPOSITORY: _read_repository,
    Intent.ENABLE_REPOSITORY: _read_repository,
    Intent.UPDATE_PROJECT: _read_update_project,
}
