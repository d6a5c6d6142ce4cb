"""Assemble the canonical board from normalized upstream entities."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from boardsync.board.exceptions import AmbiguousFieldError, MappingError
from boardsync.board.fields import columns_for, resolve_status_field
from boardsync.board.models import (
    DEFAULT_COLUMN_TYPES,
    Board,
    ColumnType,
    Field,
    Issue,
    Project,
    Repository,
    ResolvedField,
)
from boardsync.board.normalizer import (
    nodes,
    normalize_field,
    normalize_items,
    normalize_project,
    normalize_repository,
)

logger = logging.getLogger(__name__)


def field_assignments(
    issues: Iterable[Issue], resolved: ResolvedField | None
) -> dict[str, str | None]:
    """Issue id -> option id of the resolved field, None when unset or unknown."""
    known = set(resolved.option_ids()) if resolved else set()
    assignments: dict[str, str | None] = {}
    for issue in issues:
        option_id = issue.field_values.get(resolved.field_id) if resolved else None
        assignments[issue.id] = option_id if option_id in known else None
    return assignments


def assemble_board(
    project: Project,
    fields: Iterable[Field],
    issues: Iterable[Issue],
    repositories: Iterable[Repository] = (),
    field_name: str = "Status",
    column_types: Mapping[str, ColumnType] = DEFAULT_COLUMN_TYPES,
) -> Board:
    """Build a board for a project.

    Columns follow the resolved field's option order. Issues keep the order
    the upstream returned them in. If the status field cannot be resolved
    the board has no columns and every issue is unassigned.
    """
    issues = list(issues)
    resolved: ResolvedField | None
    try:
        resolved = resolve_status_field(fields, field_name)
    except AmbiguousFieldError as e:
        logger.warning("Project %s has no usable column field: %s", project.id, e)
        resolved = None

    columns = columns_for(resolved, project.id, column_types) if resolved else []
    assignments = field_assignments(issues, resolved)
    placed = tuple(_with_column(issue, assignments[issue.id]) for issue in issues)

    logger.debug(
        "Assembled board for project %s: %d column(s), %d issue(s), %d unassigned",
        project.id,
        len(columns),
        len(placed),
        sum(1 for issue in placed if issue.column_id is None),
    )
    return Board(
        project=project,
        columns=tuple(columns),
        issues=placed,
        repositories=tuple(repositories),
        status_field=resolved,
    )


def _with_column(issue: Issue, option_id: str | None) -> Issue:
    if issue.column_id == option_id:
        return issue
    # Column ids of upstream columns are their option ids.
    return replace(issue, column_id=option_id)


def flatten_board(board: Board) -> dict[str, str | None]:
    """Issue id -> option id of the column holding it (None when unassigned)."""
    flat: dict[str, str | None] = {}
    for issue in board.issues:
        column = board.column(issue.column_id) if issue.column_id else None
        flat[issue.id] = column.option_id if column else None
    return flat


def assemble_from_project_node(
    raw_project: dict[str, Any],
    raw_repositories: Iterable[dict[str, Any]] = (),
    field_name: str = "Status",
    column_types: Mapping[str, ColumnType] = DEFAULT_COLUMN_TYPES,
) -> Board:
    """Normalize a raw ProjectV2 node and assemble its board.

    Raises:
        MappingError: If the project node itself is malformed.
    """
    project = normalize_project(raw_project)

    fields: list[Field] = []
    for raw_field in nodes(raw_project, "fields"):
        try:
            fields.append(normalize_field(raw_field))
        except MappingError as e:
            logger.warning("Skipping malformed field on project %s: %s", project.id, e)

    repositories: list[Repository] = []
    linked = set(project.repository_ids)
    for raw_repo in raw_repositories:
        try:
            repo = normalize_repository(raw_repo)
        except MappingError as e:
            logger.warning("Skipping malformed repository: %s", e)
            continue
        if repo.id in linked and project.id not in repo.project_ids:
            repo = _link(repo, project.id)
        repositories.append(repo)

    return assemble_board(
        project,
        fields,
        normalize_items(nodes(raw_project, "items")),
        repositories,
        field_name=field_name,
        column_types=column_types,
    )


def _link(repo: Repository, project_id: str) -> Repository:
    return replace(repo, project_ids=(*repo.project_ids, project_id))


def assemble_from_viewer(
    viewer: dict[str, Any],
    project_id: str,
    field_name: str = "Status",
    column_types: Mapping[str, ColumnType] = DEFAULT_COLUMN_TYPES,
) -> Board | None:
    """Assemble one project's board from a GetAllInitialData viewer payload.

    Returns None if the viewer has no project with that id.
    """
    for raw_project in nodes(viewer, "projectsV2"):
        if raw_project.get("id") == project_id:
            return assemble_from_project_node(
                raw_project,
                nodes(viewer, "repositories"),
                field_name=field_name,
                column_types=column_types,
            )
    return None
