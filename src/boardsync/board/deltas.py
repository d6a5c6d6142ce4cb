"""Optimistic board transformations.

A delta is an immutable description of one change to a Board. Applying it
returns a new Board; the original is never touched. Every delta names the
fields it writes (`touches`) so the reconciler can order writes by the
operation that initiated them and skip fields a later operation owns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, TypeVar

from boardsync.board.models import (
    Board,
    Collaborator,
    Column,
    Issue,
    Repository,
)

# (entity kind, entity id, field name)
FieldKey = tuple[str, str, str]

EXISTS = "exists"

T = TypeVar("T", Column, Issue, Repository, Collaborator)


def tag(entity: T, operation_id: str | None) -> T:
    """Mark an entity as carrying a pending change from `operation_id`."""
    if operation_id is None or operation_id in entity.pending_operations:
        return entity
    return replace(entity, pending_operations=(*entity.pending_operations, operation_id))


def _update_issue(board: Board, issue_id: str, fn: Callable[[Issue], Issue]) -> Board:
    issues = tuple(fn(issue) if issue.id == issue_id else issue for issue in board.issues)
    return replace(board, issues=issues)


def _update_column(board: Board, column_id: str, fn: Callable[[Column], Column]) -> Board:
    columns = tuple(fn(col) if col.id == column_id else col for col in board.columns)
    return replace(board, columns=columns)


def _update_repository(
    board: Board, repository_id: str, fn: Callable[[Repository], Repository]
) -> Board:
    repositories = tuple(
        fn(repo) if repo.id == repository_id else repo for repo in board.repositories
    )
    return replace(board, repositories=repositories)


class BoardDelta(ABC):
    """One optimistic change to a board."""

    @abstractmethod
    def touches(self) -> frozenset[FieldKey]:
        """Fields this delta writes."""

    @abstractmethod
    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        """Return `board` with this change applied.

        Args:
            board: Board to transform.
            operation_id: When given, touched entities are tagged as pending.
            skip: Fields that must not be written.
        """

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class InsertColumn(BoardDelta):
    """Append a column at the tail of the column order."""

    column: Column

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("column", self.column.id, EXISTS)})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("column", self.column.id, EXISTS) in skip or board.column(self.column.id):
            return board
        return replace(board, columns=(*board.columns, tag(self.column, operation_id)))


@dataclass(frozen=True)
class RemoveColumn(BoardDelta):
    """Remove a column and move everything in it to the unassigned bucket."""

    column_id: str
    orphaned: tuple[str, ...] = ()

    def touches(self) -> frozenset[FieldKey]:
        keys = {("column", self.column_id, EXISTS)}
        keys.update(("issue", issue_id, "column_id") for issue_id in self.orphaned)
        return frozenset(keys)

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("column", self.column_id, EXISTS) in skip:
            return board
        issues = tuple(
            tag(replace(issue, column_id=None), operation_id)
            if issue.column_id == self.column_id
            else issue
            for issue in board.issues
        )
        columns = tuple(col for col in board.columns if col.id != self.column_id)
        return replace(board, columns=columns, issues=issues)


@dataclass(frozen=True)
class MoveIssue(BoardDelta):
    """Put an issue in a column (None for unassigned)."""

    issue_id: str
    column_id: str | None
    previous_column_id: str | None = None

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("issue", self.issue_id, "column_id")})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("issue", self.issue_id, "column_id") in skip:
            return board
        if self.column_id is not None and board.column(self.column_id) is None:
            # Target column was removed in the meantime.
            return board
        return _update_issue(
            board,
            self.issue_id,
            lambda issue: tag(replace(issue, column_id=self.column_id), operation_id),
        )


@dataclass(frozen=True)
class InsertIssue(BoardDelta):
    """Append an issue to the board."""

    issue: Issue

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("issue", self.issue.id, EXISTS)})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("issue", self.issue.id, EXISTS) in skip or board.issue(self.issue.id):
            return board
        issue = self.issue
        if issue.column_id is not None and board.column(issue.column_id) is None:
            issue = replace(issue, column_id=None)
        return replace(board, issues=(*board.issues, tag(issue, operation_id)))


@dataclass(frozen=True)
class RemoveIssue(BoardDelta):
    issue_id: str

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("issue", self.issue_id, EXISTS)})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("issue", self.issue_id, EXISTS) in skip:
            return board
        return replace(board, issues=tuple(i for i in board.issues if i.id != self.issue_id))


@dataclass(frozen=True)
class UpdateProject(BoardDelta):
    """Set project title and/or description."""

    project_id: str
    title: str | None = None
    description: str | None = None

    def touches(self) -> frozenset[FieldKey]:
        keys = set()
        if self.title is not None:
            keys.add(("project", self.project_id, "title"))
        if self.description is not None:
            keys.add(("project", self.project_id, "description"))
        return frozenset(keys)

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        changes: dict[str, Any] = {}
        for key in self.touches() - skip:
            changes[key[2]] = getattr(self, key[2])
        if not changes:
            return board
        return replace(board, project=replace(board.project, **changes))


@dataclass(frozen=True)
class SetCollaborator(BoardDelta):
    """Add a collaborator or change their role."""

    collaborator: Collaborator

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("collaborator", self.collaborator.id, "role")})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("collaborator", self.collaborator.id, "role") in skip:
            return board
        updated = tag(self.collaborator, operation_id)
        existing = board.project.collaborators
        if any(c.id == updated.id for c in existing):
            collaborators = tuple(updated if c.id == updated.id else c for c in existing)
        else:
            collaborators = (*existing, updated)
        return replace(board, project=replace(board.project, collaborators=collaborators))


@dataclass(frozen=True)
class RemoveCollaborator(BoardDelta):
    user_id: str

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("collaborator", self.user_id, "role")})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("collaborator", self.user_id, "role") in skip:
            return board
        collaborators = tuple(c for c in board.project.collaborators if c.id != self.user_id)
        return replace(board, project=replace(board.project, collaborators=collaborators))


@dataclass(frozen=True)
class LinkRepository(BoardDelta):
    """Link a repository to the board's project (both directions)."""

    repository_id: str
    project_id: str

    def touches(self) -> frozenset[FieldKey]:
        return frozenset(
            {
                ("repository", self.repository_id, "project_ids"),
                ("project", self.project_id, "repository_ids"),
            }
        )

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("project", self.project_id, "repository_ids") not in skip:
            ids = board.project.repository_ids
            if self.repository_id not in ids:
                board = replace(
                    board,
                    project=replace(board.project, repository_ids=(*ids, self.repository_id)),
                )
        if ("repository", self.repository_id, "project_ids") not in skip:

            def link(repo: Repository) -> Repository:
                if self.project_id not in repo.project_ids:
                    repo = replace(repo, project_ids=(*repo.project_ids, self.project_id))
                return tag(repo, operation_id)

            board = _update_repository(board, self.repository_id, link)
        return board


@dataclass(frozen=True)
class SetRepositoryEnabled(BoardDelta):
    """Enable or disable a repository. Project links are left alone."""

    repository_id: str
    enabled: bool

    def touches(self) -> frozenset[FieldKey]:
        return frozenset({("repository", self.repository_id, "enabled")})

    def apply(
        self,
        board: Board,
        operation_id: str | None = None,
        skip: frozenset[FieldKey] = frozenset(),
    ) -> Board:
        if ("repository", self.repository_id, "enabled") in skip:
            return board
        return _update_repository(
            board,
            self.repository_id,
            lambda repo: tag(replace(repo, enabled=self.enabled), operation_id),
        )


@dataclass(frozen=True)
class EntitySnapshot:
    """Authoritative field values for one entity, taken from a mutation response."""

    entity: str
    entity_id: str
    values: dict[str, Any] = field(default_factory=dict)

    def keys(self) -> frozenset[FieldKey]:
        return frozenset((self.entity, self.entity_id, name) for name in self.values)


_SNAPSHOT_TYPES: dict[str, type] = {
    "issue": Issue,
    "column": Column,
    "repository": Repository,
    "collaborator": Collaborator,
}


def apply_snapshot(
    board: Board, snapshot: EntitySnapshot, skip: frozenset[FieldKey] = frozenset()
) -> Board:
    """Overwrite an entity field by field; fields not in the snapshot are kept."""
    if snapshot.entity == "project":
        allowed = {f.name for f in fields(type(board.project))} - {"id", "collaborators"}
        changes = _changes(snapshot, allowed, skip)
        if not changes or snapshot.entity_id != board.project.id:
            return board
        return replace(board, project=replace(board.project, **changes))

    entity_type = _SNAPSHOT_TYPES.get(snapshot.entity)
    if entity_type is None:
        raise ValueError(f"Unknown snapshot entity '{snapshot.entity}'")
    allowed = {f.name for f in fields(entity_type)} - {"pending_operations"}
    changes = _changes(snapshot, allowed, skip)
    if not changes:
        return board

    if snapshot.entity == "issue":
        return _update_issue(board, snapshot.entity_id, lambda i: replace(i, **changes))
    if snapshot.entity == "column":
        return _update_column(board, snapshot.entity_id, lambda c: replace(c, **changes))
    if snapshot.entity == "repository":
        return _update_repository(board, snapshot.entity_id, lambda r: replace(r, **changes))

    collaborators = tuple(
        replace(c, **changes) if c.id == snapshot.entity_id else c
        for c in board.project.collaborators
    )
    return replace(board, project=replace(board.project, collaborators=collaborators))


def _changes(
    snapshot: EntitySnapshot, allowed: set[str], skip: frozenset[FieldKey]
) -> dict[str, Any]:
    return {
        name: value
        for name, value in snapshot.values.items()
        if name in allowed and (snapshot.entity, snapshot.entity_id, name) not in skip
    }
