"""Value objects for the canonical project board."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ColumnType(StrEnum):
    """Closed set of column kinds. BACKLOG is the catch-all."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BACKLOG = "BACKLOG"


DEFAULT_COLUMN_TYPES: dict[str, ColumnType] = {
    "Backlog": ColumnType.BACKLOG,
    "Todo": ColumnType.TODO,
    "In Progress": ColumnType.IN_PROGRESS,
    "Done": ColumnType.DONE,
}


class CollaboratorRole(StrEnum):
    """Project collaborator roles as the upstream names them."""

    ADMIN = "ADMIN"
    WRITER = "WRITER"
    READER = "READER"
    NONE = "NONE"


@dataclass(frozen=True)
class FieldOption:
    """One option of a single-select field."""

    id: str
    name: str
    color: str = "GRAY"
    description: str = ""


@dataclass(frozen=True)
class Field:
    """A project field. Only single-select fields carry options."""

    id: str
    name: str
    data_type: str
    options: tuple[FieldOption, ...] = ()

    @property
    def is_single_select(self) -> bool:
        return self.data_type == "SINGLE_SELECT"


@dataclass(frozen=True)
class ResolvedField:
    """The single-select field that drives column assignment."""

    field_id: str
    field_name: str
    options: tuple[FieldOption, ...]

    def option_ids(self) -> tuple[str, ...]:
        return tuple(option.id for option in self.options)


@dataclass(frozen=True)
class Label:
    id: str
    name: str
    color: str = ""
    description: str = ""


@dataclass(frozen=True)
class Collaborator:
    id: str
    role: CollaboratorRole
    project_id: str
    login: str = ""
    pending_operations: tuple[str, ...] = ()


@dataclass(frozen=True)
class Repository:
    id: str
    owner: str
    name: str
    enabled: bool = True
    project_ids: tuple[str, ...] = ()
    url: str = ""
    pending_operations: tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Column:
    """A board column backed by one option of the status field.

    `option_id` is None while the option has not been created upstream yet.
    """

    id: str
    name: str
    type: ColumnType
    field_id: str
    option_id: str | None = None
    project_id: str | None = None
    color: str = "GRAY"
    description: str = ""
    pending_operations: tuple[str, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return self.option_id is not None


@dataclass(frozen=True)
class Issue:
    """An issue as it sits on a project board.

    `id` is the project item id; `content_id` is the issue's own node id.
    `column_id` of None means the issue is unassigned.
    """

    id: str
    title: str
    content_id: str = ""
    number: int | None = None
    description: str = ""
    labels: tuple[Label, ...] = ()
    assignees: tuple[str, ...] = ()
    column_id: str | None = None
    url: str = ""
    field_values: dict[str, str] = field(default_factory=dict)
    pending_operations: tuple[str, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return not self.id.startswith(LOCAL_ID_PREFIX)


@dataclass(frozen=True)
class Project:
    id: str
    title: str
    description: str = ""
    url: str = ""
    number: int | None = None
    collaborators: tuple[Collaborator, ...] = ()
    repository_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Viewer:
    """The authenticated user."""

    id: str
    login: str
    name: str = ""
    avatar_url: str = ""


LOCAL_ID_PREFIX = "local:"


def local_id(operation_id: str) -> str:
    """Id for an entity that exists only optimistically."""
    return f"{LOCAL_ID_PREFIX}{operation_id}"


@dataclass(frozen=True)
class Board:
    """Canonical board: ordered columns, issues in upstream arrival order.

    Issues are stored once, each with a single column_id, so an issue can
    never sit in two columns.
    """

    project: Project
    columns: tuple[Column, ...] = ()
    issues: tuple[Issue, ...] = ()
    repositories: tuple[Repository, ...] = ()
    status_field: ResolvedField | None = None

    def column(self, column_id: str) -> Column | None:
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def column_for_option(self, option_id: str) -> Column | None:
        for col in self.columns:
            if col.option_id == option_id:
                return col
        return None

    def issue(self, issue_id: str) -> Issue | None:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def repository(self, repository_id: str) -> Repository | None:
        for repo in self.repositories:
            if repo.id == repository_id:
                return repo
        return None

    def collaborator(self, user_id: str) -> Collaborator | None:
        for collaborator in self.project.collaborators:
            if collaborator.id == user_id:
                return collaborator
        return None

    def issues_in(self, column_id: str | None) -> list[Issue]:
        """Issues in a column (None for the unassigned bucket), in board order."""
        return [issue for issue in self.issues if issue.column_id == column_id]

    @property
    def unassigned(self) -> list[Issue]:
        return self.issues_in(None)

    def lanes(self) -> list[tuple[Column, list[Issue]]]:
        return [(col, self.issues_in(col.id)) for col in self.columns]

    @property
    def pending_operations(self) -> set[str]:
        """Operation ids that currently tag any entity on the board."""
        ops: set[str] = set()
        for entity in (*self.columns, *self.issues, *self.repositories):
            ops.update(entity.pending_operations)
        for collaborator in self.project.collaborators:
            ops.update(collaborator.pending_operations)
        return ops
