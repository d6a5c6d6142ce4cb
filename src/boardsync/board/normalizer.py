"""Normalize raw GraphQL entities into board value objects.

Each function takes one entity as decoded from the upstream JSON and returns
a frozen value object. Unknown keys are ignored. A missing required key
raises MappingError.
"""

from __future__ import annotations

import logging
from typing import Any

from boardsync.board.exceptions import MappingError
from boardsync.board.models import (
    Collaborator,
    CollaboratorRole,
    Field,
    FieldOption,
    Issue,
    Label,
    Project,
    Repository,
    Viewer,
)

logger = logging.getLogger(__name__)

SINGLE_SELECT_TYPENAME = "ProjectV2SingleSelectField"
SINGLE_SELECT_VALUE_TYPENAME = "ProjectV2ItemFieldSingleSelectValue"


def _require(raw: dict[str, Any], key: str, entity: str) -> Any:
    value = raw.get(key)
    if value is None or value == "":
        raise MappingError(entity, key, raw.get("id"))
    return value


def nodes(raw: dict[str, Any] | None, key: str) -> list[dict[str, Any]]:
    """Non-null nodes of a connection (`{nodes: [...]}`) or plain list."""
    if not raw:
        return []
    value = raw.get(key)
    if value is None:
        return []
    if isinstance(value, dict):
        value = value.get("nodes") or []
    return [node for node in value if node]


def normalize_label(raw: dict[str, Any]) -> Label:
    color = raw.get("color") or ""
    return Label(
        id=_require(raw, "id", "Label"),
        name=_require(raw, "name", "Label"),
        color=color,
        description=raw.get("description") or "",
    )


def normalize_field(raw: dict[str, Any]) -> Field:
    """Normalize a ProjectV2 field node."""
    data_type = raw.get("dataType")
    if data_type is None:
        data_type = "SINGLE_SELECT" if raw.get("__typename") == SINGLE_SELECT_TYPENAME else ""
    options = tuple(
        FieldOption(
            id=_require(option, "id", "FieldOption"),
            name=_require(option, "name", "FieldOption"),
            color=option.get("color") or "GRAY",
            description=option.get("description") or "",
        )
        for option in (raw.get("options") or [])
        if option
    )
    return Field(
        id=_require(raw, "id", "Field"),
        name=_require(raw, "name", "Field"),
        data_type=data_type,
        options=options,
    )


def _single_select_values(raw_item: dict[str, Any]) -> dict[str, str]:
    values: dict[str, str] = {}
    for value in nodes(raw_item, "fieldValues"):
        typename = value.get("__typename")
        if typename is not None and typename != SINGLE_SELECT_VALUE_TYPENAME:
            continue
        option_id = value.get("optionId")
        field_id = (value.get("field") or {}).get("id")
        if option_id and field_id:
            values[field_id] = option_id
    return values


def normalize_item(raw: dict[str, Any]) -> Issue:
    """Normalize a project item whose content is an issue."""
    item_id = _require(raw, "id", "ProjectItem")
    content = raw.get("content")
    if not content:
        raise MappingError("ProjectItem", "content", item_id)

    return Issue(
        id=item_id,
        content_id=_require(content, "id", "Issue"),
        title=_require(content, "title", "Issue"),
        number=content.get("number"),
        description=content.get("body") or "",
        labels=tuple(normalize_label(label) for label in nodes(content, "labels")),
        assignees=tuple(
            assignee["login"] for assignee in nodes(content, "assignees") if assignee.get("login")
        ),
        url=content.get("url") or "",
        field_values=_single_select_values(raw),
    )


def normalize_items(raw_items: list[dict[str, Any]]) -> list[Issue]:
    """Normalize items in order, skipping non-issues and malformed entries."""
    issues: list[Issue] = []
    for raw in raw_items:
        if not raw:
            continue
        typename = (raw.get("content") or {}).get("__typename")
        if typename is not None and typename != "Issue":
            logger.debug("Skipping project item %s with %s content", raw.get("id"), typename)
            continue
        try:
            issues.append(normalize_item(raw))
        except MappingError as e:
            logger.warning("Skipping malformed project item: %s", e)
    return issues


def normalize_collaborator(raw: dict[str, Any], project_id: str) -> Collaborator:
    """Normalize a collaborator edge (`{role, node: {id, login}}`) or flat node."""
    user = raw.get("node") or raw
    role_name = raw.get("role") or user.get("role")
    if not role_name:
        raise MappingError("Collaborator", "role", user.get("id"))
    try:
        role = CollaboratorRole(str(role_name).upper())
    except ValueError as e:
        raise MappingError("Collaborator", "role", user.get("id")) from e
    return Collaborator(
        id=_require(user, "id", "Collaborator"),
        login=user.get("login") or "",
        role=role,
        project_id=project_id,
    )


def normalize_repository(raw: dict[str, Any]) -> Repository:
    owner = (raw.get("owner") or {}).get("login")
    if not owner:
        raise MappingError("Repository", "owner", raw.get("id"))
    enabled = not raw.get("isArchived", False) and raw.get("hasIssuesEnabled", True) is not False
    return Repository(
        id=_require(raw, "id", "Repository"),
        owner=owner,
        name=_require(raw, "name", "Repository"),
        enabled=enabled,
        project_ids=tuple(node["id"] for node in nodes(raw, "projectsV2") if node.get("id")),
        url=raw.get("url") or "",
    )


def normalize_project(raw: dict[str, Any]) -> Project:
    """Normalize a ProjectV2 node. Malformed collaborators are skipped."""
    project_id = _require(raw, "id", "Project")
    collaborators: list[Collaborator] = []
    connection = raw.get("collaborators") or {}
    for edge in connection.get("edges") or connection.get("nodes") or []:
        if not edge:
            continue
        try:
            collaborators.append(normalize_collaborator(edge, project_id))
        except MappingError as e:
            logger.warning("Skipping malformed collaborator on project %s: %s", project_id, e)

    return Project(
        id=project_id,
        title=_require(raw, "title", "Project"),
        description=raw.get("shortDescription") or "",
        url=raw.get("url") or "",
        number=raw.get("number"),
        collaborators=tuple(collaborators),
        repository_ids=tuple(
            node["id"] for node in nodes(raw, "repositories") if node.get("id")
        ),
    )


def normalize_viewer(raw: dict[str, Any]) -> Viewer:
    return Viewer(
        id=_require(raw, "id", "Viewer"),
        login=_require(raw, "login", "Viewer"),
        name=raw.get("name") or "",
        avatar_url=raw.get("avatarUrl") or "",
    )
