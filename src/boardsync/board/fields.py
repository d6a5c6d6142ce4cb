"""Resolve which project field drives the board columns."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from boardsync.board.exceptions import AmbiguousFieldError
from boardsync.board.models import (
    DEFAULT_COLUMN_TYPES,
    Column,
    ColumnType,
    Field,
    ResolvedField,
)


def resolve_status_field(fields: Iterable[Field], field_name: str = "Status") -> ResolvedField:
    """Find the single-select field named `field_name`.

    The match is exact. Zero or several matches raise AmbiguousFieldError;
    the caller must not guess.
    """
    candidates = [f for f in fields if f.is_single_select and f.name == field_name]
    if len(candidates) != 1:
        raise AmbiguousFieldError(field_name, [f.id for f in candidates])

    status = candidates[0]
    return ResolvedField(field_id=status.id, field_name=status.name, options=status.options)


def column_type_for(
    option_name: str,
    table: Mapping[str, ColumnType] = DEFAULT_COLUMN_TYPES,
) -> ColumnType:
    """Column type for an option name; unknown names fall back to BACKLOG."""
    return table.get(option_name, ColumnType.BACKLOG)


def columns_for(
    resolved: ResolvedField,
    project_id: str | None = None,
    table: Mapping[str, ColumnType] = DEFAULT_COLUMN_TYPES,
) -> list[Column]:
    """One column per option, in option order."""
    return [
        Column(
            id=option.id,
            name=option.name,
            type=column_type_for(option.name, table),
            field_id=resolved.field_id,
            option_id=option.id,
            project_id=project_id,
            color=option.color,
            description=option.description,
        )
        for option in resolved.options
    ]
