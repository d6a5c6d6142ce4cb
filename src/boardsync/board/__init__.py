"""Board - canonical kanban board state for a GitHub project.

BoardSession lives in boardsync.board.session.
"""

from boardsync.board.assembler import assemble_board, assemble_from_viewer, flatten_board
from boardsync.board.exceptions import (
    AmbiguousFieldError,
    BoardError,
    BoardNotLoadedError,
    ConflictResolutionNote,
    MappingError,
    ProjectNotFoundError,
    UnresolvedColumnError,
    UnresolvedIssueError,
    UpstreamMutationError,
)
from boardsync.board.models import (
    Board,
    Collaborator,
    CollaboratorRole,
    Column,
    ColumnType,
    Issue,
    Project,
    Repository,
)
from boardsync.board.reconciler import Reconciler
from boardsync.board.translator import Intent, MutationPlan

__all__ = [
    "AmbiguousFieldError",
    "Board",
    "BoardError",
    "BoardNotLoadedError",
    "Collaborator",
    "CollaboratorRole",
    "Column",
    "ColumnType",
    "ConflictResolutionNote",
    "Intent",
    "Issue",
    "MappingError",
    "MutationPlan",
    "Project",
    "ProjectNotFoundError",
    "Reconciler",
    "Repository",
    "UnresolvedColumnError",
    "UnresolvedIssueError",
    "UpstreamMutationError",
    "assemble_board",
    "assemble_from_viewer",
    "flatten_board",
]
