"""REST API for boardsync."""

from boardsync.api.app import app, create_app
from boardsync.api.models import (
    APIResponse,
    BoardResponse,
    OperationResponse,
)

__all__ = [
    "APIResponse",
    "BoardResponse",
    "OperationResponse",
    "app",
    "create_app",
]
