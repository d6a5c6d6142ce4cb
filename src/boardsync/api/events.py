"""Event manager for Server-Sent Events (SSE)."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from boardsync.api.models import delta_to_response
from boardsync.board.session import ChangeKind

if TYPE_CHECKING:
    from boardsync.board.session import BoardChange


class EventType(str, Enum):
    """Types of events that can be emitted."""

    BOARD_LOADED = "board_loaded"
    BOARD_CHANGED = "board_changed"
    BOARD_CLOSED = "board_closed"
    OPERATION_COMPLETED = "operation_completed"
    OPERATION_FAILED = "operation_failed"
    CONFLICT_RESOLVED = "conflict_resolved"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    """An event to be sent via SSE."""

    event_type: EventType
    data: dict[str, Any]
    project_id: str | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    queue: asyncio.Queue[Event]
    project_id: str | None = None  # None means subscribe to all projects

    @classmethod
    def create(cls, project_id: str | None = None) -> Subscriber:
        """Create a new subscriber."""
        return cls(id=str(uuid4()), queue=asyncio.Queue(), project_id=project_id)


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class EventManager:
    """Manager for SSE events."""

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: int = 30  # seconds

    def subscribe(self, project_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            project_id: Optional project ID to filter events. None means all projects.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(project_id)
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        self._subscribers.pop(subscriber_id, None)

    def emit_sync(self, event: Event) -> None:
        """Queue an event for every matching subscriber without awaiting."""
        for subscriber in self._subscribers.values():
            if subscriber.project_id is None or subscriber.project_id == event.project_id:
                subscriber.queue.put_nowait(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit_board_change(self, project_id: str, change: BoardChange) -> None:
        """Translate a session change notification into SSE events.

        Every change yields a board event. Reconciled operations also yield
        an outcome event, plus one conflict event per discarded field.
        """
        board = change.board
        board_data: dict[str, Any] = {"project_id": project_id, "kind": change.kind.value}
        if change.operation_id is not None:
            board_data["operation_id"] = change.operation_id
            board_data["intent"] = str(change.intent)
        if board is not None:
            board_data["columns"] = len(board.columns)
            board_data["issues"] = len(board.issues)
            board_data["pending_operations"] = sorted(board.pending_operations)

        if change.kind is ChangeKind.LOADED:
            board_type = EventType.BOARD_LOADED
        elif change.kind is ChangeKind.CLOSED:
            board_type = EventType.BOARD_CLOSED
        else:
            board_type = EventType.BOARD_CHANGED
        self.emit_sync(Event(event_type=board_type, project_id=project_id, data=board_data))

        if change.kind is ChangeKind.COMMITTED:
            self.emit_sync(
                Event(
                    event_type=EventType.OPERATION_COMPLETED,
                    project_id=project_id,
                    data={
                        "operation_id": change.operation_id,
                        "intent": str(change.intent),
                        "conflicts": len(change.notes),
                    },
                )
            )
            for note in change.notes:
                self.emit_sync(
                    Event(
                        event_type=EventType.CONFLICT_RESOLVED,
                        project_id=project_id,
                        data={
                            "operation_id": note.operation_id,
                            "winning_sequence": note.winning_sequence,
                            "entity": note.entity,
                            "entity_id": note.entity_id,
                            "field": note.field,
                        },
                    )
                )
        elif change.kind is ChangeKind.ROLLED_BACK and change.error is not None:
            error = change.error
            self.emit_sync(
                Event(
                    event_type=EventType.OPERATION_FAILED,
                    project_id=project_id,
                    data={
                        "operation_id": error.operation_id,
                        "intent": error.intent,
                        "entity_id": error.entity_id,
                        "completed_steps": error.completed_steps,
                        "delta": delta_to_response(error.delta).model_dump(),
                        "error": str(error.cause),
                        "timestamp": _now(),
                    },
                )
            )

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            project_id=None,  # Heartbeat goes to all subscribers
            data={"timestamp": _now()},
        )
