"""Unit tests for EventManager and board change events."""

import json

import pytest

from boardsync.api.events import Event, EventManager, EventType
from boardsync.board import translator
from boardsync.board.assembler import assemble_from_viewer
from boardsync.board.exceptions import ConflictResolutionNote, UpstreamMutationError
from boardsync.board.models import Board
from boardsync.board.session import BoardChange, ChangeKind
from boardsync.board.translator import Intent
from boardsync.upstream.exceptions import UpstreamGraphQLError


@pytest.fixture
def event_manager() -> EventManager:
    """Create an EventManager instance."""
    return EventManager()


@pytest.fixture
def board(viewer_payload: dict) -> Board:
    return assemble_from_viewer(viewer_payload["viewer"], "PVT_1")


def _drain(subscriber) -> list[Event]:
    events = []
    while not subscriber.queue.empty():
        events.append(subscriber.queue.get_nowait())
    return events


@pytest.mark.unit
class TestEventManagerSubscribe:
    def test_subscribe_and_unsubscribe(self, event_manager: EventManager) -> None:
        subscriber = event_manager.subscribe(project_id="PVT_1")
        assert subscriber.project_id == "PVT_1"
        assert event_manager.subscriber_count == 1

        event_manager.unsubscribe(subscriber.id)
        event_manager.unsubscribe("nonexistent-id")

        assert event_manager.subscriber_count == 0

    def test_emit_filters_by_project(self, event_manager: EventManager) -> None:
        everything = event_manager.subscribe()
        roadmap = event_manager.subscribe(project_id="PVT_1")
        other = event_manager.subscribe(project_id="PVT_2")

        event_manager.emit_sync(Event(EventType.BOARD_CHANGED, {"x": 1}, project_id="PVT_1"))

        assert everything.queue.qsize() == 1
        assert roadmap.queue.qsize() == 1
        assert other.queue.empty()

    def test_to_sse(self) -> None:
        event = Event(EventType.OPERATION_COMPLETED, {"operation_id": "op1"}, "PVT_1")

        sse = event.to_sse()

        assert sse.startswith("event: operation_completed\n")
        assert json.loads(sse.split("data: ", 1)[1]) == {"operation_id": "op1"}
        assert sse.endswith("\n\n")

    def test_heartbeat(self, event_manager: EventManager) -> None:
        event = event_manager.create_heartbeat_event()

        assert event.event_type is EventType.HEARTBEAT
        assert event.project_id is None
        assert event.data["timestamp"].endswith("Z")


@pytest.mark.unit
class TestEmitBoardChange:
    """Session notifications become SSE events."""

    def test_loaded(self, event_manager: EventManager, board: Board) -> None:
        subscriber = event_manager.subscribe()

        event_manager.emit_board_change("PVT_1", BoardChange(ChangeKind.LOADED, board))

        (event,) = _drain(subscriber)
        assert event.event_type is EventType.BOARD_LOADED
        assert event.data == {
            "project_id": "PVT_1",
            "kind": "loaded",
            "columns": 3,
            "issues": 3,
            "pending_operations": [],
        }

    def test_committed_with_conflicts(self, event_manager: EventManager, board: Board) -> None:
        subscriber = event_manager.subscribe(project_id="PVT_1")
        note = ConflictResolutionNote("op1", 2, "issue", "ITEM_2", "column_id")

        event_manager.emit_board_change(
            "PVT_1",
            BoardChange(
                ChangeKind.COMMITTED,
                board,
                operation_id="op1",
                intent=Intent.MOVE_ISSUE,
                notes=(note,),
            ),
        )

        events = _drain(subscriber)
        assert [e.event_type for e in events] == [
            EventType.BOARD_CHANGED,
            EventType.OPERATION_COMPLETED,
            EventType.CONFLICT_RESOLVED,
        ]
        assert events[0].data["intent"] == "move_issue"
        assert events[1].data["conflicts"] == 1
        assert events[2].data["winning_sequence"] == 2

    def test_rolled_back(self, event_manager: EventManager, board: Board) -> None:
        subscriber = event_manager.subscribe()
        plan = translator.move_issue(board, "ITEM_2", "OPT_DONE", operation_id="op1")
        error = UpstreamMutationError(
            "op1",
            plan.intent,
            "ITEM_2",
            plan.delta,
            UpstreamGraphQLError("UpdateIssueStatus", [{"message": "forbidden"}]),
        )

        event_manager.emit_board_change(
            "PVT_1",
            BoardChange(
                ChangeKind.ROLLED_BACK, board, operation_id="op1", intent=plan.intent, error=error
            ),
        )

        events = _drain(subscriber)
        assert [e.event_type for e in events] == [
            EventType.BOARD_CHANGED,
            EventType.OPERATION_FAILED,
        ]
        failed = events[1].data
        assert failed["entity_id"] == "ITEM_2"
        assert failed["completed_steps"] == 0
        assert "forbidden" in failed["error"]
        assert failed["delta"] == {
            "kind": "MoveIssue",
            "touches": [["issue", "ITEM_2", "column_id"]],
        }
        json.dumps(failed)

    def test_closed(self, event_manager: EventManager) -> None:
        subscriber = event_manager.subscribe()

        event_manager.emit_board_change("PVT_1", BoardChange(ChangeKind.CLOSED, None))

        (event,) = _drain(subscriber)
        assert event.event_type is EventType.BOARD_CLOSED
        assert "columns" not in event.data
