"""BoardSession - owns one project's board and runs intents against upstream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from boardsync.board import translator
from boardsync.board.assembler import assemble_from_viewer
from boardsync.board.exceptions import (
    BoardNotLoadedError,
    ConflictResolutionNote,
    ProjectNotFoundError,
    UpstreamMutationError,
)
from boardsync.board.models import Board, CollaboratorRole
from boardsync.board.reconciler import Reconciler
from boardsync.config import BoardConfig
from boardsync.upstream.exceptions import UpstreamError
from boardsync.upstream.operations import Operation

if TYPE_CHECKING:
    from boardsync.board.translator import Intent, MutationPlan
    from boardsync.upstream.client import Transport

logger = logging.getLogger(__name__)


class ChangeKind(StrEnum):
    """Why the board changed."""

    LOADED = "loaded"
    OPTIMISTIC = "optimistic"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


@dataclass(frozen=True)
class BoardChange:
    """Notification sent to subscribers after every board change."""

    kind: ChangeKind
    board: Board | None
    operation_id: str | None = None
    intent: Intent | None = None
    error: UpstreamMutationError | None = None
    notes: tuple[ConflictResolutionNote, ...] = ()


@dataclass(frozen=True)
class OperationOutcome:
    """Final result of one operation."""

    operation_id: str
    intent: Intent
    notes: tuple[ConflictResolutionNote, ...] = ()
    error: UpstreamMutationError | None = None
    results: list[dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None


Listener = Callable[[BoardChange], None]


class OperationHandle:
    """Caller's view of an in-flight operation.

    Awaiting the handle returns the conflict notes of a committed operation
    or raises UpstreamMutationError if it was rolled back. cancel() only
    stops waiting; the operation still reconciles.
    """

    def __init__(self, operation_id: str, intent: Intent, task: asyncio.Task[OperationOutcome]):
        self.operation_id = operation_id
        self.intent = intent
        self._task = task
        self._waiters: set[asyncio.Future[OperationOutcome]] = set()

    def done(self) -> bool:
        return self._task.done()

    @property
    def outcome(self) -> OperationOutcome | None:
        """The outcome once reconciled, else None."""
        if not self._task.done() or self._task.cancelled():
            return None
        return self._task.result()

    def cancel(self) -> None:
        """Drop interest in the outcome. Pending awaits raise CancelledError."""
        for waiter in list(self._waiters):
            waiter.cancel()

    async def wait(self) -> tuple[ConflictResolutionNote, ...]:
        waiter = asyncio.shield(self._task)
        self._waiters.add(waiter)
        try:
            outcome = await waiter
        finally:
            self._waiters.discard(waiter)
        if outcome.error is not None:
            raise outcome.error
        return outcome.notes

    def __await__(self) -> Generator[Any, None, tuple[ConflictResolutionNote, ...]]:
        return self.wait().__await__()

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"<OperationHandle {self.intent} {self.operation_id} {state}>"


class BoardSession:
    """Explicit owner of one project's board.

    The board exists after load(), is replaced by each later load() and is
    discarded by close(). Intent methods must be called from a running event
    loop: they validate and apply the change optimistically before
    returning, then run the upstream mutations in a background task.
    """

    def __init__(
        self,
        transport: Transport,
        project_id: str,
        config: BoardConfig | None = None,
    ) -> None:
        self.transport = transport
        self.project_id = project_id
        self.config = config or BoardConfig()
        self._reconciler: Reconciler | None = None
        self._listeners: list[Listener] = []
        self._tasks: dict[str, asyncio.Task[OperationOutcome]] = {}

    @property
    def loaded(self) -> bool:
        return self._reconciler is not None

    @property
    def board(self) -> Board:
        """Current board including optimistic changes.

        Raises:
            BoardNotLoadedError: Before load() or after close().
        """
        return self._require_reconciler().board

    @property
    def in_flight(self) -> list[str]:
        """Operation ids still running upstream."""
        return list(self._tasks)

    # --- Lifecycle ---

    async def load(self) -> Board:
        """Fetch everything and (re)build the board.

        On a re-fetch, operations still in flight keep their optimistic
        changes on top of the new board.

        Raises:
            ProjectNotFoundError: If the viewer has no such project.
            UpstreamError: If the fetch fails; an existing board is kept.
        """
        data = await self.transport.query(Operation.GET_ALL_INITIAL_DATA)
        board = assemble_from_viewer(
            data.get("viewer") or {},
            self.project_id,
            field_name=self.config.status_field,
            column_types=self.config.column_types,
        )
        if board is None:
            raise ProjectNotFoundError(self.project_id)

        if self._reconciler is None:
            self._reconciler = Reconciler(board)
        else:
            self._reconciler.replace(board)
        logger.info(
            "Loaded board for %s: %d column(s), %d issue(s)",
            self.project_id,
            len(board.columns),
            len(board.issues),
        )
        self._notify(BoardChange(ChangeKind.LOADED, self.board))
        return self.board

    async def drain(self) -> None:
        """Wait until every in-flight operation has reconciled."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def close(self, drain: bool = True) -> None:
        """Discard the board.

        Args:
            drain: Wait for in-flight operations first; otherwise cancel them.
        """
        if drain:
            await self.drain()
        else:
            for task in list(self._tasks.values()):
                task.cancel()
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._reconciler = None
        self._notify(BoardChange(ChangeKind.CLOSED, None))
        self._listeners.clear()
        logger.info("Closed board session for %s", self.project_id)

    # --- Subscribers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: BoardChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Board listener failed on %s", change.kind)

    # --- Intents ---

    def add_column(
        self, name: str, color: str = "GRAY", description: str = ""
    ) -> OperationHandle:
        return self._start(
            translator.add_column(
                self.board, name, color, description, column_types=self.config.column_types
            )
        )

    def delete_column(self, column_id: str) -> OperationHandle:
        return self._start(translator.delete_column(self.board, column_id))

    def move_issue(self, issue_id: str, column_id: str | None) -> OperationHandle:
        return self._start(translator.move_issue(self.board, issue_id, column_id))

    def create_issue(
        self,
        repository_id: str,
        title: str,
        body: str = "",
        column_id: str | None = None,
    ) -> OperationHandle:
        return self._start(
            translator.create_issue(self.board, repository_id, title, body, column_id)
        )

    def delete_issue(self, issue_id: str) -> OperationHandle:
        return self._start(translator.delete_issue(self.board, issue_id))

    def update_project(
        self, title: str | None = None, description: str | None = None
    ) -> OperationHandle:
        return self._start(translator.update_project(self.board, title, description))

    def add_collaborator(
        self, user_id: str, role: CollaboratorRole, login: str = ""
    ) -> OperationHandle:
        return self._start(translator.add_collaborator(self.board, user_id, role, login))

    def remove_collaborator(self, user_id: str) -> OperationHandle:
        return self._start(translator.remove_collaborator(self.board, user_id))

    def link_repository(self, repository_id: str) -> OperationHandle:
        return self._start(translator.link_repository(self.board, repository_id))

    def disable_repository(self, repository_id: str) -> OperationHandle:
        return self._start(translator.disable_repository(self.board, repository_id))

    def enable_repository(self, repository_id: str) -> OperationHandle:
        return self._start(translator.enable_repository(self.board, repository_id))

    # --- Execution ---

    def _require_reconciler(self) -> Reconciler:
        if self._reconciler is None:
            raise BoardNotLoadedError(f"No board loaded for project '{self.project_id}'")
        return self._reconciler

    def _start(self, plan: MutationPlan) -> OperationHandle:
        loop = asyncio.get_running_loop()
        self._require_reconciler().begin(plan)
        self._notify(
            BoardChange(ChangeKind.OPTIMISTIC, self.board, plan.operation_id, plan.intent)
        )
        task = loop.create_task(
            self._run(plan), name=f"boardsync-{plan.intent}-{plan.operation_id[:8]}"
        )
        self._tasks[plan.operation_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(plan.operation_id, None))
        return OperationHandle(plan.operation_id, plan.intent, task)

    async def _run(self, plan: MutationPlan) -> OperationOutcome:
        results: list[dict[str, Any]] = []
        try:
            for step in plan.steps:
                variables = translator.resolve_variables(step.variables, results)
                results.append(await self.transport.mutate(step.operation, variables))
        except (UpstreamError, LookupError) as e:
            return self._rollback(plan, e, results)
        except Exception as e:
            logger.exception("Unexpected failure running %s", plan.operation_id)
            return self._rollback(plan, e, results)

        reconciler = self._require_reconciler()
        snapshots = translator.read_snapshots(plan, results, reconciler.board)
        notes = tuple(reconciler.succeed(plan.operation_id, snapshots))
        logger.info("%s %s committed", plan.intent, plan.entity_id or "")
        self._notify(
            BoardChange(
                ChangeKind.COMMITTED, self.board, plan.operation_id, plan.intent, notes=notes
            )
        )
        return OperationOutcome(plan.operation_id, plan.intent, notes=notes, results=results)

    def _rollback(
        self, plan: MutationPlan, cause: BaseException, results: list[dict[str, Any]]
    ) -> OperationOutcome:
        error = self._require_reconciler().fail(plan.operation_id, cause, len(results))
        self._notify(
            BoardChange(
                ChangeKind.ROLLED_BACK, self.board, plan.operation_id, plan.intent, error=error
            )
        )
        return OperationOutcome(plan.operation_id, plan.intent, error=error, results=results)
