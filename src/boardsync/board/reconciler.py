"""Reconciler - folds mutation outcomes back into the canonical board.

The reconciler keeps three things:

- the base board: the last state known to match upstream, plus every
  committed operation;
- the pending log: optimistic deltas of in-flight operations, keyed by
  operation id and ordered by initiation;
- a version map recording, for each field written into the base, the
  initiation sequence of the operation that wrote it.

The visible board is the base with the pending deltas replayed in order;
a pending delta never overwrites a field a later-initiated operation has
already committed.
Success commits an operation's delta into the base, skipping fields a
later-initiated operation has already committed. Failure drops the delta
from the log, which undoes exactly the fields that operation touched and
nothing else.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from boardsync.board.deltas import EntitySnapshot, FieldKey, apply_snapshot
from boardsync.board.exceptions import ConflictResolutionNote, UpstreamMutationError
from boardsync.board.models import Board
from boardsync.board.translator import MutationPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingOperation:
    """An operation whose optimistic delta is applied but not yet confirmed."""

    plan: MutationPlan
    sequence: int

    @property
    def operation_id(self) -> str:
        return self.plan.operation_id


class UnknownOperationError(KeyError):
    """Operation id was never begun or has already been reconciled."""


class Reconciler:
    """Owns the canonical board between full re-fetches."""

    def __init__(self, board: Board) -> None:
        self._base = board
        self._pending: dict[str, PendingOperation] = {}
        self._versions: dict[FieldKey, int] = {}
        self._sequence = itertools.count(1)
        self._view: Board | None = None

    @property
    def board(self) -> Board:
        """Current board including optimistic changes."""
        if self._view is None:
            view = self._base
            for pending in self._pending.values():
                delta = pending.plan.delta
                skip = self._superseded(pending, delta.touches())
                view = delta.apply(view, pending.operation_id, skip=skip)
            self._view = view
        return self._view

    @property
    def base(self) -> Board:
        """Board with committed changes only."""
        return self._base

    @property
    def pending(self) -> list[PendingOperation]:
        """In-flight operations in initiation order."""
        return list(self._pending.values())

    def is_pending(self, operation_id: str) -> bool:
        return operation_id in self._pending

    def begin(self, plan: MutationPlan) -> PendingOperation:
        """Register an operation and apply its delta optimistically."""
        if plan.operation_id in self._pending:
            raise ValueError(f"Operation {plan.operation_id} is already pending")
        pending = PendingOperation(plan=plan, sequence=next(self._sequence))
        self._pending[plan.operation_id] = pending
        # Appending to the log only needs the new delta on top of the view.
        if self._view is not None:
            self._view = plan.delta.apply(self._view, plan.operation_id)
        logger.debug(
            "Began %s #%d (%s) on %s",
            plan.intent,
            pending.sequence,
            plan.operation_id,
            plan.entity_id,
        )
        return pending

    def succeed(
        self, operation_id: str, snapshots: Iterable[EntitySnapshot] = ()
    ) -> list[ConflictResolutionNote]:
        """Commit an operation and merge the authoritative snapshots it returned.

        Fields last committed by a later-initiated operation are left alone
        and reported as notes.
        """
        pending = self._take(operation_id)
        notes: list[ConflictResolutionNote] = []

        stale = self._stale_keys(pending, pending.plan.delta.touches(), notes)
        base = pending.plan.delta.apply(self._base, skip=stale)
        self._record(pending, pending.plan.delta.touches() - stale)

        for snapshot in snapshots:
            snapshot_stale = self._stale_keys(pending, snapshot.keys(), notes)
            base = apply_snapshot(base, snapshot, skip=snapshot_stale)
            self._record(pending, snapshot.keys() - snapshot_stale)
            if "id" in snapshot.values and snapshot.values["id"] != snapshot.entity_id:
                self._rekey(snapshot.entity, snapshot.entity_id, snapshot.values["id"])

        self._base = base
        self._view = None
        for note in notes:
            logger.info("%s", note)
        logger.debug("Committed %s #%d (%s)", pending.plan.intent, pending.sequence, operation_id)
        return notes

    def fail(
        self, operation_id: str, cause: BaseException, completed_steps: int = 0
    ) -> UpstreamMutationError:
        """Roll back an operation's optimistic delta and describe the failure.

        Other pending operations keep their deltas.
        """
        pending = self._take(operation_id)
        self._view = None
        error = UpstreamMutationError(
            operation_id=operation_id,
            intent=str(pending.plan.intent),
            entity_id=pending.plan.entity_id,
            delta=pending.plan.delta,
            cause=cause,
            completed_steps=completed_steps,
        )
        logger.warning("Rolled back %s: %s", pending.plan.delta.describe(), error)
        return error

    def replace(self, board: Board) -> None:
        """Install a freshly assembled board as the new base.

        Pending operations stay in the log and replay on top of it; they
        are still owed a succeed() or fail().
        """
        self._base = board
        self._versions.clear()
        self._view = None
        logger.debug("Base board replaced; %d operation(s) still pending", len(self._pending))

    def _take(self, operation_id: str) -> PendingOperation:
        try:
            return self._pending.pop(operation_id)
        except KeyError:
            raise UnknownOperationError(operation_id) from None

    def _stale_keys(
        self,
        pending: PendingOperation,
        keys: Iterable[FieldKey],
        notes: list[ConflictResolutionNote],
    ) -> frozenset[FieldKey]:
        stale = self._superseded(pending, keys)
        for key in sorted(stale):
            notes.append(
                ConflictResolutionNote(
                    operation_id=pending.operation_id,
                    winning_sequence=self._versions[key],
                    entity=key[0],
                    entity_id=key[1],
                    field=key[2],
                )
            )
        return stale

    def _superseded(
        self, pending: PendingOperation, keys: Iterable[FieldKey]
    ) -> frozenset[FieldKey]:
        """Keys a later-initiated operation has committed since `pending` began."""
        return frozenset(key for key in keys if self._versions.get(key, 0) > pending.sequence)

    def _record(self, pending: PendingOperation, keys: Iterable[FieldKey]) -> None:
        for key in keys:
            if self._versions.get(key, 0) < pending.sequence:
                self._versions[key] = pending.sequence

    def _rekey(self, entity: str, old_id: str, new_id: str) -> None:
        for key in [k for k in self._versions if k[0] == entity and k[1] == old_id]:
            self._versions[(entity, new_id, key[2])] = self._versions.pop(key)
