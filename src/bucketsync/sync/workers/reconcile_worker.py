"""Reconcile worker for concurrent file reconciliation.

This module provides:
- ReconcileWorker: Worker that wraps ReconcilePlanner with cancellation support
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketsync.sync.workers.base import (
    BaseWorker,
    CancelledException,
    WorkerContext,
)

if TYPE_CHECKING:
    from bucketsync.sync.planner import ReconcilePlanner
    from bucketsync.sync.types import FileRecord


class ReconcileWorker(BaseWorker):
    """Worker reconciling one file with the bucket.

    Cancellation is only honored before the planner starts: an upload
    that is already in flight runs to completion.

    Usage:
        worker = ReconcileWorker(planner)
        result = worker.execute(record)
    """

    def __init__(self, planner: ReconcilePlanner) -> None:
        """Initialize the reconcile worker.

        Args:
            planner: Planner shared by every worker of the pool.
        """
        super().__init__()
        self._planner = planner

    @property
    def worker_type(self) -> str:
        """Return worker type name."""
        return "reconcile"

    def _do_work(self, ctx: WorkerContext) -> FileRecord:
        """Plan (and upload) the record.

        Raises:
            CancelledException: If the run was cancelled before this file started.
            SyncError: If reconciliation fails.
        """
        if ctx.cancel_check():
            raise CancelledException(f"Cancelled before start: {ctx.record.path}")
        return self._planner.plan(ctx.record)
