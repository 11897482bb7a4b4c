"""Workers for concurrent reconciliation.

This package provides cancellable workers for file synchronization:
- BaseWorker: Abstract base class with cancellation support
- ReconcileWorker: Wraps ReconcilePlanner for pooled execution
- WorkerPool: Manages concurrent worker threads

Usage:
    from bucketsync.sync.workers import WorkerPool

    pool = WorkerPool(planner, max_workers=4)
    pool.start()
    pool.submit(record, on_complete=callback)
    pool.join()
    pool.stop()
"""

from bucketsync.sync.workers.base import (
    BaseWorker,
    CancelledException,
    WorkerContext,
    WorkerResult,
    WorkerState,
)
from bucketsync.sync.workers.pool import PoolState, WorkerPool, WorkerTask
from bucketsync.sync.workers.reconcile_worker import ReconcileWorker

__all__ = [
    # Base
    "BaseWorker",
    "CancelledException",
    "WorkerContext",
    "WorkerResult",
    "WorkerState",
    # Workers
    "ReconcileWorker",
    # Pool
    "PoolState",
    "WorkerPool",
    "WorkerTask",
]
