"""Worker pool for concurrent reconciliation.

This module provides:
- WorkerPool: Manages a bounded pool of reconcile worker threads
- WorkerTask: One file record waiting in the pool queue

Guarantees:
- The task queue is bounded, so submit() blocks the producer when the
  workers fall behind.
- Tasks on the same destination key never overlap: each key's
  head-then-put runs under a per-key lock.
- join() returns only once every submitted task has finished.
- After cancel_all(), queued tasks are dropped without starting.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from bucketsync.sync.workers.reconcile_worker import ReconcileWorker

if TYPE_CHECKING:
    from collections.abc import Callable

    from bucketsync.sync.planner import ReconcilePlanner
    from bucketsync.sync.types import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class PoolState(Enum):
    """State of the worker pool."""

    STOPPED = auto()
    RUNNING = auto()
    STOPPING = auto()


@dataclass
class WorkerTask:
    """A task to be executed by the worker pool.

    Attributes:
        record: The file record to reconcile.
        on_complete: Callback receiving the processed record.
        on_error: Callback receiving the record and the exception.
    """

    record: FileRecord
    on_complete: Callable[[FileRecord], None] | None = None
    on_error: Callable[[FileRecord, BaseException], None] | None = None
    cancel_requested: bool = field(default=False)

    def request_cancel(self) -> None:
        """Request cancellation of this task."""
        self.cancel_requested = True


class WorkerPool:
    """Pool of reconcile workers.

    Usage:
        pool = WorkerPool(planner, max_workers=4)
        pool.start()
        for record in records:
            pool.submit(record, on_complete=handle, on_error=fail)
        pool.join()
        pool.stop()
    """

    def __init__(
        self,
        planner: ReconcilePlanner,
        max_workers: int = DEFAULT_MAX_WORKERS,
        queue_size: int | None = None,
    ) -> None:
        """Initialize the worker pool.

        Args:
            planner: Planner used by every worker.
            max_workers: Number of worker threads.
            queue_size: Maximum queued tasks (defaults to 2 * max_workers).
        """
        self._planner = planner
        self._max_workers = max(max_workers, 1)

        self._pool_state = PoolState.STOPPED
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

        self._task_queue: queue.Queue[WorkerTask | None] = queue.Queue(
            maxsize=queue_size or self._max_workers * 2
        )

        # Active tasks by destination key, and one lock per key
        self._active_tasks: dict[str, WorkerTask] = {}
        self._key_locks: dict[str, threading.Lock] = {}

        self._workers: list[threading.Thread] = []

        # Counters, updated by worker threads
        self._completed_count = 0
        self._error_count = 0
        self._cancelled_count = 0

    @property
    def state(self) -> PoolState:
        """Get current pool state."""
        return self._pool_state

    @property
    def completed_count(self) -> int:
        """Get number of completed tasks."""
        return self._completed_count

    @property
    def error_count(self) -> int:
        """Get number of failed tasks."""
        return self._error_count

    @property
    def cancelled_count(self) -> int:
        """Get number of tasks dropped after cancel_all()."""
        return self._cancelled_count

    @property
    def is_cancelled(self) -> bool:
        """Check if cancel_all() was called."""
        return self._cancelled.is_set()

    def start(self) -> None:
        """Start the worker threads."""
        with self._lock:
            if self._pool_state != PoolState.STOPPED:
                logger.warning("Worker pool already running")
                return

            self._pool_state = PoolState.RUNNING
            self._cancelled.clear()

            for i in range(self._max_workers):
                thread = threading.Thread(
                    target=self._worker_loop,
                    name=f"reconcile-{i}",
                    daemon=True,
                )
                thread.start()
                self._workers.append(thread)

            logger.debug(f"Worker pool started with {self._max_workers} workers")

    def submit(
        self,
        record: FileRecord,
        on_complete: Callable[[FileRecord], None] | None = None,
        on_error: Callable[[FileRecord, BaseException], None] | None = None,
    ) -> bool:
        """Submit a record, blocking while the queue is full.

        Returns:
            True if the task was queued, False if the pool is not running
            or was cancelled.
        """
        if self._pool_state != PoolState.RUNNING or self._cancelled.is_set():
            return False

        task = WorkerTask(record=record, on_complete=on_complete, on_error=on_error)
        self._task_queue.put(task)
        logger.debug(f"Task submitted: {record.path}")
        return True

    def cancel_all(self) -> None:
        """Drop queued tasks and refuse new ones. In-flight tasks finish."""
        self._cancelled.set()
        with self._lock:
            for task in self._active_tasks.values():
                task.request_cancel()

    def join(self) -> None:
        """Wait until every submitted task has been processed."""
        self._task_queue.join()

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the worker threads.

        Args:
            timeout: Maximum time to wait for workers to finish.
        """
        with self._lock:
            if self._pool_state == PoolState.STOPPED:
                return
            self._pool_state = PoolState.STOPPING
            workers = list(self._workers)

        # Poison pills stop the workers once the queue is drained
        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.join(timeout=timeout / len(workers))

        with self._lock:
            self._pool_state = PoolState.STOPPED
            self._workers.clear()
            logger.debug("Worker pool stopped")

    def _key_lock(self, key: str) -> threading.Lock:
        """Get the lock serializing work on one destination key."""
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _worker_loop(self) -> None:
        """Main loop for worker threads."""
        while True:
            task = self._task_queue.get()
            try:
                if task is None:
                    break
                self._process_task(task)
            except Exception:
                logger.exception("Unexpected error in worker loop")
            finally:
                self._task_queue.task_done()

    def _process_task(self, task: WorkerTask) -> None:
        """Process a single task.

        Args:
            task: The task to process.
        """
        record = task.record
        key = record.destination_key or record.path

        if self._cancelled.is_set():
            with self._lock:
                self._cancelled_count += 1
            logger.debug(f"Dropping cancelled task: {key}")
            return

        with self._key_lock(key):
            with self._lock:
                self._active_tasks[key] = task
            try:
                worker = ReconcileWorker(self._planner)
                result = worker.execute(
                    record,
                    cancel_check=lambda: task.cancel_requested or self._cancelled.is_set(),
                )
            finally:
                with self._lock:
                    self._active_tasks.pop(key, None)

        error = result.error
        if result.success and task.on_complete:
            # Bookkeeping failures (cache, reporter) fail the task too
            try:
                task.on_complete(record)
            except Exception as e:
                error = e

        with self._lock:
            if result.cancelled:
                self._cancelled_count += 1
            elif error is None:
                self._completed_count += 1
            else:
                self._error_count += 1

        if error is not None and task.on_error:
            task.on_error(record, error)
