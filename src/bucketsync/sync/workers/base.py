"""Worker abstraction used by the reconcile pool.

This module provides:
- WorkerState: Lifecycle of a single worker run
- WorkerResult: Outcome of one record, success or captured error
- WorkerContext: The record handed to a worker plus its cancel probe
- BaseWorker: Runs _do_work() and turns exceptions into WorkerResult
- CancelledException: Raised by workers that notice cancellation
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from bucketsync.sync.types import FileRecord

logger = logging.getLogger(__name__)


class CancelledException(Exception):
    """Raised when a worker sees that its run was cancelled."""


class WorkerState(Enum):
    """Lifecycle of a worker."""

    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


@dataclass
class WorkerResult:
    """What happened to one record.

    Attributes:
        success: True if _do_work() returned normally.
        result: Value returned by _do_work() (the processed record).
        error: Exception raised by _do_work(), if it failed.
        cancelled: True if the record was dropped before any side effect.
        elapsed_time: Seconds spent in _do_work().
    """

    success: bool
    result: Any = None
    error: BaseException | None = None
    cancelled: bool = False
    elapsed_time: float = 0.0


@dataclass
class WorkerContext:
    """Input of a worker run.

    Attributes:
        record: File record to process.
        cancel_check: Returns True once the run has been cancelled.
    """

    record: FileRecord
    cancel_check: Callable[[], bool] = field(default=lambda: False)


class BaseWorker(ABC):
    """Base class for workers run by the pool.

    A worker never raises from execute(): failures and cancellations are
    reported in the WorkerResult, and the pool decides what they mean for
    the rest of the run. A worker instance handles one record at a time.
    """

    def __init__(self) -> None:
        self._worker_state = WorkerState.IDLE
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def worker_type(self) -> str:
        """Short name used in log messages (e.g. 'reconcile')."""

    @property
    def state(self) -> WorkerState:
        """Get the state of the last (or current) run."""
        return self._worker_state

    def execute(
        self,
        record: FileRecord,
        cancel_check: Callable[[], bool] | None = None,
    ) -> WorkerResult:
        """Process one record.

        Args:
            record: File record to process.
            cancel_check: Probe for run cancellation (never cancelled if None).

        Returns:
            WorkerResult describing success, failure or cancellation.

        Raises:
            RuntimeError: If this worker is already processing a record.
        """
        with self._lock:
            if self._worker_state == WorkerState.RUNNING:
                raise RuntimeError(f"{self.worker_type} worker: already running")
            self._worker_state = WorkerState.RUNNING

        ctx = WorkerContext(record=record, cancel_check=cancel_check or (lambda: False))
        started = time.monotonic()

        try:
            value = self._do_work(ctx)
        except CancelledException:
            self._worker_state = WorkerState.CANCELLED
            logger.debug(f"{self.worker_type} worker: cancelled {record.path}")
            return WorkerResult(
                success=False, cancelled=True, elapsed_time=time.monotonic() - started
            )
        except Exception as e:
            self._worker_state = WorkerState.FAILED
            logger.error(f"{self.worker_type} worker failed on {record.path}: {e}")
            return WorkerResult(
                success=False, error=e, elapsed_time=time.monotonic() - started
            )

        self._worker_state = WorkerState.COMPLETED
        return WorkerResult(success=True, result=value, elapsed_time=time.monotonic() - started)

    @abstractmethod
    def _do_work(self, ctx: WorkerContext) -> Any:
        """Do the work for ctx.record.

        Check ctx.cancel_check() before any side effect and raise
        CancelledException if it returns True.
        """
