"""Sync pipeline orchestrating a full one-way sync run.

This module provides:
- SyncPipeline: Consumes file records, reconciles each one, records
  outcomes, then runs the remote delete scan

Flow:
    producer → SyncPipeline → ReconcilePlanner → LocalCache + reporter
                                   (stream exhausted)
                            → RemoteDeleteScanner → LocalCache + reporter

    Per file: received → fingerprinted → decided → uploaded/skipped → reported.

The delete scan only starts once the input is exhausted and every file has
been processed, so it always sees the complete set of seen keys. If any
file fails, no further file starts and the delete scan never runs. The
cache is still persisted before the error is re-raised.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from bucketsync.client.cache import PERSIST_INTERVAL, LocalCache
from bucketsync.core.types import SyncState
from bucketsync.storage import create_storage
from bucketsync.sync.planner import ReconcilePlanner
from bucketsync.sync.scanner import RemoteDeleteScanner
from bucketsync.sync.types import FileRecord, Reporter, SyncResult
from bucketsync.sync.workers.pool import WorkerPool

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bucketsync.core.config import SyncConfig, SyncSettings
    from bucketsync.storage import ObjectStore

logger = logging.getLogger(__name__)


class SyncPipeline:
    """Orchestrates planner, cache, reporter and delete scanner.

    Usage:
        pipeline = SyncPipeline(store, settings, cache=cache, reporter=reporter)
        result = pipeline.run(collect_files(folder))
    """

    def __init__(
        self,
        store: ObjectStore,
        settings: SyncSettings,
        cache: LocalCache | None = None,
        reporter: Reporter | None = None,
        controls: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Remote object store.
            settings: Reconciliation settings.
            cache: Local cache to update (optional).
            reporter: Callback receiving each processed record (optional).
            controls: Headers added to every upload.
        """
        self._store = store
        self._settings = settings
        self._cache = cache
        self._reporter = reporter
        self._planner = ReconcilePlanner(store, settings, controls)
        self._scanner = RemoteDeleteScanner(store, settings)

        self._lock = threading.Lock()
        self._seen_keys: set[str] = set()
        self._recorded = 0
        self._result = SyncResult()

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        store: ObjectStore | None = None,
        reporter: Reporter | None = None,
    ) -> SyncPipeline:
        """Build a pipeline from a complete configuration.

        The store is created from config.connect unless given, and the
        cache is loaded from config.cache_file_name.
        """
        if store is None:
            store = create_storage(config.connect.as_storage_config())
        cache = LocalCache.load(config.cache_file_name or "")
        return cls(
            store,
            config.setting,
            cache=cache,
            reporter=reporter,
            controls=config.controls,
        )

    @property
    def store(self) -> ObjectStore:
        """Get the remote store."""
        return self._store

    @property
    def cache(self) -> LocalCache | None:
        """Get the local cache."""
        return self._cache

    @property
    def seen_keys(self) -> frozenset[str]:
        """Get the destination keys processed during the last run."""
        with self._lock:
            return frozenset(self._seen_keys)

    def run(self, records: Iterable[FileRecord]) -> SyncResult:
        """Synchronize a stream of records with the bucket.

        Args:
            records: Local files; exhaustion marks the end of the stream.
                Records without contents are dropped.

        Returns:
            SyncResult with destination keys grouped by state.

        Raises:
            SyncError: If a file or the delete scan fails.
        """
        with self._lock:
            self._seen_keys = set()
            self._recorded = 0
            self._result = SyncResult()

        try:
            if self._settings.max_workers > 1:
                self._run_pooled(records)
            else:
                self._run_sequential(records)

            if self._settings.delete_removed:
                self._scanner.scan(self.seen_keys, on_delete=self._finish)
        finally:
            self._persist_cache()

        result = self._result
        logger.info(
            f"Sync complete: {len(result.created)} created, "
            f"{len(result.updated)} updated, {len(result.skipped)} skipped, "
            f"{len(result.deleted)} deleted"
        )
        return result

    def _run_sequential(self, records: Iterable[FileRecord]) -> None:
        """Process records one at a time in the calling thread."""
        for record in records:
            if record.is_null:
                continue
            record.init_outcome(self._settings.prefix)
            try:
                self._planner.plan(record)
            except Exception:
                logger.info(f"Aborting sync after failure on {record.destination_key}")
                raise
            self._finish(record)

    def _run_pooled(self, records: Iterable[FileRecord]) -> None:
        """Process records concurrently on a bounded worker pool."""
        pool = WorkerPool(self._planner, max_workers=self._settings.max_workers)
        errors: list[BaseException] = []

        def on_error(record: FileRecord, error: BaseException) -> None:
            with self._lock:
                errors.append(error)
            logger.info(f"Aborting sync after failure on {record.destination_key}")
            pool.cancel_all()

        pool.start()
        try:
            for record in records:
                if pool.is_cancelled:
                    break
                if record.is_null:
                    continue
                record.init_outcome(self._settings.prefix)
                pool.submit(record, on_complete=self._finish, on_error=on_error)
            pool.join()
        except BaseException:
            pool.cancel_all()
            raise
        finally:
            pool.stop()

        if errors:
            raise errors[0]

    def _finish(self, record: FileRecord) -> None:
        """Record a processed file: seen set, cache, result, reporter.

        Serialized by the pipeline lock, so cache writes never overlap.
        """
        with self._lock:
            key = record.destination_key or record.path
            if record.state != SyncState.DELETE:
                self._seen_keys.add(key)

            if self._cache is not None and not self._settings.simulate:
                if record.outcome is not None:
                    self._cache.record(key, record.outcome)
                self._recorded += 1
                if self._recorded % PERSIST_INTERVAL == 0:
                    self._cache.persist()

            self._result.add(record)
            if self._reporter:
                self._reporter(record)

    def _persist_cache(self) -> None:
        """Persist the cache at the end of a run (successful or not)."""
        if self._cache is None or self._settings.simulate:
            return
        with self._lock:
            self._cache.persist()
