"""Sync operations for one-way bucket synchronization.

Architecture:
    collect_files → SyncPipeline → ReconcilePlanner → LocalCache / reporter
                                 → RemoteDeleteScanner (after the last file)

Components:
- **collect_files**: Walks a directory and yields FileRecord objects
- **SyncPipeline**: Orchestrates a run, sequentially or on a WorkerPool
- **ReconcilePlanner**: Decides create/update/skip and uploads
- **RemoteDeleteScanner**: Deletes remote objects with no local counterpart
- **Whitelist**: Protects remote keys from deletion
- **IgnorePatterns**: Excludes local paths from collection

All public symbols are re-exported here.
"""

from bucketsync.sync.collector import collect_files
from bucketsync.sync.ignore import DEFAULT_IGNORE_PATTERNS, IgnorePatterns
from bucketsync.sync.pipeline import SyncPipeline
from bucketsync.sync.planner import ReconcilePlanner
from bucketsync.sync.scanner import RemoteDeleteScanner
from bucketsync.sync.types import (
    FileRecord,
    RemoteTransportError,
    Reporter,
    SyncError,
    SyncOutcome,
    SyncResult,
    UnsupportedInputError,
    WhitelistTypeError,
    make_destination_key,
)
from bucketsync.sync.whitelist import Whitelist
from bucketsync.sync.workers import WorkerPool

__all__ = [
    # Types and dataclasses
    "FileRecord",
    "Reporter",
    "SyncOutcome",
    "SyncResult",
    "make_destination_key",
    # Errors
    "RemoteTransportError",
    "SyncError",
    "UnsupportedInputError",
    "WhitelistTypeError",
    # Components
    "RemoteDeleteScanner",
    "ReconcilePlanner",
    "SyncPipeline",
    "Whitelist",
    "WorkerPool",
    # Collection
    "DEFAULT_IGNORE_PATTERNS",
    "IgnorePatterns",
    "collect_files",
]
