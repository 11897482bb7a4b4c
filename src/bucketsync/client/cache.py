"""Local cache of uploaded fingerprints.

This module provides:
- LocalCache: JSON-file mapping of destination key -> last confirmed fingerprint

Architecture:
    The cache is never authoritative: the planner always consults remote
    metadata before deciding. The cache is loaded once at startup, updated
    as outcomes are recorded, and persisted every PERSIST_INTERVAL records
    plus once at the end of the run. A crash between two persists loses at
    most PERSIST_INTERVAL - 1 records' worth of updates.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from bucketsync.core.types import SyncState

if TYPE_CHECKING:
    from bucketsync.sync.types import SyncOutcome

logger = logging.getLogger(__name__)

# Persist after this many recorded outcomes
PERSIST_INTERVAL = 10


class LocalCache:
    """Durable mapping from destination key to fingerprint.

    Thread-safe: record() and persist() may be called from worker threads.
    """

    def __init__(self, path: Path | str, entries: dict[str, str] | None = None) -> None:
        """Initialize the cache.

        Args:
            path: Path of the JSON cache file.
            entries: Initial mapping (use load() to read it from disk).
        """
        self._path = Path(path)
        self._entries: dict[str, str] = dict(entries or {})
        self._lock = threading.RLock()

    @classmethod
    def load(cls, path: Path | str) -> LocalCache:
        """Load a cache from disk.

        A missing, unreadable or malformed file yields an empty cache.

        Args:
            path: Path of the JSON cache file.

        Returns:
            LocalCache instance.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"Starting with an empty cache ({path}): {e}")
            return cls(path)

        if not isinstance(data, dict):
            logger.debug(f"Starting with an empty cache ({path}): not a JSON object")
            return cls(path)

        entries = {str(k): str(v) for k, v in data.items() if isinstance(v, str)}
        logger.debug(f"Loaded {len(entries)} cache entries from {path}")
        return cls(path, entries)

    @property
    def path(self) -> Path:
        """Get the cache file path."""
        return self._path

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> str | None:
        """Get the cached fingerprint of a key."""
        with self._lock:
            return self._entries.get(key)

    def as_dict(self) -> dict[str, str]:
        """Get a copy of the full mapping."""
        with self._lock:
            return dict(self._entries)

    def record(self, key: str, outcome: SyncOutcome) -> None:
        """Apply a sync outcome to the cache.

        - delete: the key is removed
        - cache, or no state (simulate): nothing changes
        - otherwise: the confirmed fingerprint, if any, is stored

        Args:
            key: Destination key.
            outcome: Outcome attached by the planner or delete scanner.
        """
        state = outcome.state
        if state is None or state == SyncState.CACHE:
            return

        with self._lock:
            if state == SyncState.DELETE:
                self._entries.pop(key, None)
                return

            confirmed = outcome.confirmed_fingerprint
            if confirmed:
                self._entries[key] = confirmed

    def persist(self) -> None:
        """Write the full mapping to disk, replacing the previous file."""
        with self._lock:
            payload = json.dumps(self._entries, indent=2, sort_keys=True)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self._path)
            logger.debug(f"Persisted {len(self._entries)} cache entries to {self._path}")
