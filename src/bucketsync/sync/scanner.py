"""Remote deletion scan.

This module provides:
- RemoteDeleteScanner: Deletes remote objects with no local counterpart

The scan runs once, after every local file has been processed, so the set
of seen keys it receives is complete.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bucketsync.sync.types import FileRecord, RemoteTransportError
from bucketsync.sync.whitelist import Whitelist

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from bucketsync.core.config import SyncSettings
    from bucketsync.storage import ObjectStore

logger = logging.getLogger(__name__)


class RemoteDeleteScanner:
    """Lists the bucket prefix and deletes keys not seen during the run.

    Usage:
        scanner = RemoteDeleteScanner(store, settings)
        deleted = scanner.scan(seen_keys, on_delete=reporter)
    """

    def __init__(self, store: ObjectStore, settings: SyncSettings) -> None:
        """Initialize the scanner.

        Args:
            store: Remote object store.
            settings: Sync settings (prefix, whitelist, simulate).
        """
        self._store = store
        self._settings = settings
        self._whitelist = Whitelist(settings.whitelisted_files)

    def find_candidates(self, seen_keys: Collection[str]) -> list[str]:
        """List remote keys that should be deleted.

        Args:
            seen_keys: Destination keys of every local file of this run.

        Returns:
            Keys under the prefix, not seen and not whitelisted.

        Raises:
            RemoteTransportError: If listing fails.
            WhitelistTypeError: If a whitelist rule is invalid.
        """
        # The prefix is a path segment: "static" must not list "static-backup/"
        prefix = self._settings.prefix.rstrip("/")
        if prefix:
            prefix += "/"
        try:
            remote_keys = self._store.list(prefix)
        except Exception as e:
            raise RemoteTransportError(prefix, "list", e) from e

        candidates: list[str] = []
        for key in remote_keys:
            if not key.startswith(prefix) or key in seen_keys:
                continue
            if self._whitelist.is_protected(key):
                logger.debug(f"Keeping whitelisted key: {key}")
                continue
            candidates.append(key)
        return candidates

    def scan(
        self,
        seen_keys: Collection[str],
        on_delete: Callable[[FileRecord], None] | None = None,
    ) -> list[FileRecord]:
        """Delete remote objects that no longer exist locally.

        One delete record is handed to on_delete per candidate before the
        single batched delete call is made. In simulate mode the records
        are produced but nothing is deleted.

        Args:
            seen_keys: Destination keys of every local file of this run.
            on_delete: Optional callback receiving each delete record.

        Returns:
            The delete records.

        Raises:
            RemoteTransportError: If listing or deleting fails.
            WhitelistTypeError: If a whitelist rule is invalid.
        """
        candidates = self.find_candidates(seen_keys)

        records = [FileRecord.deleted(key) for key in candidates]
        if on_delete:
            for record in records:
                on_delete(record)

        if not candidates:
            logger.debug("No remote objects to delete")
            return records

        if self._settings.simulate:
            logger.info(f"Simulate: would delete {len(candidates)} remote object(s)")
            return records

        try:
            self._store.delete_multi(candidates, quiet=True)
        except Exception as e:
            raise RemoteTransportError(", ".join(candidates), "delete", e) from e

        logger.info(f"Deleted {len(candidates)} remote object(s)")
        return records
