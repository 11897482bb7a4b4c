"""Per-file reconciliation between a local file and the bucket.

This module provides:
- ReconcilePlanner: Fingerprints a file, checks remote metadata and uploads
  when needed

Decision rules:
    | Remote object | create_only | force | ETag matches | State  | Upload |
    |---------------|-------------|-------|--------------|--------|--------|
    | absent        | any         | any   | -            | create | yes    |
    | present       | True        | any   | any          | skip   | no     |
    | present       | False       | False | yes          | skip   | no     |
    | present       | False       | False | no           | update | yes    |
    | present       | False       | True  | any          | update | yes    |

    create_only never compares fingerprints: a changed file that already
    exists remotely is left as is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bucketsync.core.identity import content_type, etags_match, fingerprint
from bucketsync.core.types import SyncState
from bucketsync.storage import ObjectNotFoundError
from bucketsync.sync.types import (
    FileRecord,
    RemoteTransportError,
    UnsupportedInputError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bucketsync.core.config import SyncSettings
    from bucketsync.storage import ObjectStore, RemoteObject

logger = logging.getLogger(__name__)


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    """Check for a header, ignoring case."""
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


class ReconcilePlanner:
    """Decides and applies the action for one file at a time.

    Usage:
        planner = ReconcilePlanner(store, settings)
        record = planner.plan(record)
        record.outcome.state  # create, update or skip
    """

    def __init__(
        self,
        store: ObjectStore,
        settings: SyncSettings,
        controls: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the planner.

        Args:
            store: Remote object store.
            settings: Reconciliation settings.
            controls: Headers added to every upload (record headers win).
        """
        self._store = store
        self._settings = settings
        self._controls = dict(controls or {})

    def plan(self, record: FileRecord) -> FileRecord:
        """Reconcile one file with the bucket.

        Args:
            record: Local file. Its outcome is created if missing.

        Returns:
            The same record, with its outcome filled in.

        Raises:
            UnsupportedInputError: If the contents are a stream.
            RemoteTransportError: If head or put fails.
        """
        outcome = record.init_outcome(self._settings.prefix)

        # Delete records come from the scanner and are already final
        if outcome.state == SyncState.DELETE or record.is_null:
            return record

        if record.is_stream:
            raise UnsupportedInputError(record.path)

        contents = bytes(record.contents)
        outcome.fingerprint = fingerprint(contents)

        if not _has_header(outcome.headers, "Content-Type"):
            outcome.headers["Content-Type"] = content_type(record.path)
        if not _has_header(outcome.headers, "Content-Length"):
            outcome.headers["Content-Length"] = str(len(contents))

        if self._settings.simulate:
            return record

        key = outcome.destination_key
        remote = self._head(key)

        no_update = self._settings.create_only and remote is not None
        no_change = (
            not self._settings.force
            and remote is not None
            and etags_match(remote.etag, outcome.fingerprint)
        )

        if remote is not None and (no_update or no_change):
            outcome.state = SyncState.SKIP
            outcome.remote_etag = remote.etag
            outcome.last_modified = remote.last_modified
            logger.debug(f"Skipping {key} (create_only={no_update}, unchanged={no_change})")
            return record

        headers = {**self._controls, **outcome.headers}
        try:
            self._store.put(key, contents, headers)
        except Exception as e:
            raise RemoteTransportError(key, "put", e) from e

        outcome.state = SyncState.UPDATE if remote is not None else SyncState.CREATE
        logger.debug(f"Uploaded {key} ({outcome.state.value}, {len(contents)} bytes)")
        return record

    def _head(self, key: str) -> RemoteObject | None:
        """Fetch remote metadata, None if the object doesn't exist."""
        try:
            return self._store.head(key)
        except ObjectNotFoundError:
            return None
        except Exception as e:
            raise RemoteTransportError(key, "head", e) from e
