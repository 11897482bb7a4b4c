"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, UnsupportedInputError, RemoteTransportError, WhitelistTypeError:
  Exception classes
- FileRecord: A local file flowing through the pipeline
- SyncOutcome: The sync outcome attached to a FileRecord
- SyncResult: Overall sync operation result
- Type alias for reporter callbacks
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from bucketsync.core.types import SyncState


class SyncError(Exception):
    """Base exception for sync errors."""


class UnsupportedInputError(SyncError):
    """File contents were given as a stream instead of bytes."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Stream content is not supported: {path}")


class RemoteTransportError(SyncError):
    """A remote store call failed (anything but object-not-found).

    Attributes:
        key: Destination key (or prefix) the operation was about.
        operation: Store operation that failed (head, put, list, delete).
    """

    def __init__(self, key: str, operation: str, cause: BaseException) -> None:
        self.key = key
        self.operation = operation
        super().__init__(f"{operation} failed for {key!r}: {cause}")


class WhitelistTypeError(SyncError, TypeError):
    """A whitelist rule is neither a string nor a compiled pattern."""


def make_destination_key(prefix: str, relative_path: str) -> str:
    """Build the remote key of a local file.

    Args:
        prefix: Bucket prefix ("" for the bucket root).
        relative_path: Path relative to the sync root (any separator).

    Returns:
        Normalized "/"-separated key.
    """
    relative = relative_path.replace("\\", "/").lstrip("/")
    return posixpath.normpath(posixpath.join(prefix, relative))


@dataclass
class SyncOutcome:
    """Sync outcome attached to a FileRecord.

    Attributes:
        destination_key: Remote key of the file.
        state: Final state, None until decided (and in simulate mode).
        fingerprint: Fingerprint of the local bytes (None for delete records).
        headers: Headers sent with the upload.
        last_modified: Remote last modification time (set on skip).
        remote_etag: ETag reported by the store (set on skip).
    """

    destination_key: str
    state: SyncState | None = None
    fingerprint: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    last_modified: datetime | None = None
    remote_etag: str | None = None

    @property
    def confirmed_fingerprint(self) -> str | None:
        """Fingerprint the store is known to hold for this key.

        For a skip this is the ETag the store reported, which differs from
        the local fingerprint when create_only suppressed an update.
        """
        if self.state == SyncState.SKIP and self.remote_etag:
            return self.remote_etag
        if self.state in (SyncState.CREATE, SyncState.UPDATE):
            return self.fingerprint
        return None


@dataclass
class FileRecord:
    """A local file flowing through the sync pipeline.

    Attributes:
        path: Path relative to the sync root.
        contents: File bytes, None for entries without contents (directories),
            anything else is treated as streamed content.
        headers: Pre-set headers (e.g. Cache-Control for this file).
        outcome: Sync outcome, attached by the pipeline.
    """

    path: str
    contents: bytes | Any | None = None
    headers: dict[str, str] = field(default_factory=dict)
    outcome: SyncOutcome | None = None

    @property
    def is_null(self) -> bool:
        """Check if the record has no contents."""
        return self.contents is None

    @property
    def is_buffer(self) -> bool:
        """Check if the contents are fully materialized bytes."""
        return isinstance(self.contents, (bytes, bytearray, memoryview))

    @property
    def is_stream(self) -> bool:
        """Check if the contents are a stream (unsupported)."""
        return not self.is_null and not self.is_buffer

    @property
    def state(self) -> SyncState | None:
        """Get the outcome state, if any."""
        return self.outcome.state if self.outcome else None

    @property
    def destination_key(self) -> str | None:
        """Get the destination key, if assigned."""
        return self.outcome.destination_key if self.outcome else None

    def init_outcome(self, prefix: str) -> SyncOutcome:
        """Attach a fresh outcome unless one is already present.

        Args:
            prefix: Bucket prefix used to build the destination key.

        Returns:
            The record's outcome.
        """
        if self.outcome is None:
            self.outcome = SyncOutcome(
                destination_key=make_destination_key(prefix, self.path),
                headers=dict(self.headers),
            )
        return self.outcome

    @classmethod
    def deleted(cls, key: str) -> FileRecord:
        """Create the synthetic record of a remote deletion."""
        return cls(
            path=key,
            outcome=SyncOutcome(destination_key=key, state=SyncState.DELETE),
        )

    def __repr__(self) -> str:
        """Human-readable representation."""
        state = self.state.value if self.state else None
        return f"FileRecord({self.path!r}, state={state})"


# Type alias for reporter callbacks
Reporter = Callable[[FileRecord], None]


@dataclass
class SyncResult:
    """Result of a sync operation, as destination keys grouped by state."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    cached: list[str] = field(default_factory=list)
    simulated: list[str] = field(default_factory=list)

    def add(self, record: FileRecord) -> None:
        """Count a processed record."""
        key = record.destination_key or record.path
        state = record.state
        if state is None:
            self.simulated.append(key)
        elif state == SyncState.CREATE:
            self.created.append(key)
        elif state == SyncState.UPDATE:
            self.updated.append(key)
        elif state == SyncState.SKIP:
            self.skipped.append(key)
        elif state == SyncState.DELETE:
            self.deleted.append(key)
        else:
            self.cached.append(key)

    @property
    def total(self) -> int:
        """Get number of processed records."""
        return (
            len(self.created)
            + len(self.updated)
            + len(self.skipped)
            + len(self.deleted)
            + len(self.cached)
            + len(self.simulated)
        )

    @property
    def has_changes(self) -> bool:
        """Check if the bucket was modified."""
        return bool(self.created or self.updated or self.deleted)
