"""Shared types for bucketsync.

This module defines enums used by the planner, the delete scanner,
the local cache and the reporters.
"""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """Final state of a file after reconciliation.

    Used by the planner and delete scanner to record what happened,
    and by LocalCache and reporters to react to it.
    """

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    DELETE = "delete"
    CACHE = "cache"
