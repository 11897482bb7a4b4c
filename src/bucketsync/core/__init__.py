"""Core module - Shared configuration, content identity, and types."""

from bucketsync.core.config import (
    ConfigurationError,
    ConnectConfig,
    SyncConfig,
    SyncSettings,
)
from bucketsync.core.identity import content_type, etags_match, fingerprint
from bucketsync.core.types import SyncState

__all__ = [
    # Config
    "ConfigurationError",
    "ConnectConfig",
    "SyncConfig",
    "SyncSettings",
    # Identity
    "content_type",
    "etags_match",
    "fingerprint",
    # Types
    "SyncState",
]
