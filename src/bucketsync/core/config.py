"""Shared configuration classes for bucketsync.

This module defines the configuration used by the sync pipeline, the
object stores and the command line:
- ConnectConfig: where the bucket lives and how to reach it
- SyncSettings: how files are reconciled
- SyncConfig: the complete configuration, loadable from a dict
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

DEFAULT_CACHE_PREFIX = ".bucketsync-cache-"
STORAGE_TYPES = ("s3", "local")

# Whitelist rules are exact keys or compiled patterns
WhitelistRule = str | re.Pattern[str]


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be used to start a sync."""


@dataclass
class ConnectConfig:
    """Configuration for connecting to a bucket.

    Attributes:
        bucket: Bucket name (required).
        type: Store type, "s3" or "local".
        endpoint_url: Custom S3 endpoint (OVH, MinIO, Alibaba OSS, ...).
        region: S3 region.
        access_key: Access key ID (falls back to the boto3 credential chain).
        secret_key: Secret access key.
        local_path: Root directory holding the buckets, for type "local".
    """

    bucket: str
    type: str = "s3"
    endpoint_url: str | None = None
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    local_path: str | None = None

    def __post_init__(self) -> None:
        """Validate bucket identity and store type."""
        if not self.bucket:
            raise ConfigurationError("Missing `connect.bucket` config value.")
        if self.type not in STORAGE_TYPES:
            raise ConfigurationError(f"Unknown storage type: {self.type}")
        if self.endpoint_url:
            self.endpoint_url = self.endpoint_url.rstrip("/")

    def as_storage_config(self) -> dict[str, str | None]:
        """Get the dict expected by create_storage()."""
        return {
            "type": self.type,
            "bucket": self.bucket,
            "endpoint_url": self.endpoint_url,
            "region": self.region,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
            "local_path": self.local_path,
        }


@dataclass
class SyncSettings:
    """Reconciliation settings.

    Attributes:
        prefix: Path segment prepended to every destination key.
        create_only: Never update objects that already exist remotely.
        force: Upload even when the remote ETag matches.
        simulate: Compute headers and fingerprints without touching the store.
        whitelisted_files: Keys (str) or patterns (re.Pattern) never deleted.
        delete_removed: Delete remote objects with no local counterpart.
        max_workers: Number of files reconciled concurrently.
    """

    prefix: str = ""
    create_only: bool = False
    force: bool = False
    simulate: bool = False
    whitelisted_files: list[WhitelistRule] = field(default_factory=list)
    delete_removed: bool = True
    max_workers: int = 1

    def __post_init__(self) -> None:
        """Normalize prefix and whitelist."""
        self.prefix = (self.prefix or "").lstrip("/")
        self.whitelisted_files = list(self.whitelisted_files or [])
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")


def _pick(data: dict[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first key present in data (camelCase or snake_case)."""
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


@dataclass
class SyncConfig:
    """Complete sync configuration.

    Attributes:
        connect: Bucket connection settings.
        setting: Reconciliation settings.
        controls: Extra headers applied to every upload (e.g. Cache-Control).
        cache_file_name: Path of the local cache file.
    """

    connect: ConnectConfig
    setting: SyncSettings = field(default_factory=SyncSettings)
    controls: dict[str, str] = field(default_factory=dict)
    cache_file_name: str | None = None

    def __post_init__(self) -> None:
        """Derive the default cache file name from the bucket."""
        if not self.cache_file_name:
            self.cache_file_name = DEFAULT_CACHE_PREFIX + self.connect.bucket

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Create from a configuration dictionary.

        Accepts both camelCase keys (createOnly, whitelistedFiles,
        cacheFileName, endpointUrl, ...) and snake_case keys.
        Patterns are given as strings under whitelistedPatterns.

        Raises:
            ConfigurationError: If the bucket is missing, a whitelist pattern
                does not compile or maxWorkers is not an integer.
        """
        connect_data = dict(data.get("connect") or {})
        setting_data = dict(data.get("setting") or {})

        connect = ConnectConfig(
            bucket=_pick(connect_data, "bucket", default=""),
            type=_pick(connect_data, "type", default="s3"),
            endpoint_url=_pick(connect_data, "endpointUrl", "endpoint_url", "endpoint"),
            region=_pick(connect_data, "region"),
            access_key=_pick(connect_data, "accessKeyId", "access_key"),
            secret_key=_pick(connect_data, "accessKeySecret", "secret_key"),
            local_path=_pick(connect_data, "localPath", "local_path"),
        )

        whitelist: list[WhitelistRule] = list(
            _pick(setting_data, "whitelistedFiles", "whitelisted_files", default=[])
        )
        for pattern in _pick(
            setting_data, "whitelistedPatterns", "whitelisted_patterns", default=[]
        ):
            try:
                whitelist.append(re.compile(pattern))
            except (re.error, TypeError) as e:
                raise ConfigurationError(f"Invalid whitelist pattern {pattern!r}: {e}") from e

        max_workers = _pick(setting_data, "maxWorkers", "max_workers", default=1)
        try:
            max_workers = int(max_workers)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid maxWorkers value {max_workers!r}: {e}") from e

        setting = SyncSettings(
            prefix=_pick(setting_data, "prefix", default=""),
            create_only=bool(_pick(setting_data, "createOnly", "create_only", default=False)),
            force=bool(_pick(setting_data, "force", default=False)),
            simulate=bool(_pick(setting_data, "simulate", default=False)),
            whitelisted_files=whitelist,
            delete_removed=bool(
                _pick(setting_data, "deleteRemoved", "delete_removed", default=True)
            ),
            max_workers=max_workers,
        )

        controls = data.get("controls") or {}
        headers = controls.get("headers", controls) if isinstance(controls, dict) else {}

        return cls(
            connect=connect,
            setting=setting,
            controls={str(k): str(v) for k, v in headers.items()},
            cache_file_name=_pick(data, "cacheFileName", "cache_file_name"),
        )
