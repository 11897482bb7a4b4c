"""Object storage abstraction for bucket synchronization.

This module provides:
- Abstract interface for the remote store (head, put, list, delete_multi)
- LocalFSStorage: a local directory used as a bucket (development, dry runs)
- S3Storage: S3-compatible storage (AWS, OVH, MinIO, Alibaba OSS S3 endpoint)
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from bucketsync.core.config import ConfigurationError
from bucketsync.core.identity import fingerprint

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per request
S3_DELETE_BATCH_SIZE = 1000

# HTTP header -> put_object parameter
S3_HEADER_PARAMS = {
    "cache-control": "CacheControl",
    "content-disposition": "ContentDisposition",
    "content-encoding": "ContentEncoding",
    "content-language": "ContentLanguage",
    "content-type": "ContentType",
    "x-amz-acl": "ACL",
    "x-amz-storage-class": "StorageClass",
}
S3_METADATA_PREFIXES = ("x-amz-meta-", "x-oss-meta-")


class StorageError(Exception):
    """Raised when the object store fails an operation."""


class ObjectNotFoundError(StorageError):
    """Raised when an object does not exist in the bucket."""


@dataclass
class RemoteObject:
    """Metadata of a remote object, as returned by head().

    Attributes:
        key: Object key.
        etag: ETag reported by the store (quoted MD5 for simple uploads).
        last_modified: Last modification time, if reported.
        size: Object size in bytes, if reported.
    """

    key: str
    etag: str
    last_modified: datetime | None = None
    size: int | None = None


class ObjectStore(ABC):
    """Abstract interface for a bucket.

    Implementations hide transport details (pagination, batch limits,
    credentials, retries) behind four logical operations.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of the bucket."""

    @abstractmethod
    def head(self, key: str) -> RemoteObject:
        """Fetch metadata of an object.

        Args:
            key: Object key.

        Returns:
            RemoteObject with the ETag and last modification time.

        Raises:
            ObjectNotFoundError: If the object doesn't exist.
        """

    @abstractmethod
    def put(self, key: str, data: bytes, headers: Mapping[str, str]) -> None:
        """Store an object, replacing any previous version.

        Args:
            key: Object key.
            data: Object contents.
            headers: HTTP headers (Content-Type, Cache-Control, ...).
        """

    @abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        """List every key under a prefix.

        Args:
            prefix: Key prefix ("" lists the whole bucket).

        Returns:
            All matching keys, across as many pages as needed.
        """

    @abstractmethod
    def delete_multi(self, keys: list[str], quiet: bool = True) -> list[str]:
        """Delete several objects at once.

        Args:
            keys: Keys to delete.
            quiet: Don't treat missing keys as errors.

        Returns:
            Keys that were deleted.

        Raises:
            ObjectNotFoundError: If quiet is False and a key doesn't exist.
        """


class LocalFSStorage(ObjectStore):
    """A local directory used as a bucket.

    Each key is stored as a file below <base_path>/<bucket>/. The ETag is
    the fingerprint of the file contents and headers are not persisted.
    """

    def __init__(self, base_path: Path | str, bucket: str) -> None:
        """Initialize local storage.

        Args:
            base_path: Directory holding the buckets.
            bucket: Bucket name (subdirectory of base_path).
        """
        self._bucket = bucket
        self._root = (Path(base_path) / bucket).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def location(self) -> str:
        """Return the local bucket path."""
        return f"Local filesystem: {self._root}"

    def _object_path(self, key: str) -> Path:
        """Get the file path for a key, refusing keys outside the bucket."""
        path = (self._root / key).resolve()
        if path == self._root or self._root not in path.parents:
            raise StorageError(f"Invalid object key: {key!r}")
        return path

    def head(self, key: str) -> RemoteObject:
        """Fetch metadata of an object."""
        path = self._object_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object not found: {key}")
        stat = path.stat()
        return RemoteObject(
            key=key,
            etag=fingerprint(path.read_bytes()),
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            size=stat.st_size,
        )

    def put(self, key: str, data: bytes, headers: Mapping[str, str]) -> None:
        """Store an object."""
        path = self._object_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def list(self, prefix: str = "") -> list[str]:
        """List every key under a prefix."""
        keys: list[str] = []
        for root_str, _dirs, files in os.walk(self._root):
            root = Path(root_str)
            for filename in files:
                key = (root / filename).relative_to(self._root).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        return sorted(keys)

    def delete_multi(self, keys: list[str], quiet: bool = True) -> list[str]:
        """Delete several objects at once."""
        deleted: list[str] = []
        for key in keys:
            path = self._object_path(key)
            if not path.is_file():
                if not quiet:
                    raise ObjectNotFoundError(f"Object not found: {key}")
                continue
            path.unlink()
            deleted.append(key)
        return deleted


class S3Storage(ObjectStore):
    """S3-compatible storage (AWS, OVH, MinIO, Alibaba OSS, etc.)."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        client: Any = None,
    ) -> None:
        """Initialize S3 storage.

        Args:
            bucket: S3 bucket name.
            endpoint_url: Custom endpoint URL (for OVH, MinIO, etc.).
            access_key: AWS access key ID.
            secret_key: AWS secret access key.
            region: AWS region (default: us-east-1).
            client: Preconfigured boto3 S3 client (overrides the other options).
        """
        self._bucket = bucket
        self._endpoint_url = endpoint_url
        if client is None:
            import boto3

            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        self._client: Any = client

    @property
    def location(self) -> str:
        """Return the S3 bucket location."""
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}/{self._bucket}"
        return f"S3: s3://{self._bucket}"

    def head(self, key: str) -> RemoteObject:
        """Fetch metadata of an object."""
        from botocore.exceptions import ClientError

        try:
            response = self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                raise ObjectNotFoundError(f"Object not found: {key}") from e
            raise
        return RemoteObject(
            key=key,
            etag=response["ETag"],
            last_modified=response.get("LastModified"),
            size=response.get("ContentLength"),
        )

    def _put_params(self, headers: Mapping[str, str]) -> dict[str, Any]:
        """Translate HTTP headers into put_object parameters."""
        params: dict[str, Any] = {}
        metadata: dict[str, str] = {}
        for name, value in headers.items():
            lowered = name.lower()
            if lowered in S3_HEADER_PARAMS:
                params[S3_HEADER_PARAMS[lowered]] = str(value)
            elif lowered == "content-length":
                params["ContentLength"] = int(value)
            elif lowered.startswith(S3_METADATA_PREFIXES):
                metadata[lowered.split("-meta-", 1)[1]] = str(value)
            else:
                logger.debug(f"Ignoring unsupported header for S3: {name}")
        if metadata:
            params["Metadata"] = metadata
        return params

    def put(self, key: str, data: bytes, headers: Mapping[str, str]) -> None:
        """Store an object."""
        self._client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            **self._put_params(headers),
        )

    def list(self, prefix: str = "") -> list[str]:
        """List every key under a prefix."""
        keys: list[str] = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                keys.append(obj["Key"])
        return keys

    def delete_multi(self, keys: list[str], quiet: bool = True) -> list[str]:
        """Delete several objects, DeleteObjects batch limit permitting."""
        for start in range(0, len(keys), S3_DELETE_BATCH_SIZE):
            batch = keys[start : start + S3_DELETE_BATCH_SIZE]
            response = self._client.delete_objects(
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": quiet},
            )
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                raise StorageError(
                    f"Failed to delete {first.get('Key')}: "
                    f"{first.get('Code')} {first.get('Message', '')}".rstrip()
                )
        return list(keys)


def create_storage(config: dict[str, str | None]) -> ObjectStore:
    """Factory function to create storage from configuration.

    Args:
        config: Storage configuration dict with keys:
            - type: "local" or "s3"
            - bucket: Bucket name (required)
            - For local: local_path
            - For S3: endpoint_url, access_key, secret_key, region

    Returns:
        Configured ObjectStore instance.

    Raises:
        ConfigurationError: If the bucket is missing or the type is unknown.
    """
    storage_type = config.get("type") or "s3"
    bucket = config.get("bucket")
    if not bucket:
        raise ConfigurationError("Missing `connect.bucket` config value.")

    if storage_type == "local":
        return LocalFSStorage(config.get("local_path") or "./buckets", bucket)

    if storage_type == "s3":
        return S3Storage(
            bucket=bucket,
            endpoint_url=config.get("endpoint_url"),
            access_key=config.get("access_key"),
            secret_key=config.get("secret_key"),
            region=config.get("region") or "us-east-1",
        )

    raise ConfigurationError(f"Unknown storage type: {storage_type}")
