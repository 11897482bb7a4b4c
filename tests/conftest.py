"""Shared pytest fixtures.

Provides an in-memory object store standing in for a real bucket.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from datetime import UTC, datetime

import pytest

from bucketsync.core.config import SyncSettings
from bucketsync.core.identity import fingerprint
from bucketsync.storage import ObjectNotFoundError, ObjectStore, RemoteObject


class FakeStore(ObjectStore):
    """In-memory bucket recording every call it receives."""

    def __init__(self, objects: Mapping[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.headers: dict[str, dict[str, str]] = {}
        self.calls: list[tuple[str, object]] = []
        self._lock = threading.Lock()

    @property
    def location(self) -> str:
        return "memory://fake"

    def calls_to(self, operation: str) -> list[object]:
        """Get the arguments of every call to one operation."""
        with self._lock:
            return [arg for op, arg in self.calls if op == operation]

    def _record(self, operation: str, arg: object) -> None:
        with self._lock:
            self.calls.append((operation, arg))

    def head(self, key: str) -> RemoteObject:
        self._record("head", key)
        if key not in self.objects:
            raise ObjectNotFoundError(f"Object not found: {key}")
        return RemoteObject(
            key=key,
            etag=fingerprint(self.objects[key]).upper(),
            last_modified=datetime(2024, 1, 1, tzinfo=UTC),
            size=len(self.objects[key]),
        )

    def put(self, key: str, data: bytes, headers: Mapping[str, str]) -> None:
        self._record("put", key)
        self.objects[key] = bytes(data)
        self.headers[key] = dict(headers)

    def list(self, prefix: str = "") -> list[str]:
        self._record("list", prefix)
        return sorted(key for key in self.objects if key.startswith(prefix))

    def delete_multi(self, keys: list[str], quiet: bool = True) -> list[str]:
        self._record("delete_multi", list(keys))
        deleted = []
        for key in keys:
            if self.objects.pop(key, None) is not None:
                deleted.append(key)
            elif not quiet:
                raise ObjectNotFoundError(f"Object not found: {key}")
        return deleted


@pytest.fixture
def store() -> FakeStore:
    """Create an empty in-memory store."""
    return FakeStore()


@pytest.fixture
def settings() -> SyncSettings:
    """Create default sync settings."""
    return SyncSettings()
