"""Tests for the sync pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeStore

from bucketsync.client.cache import LocalCache
from bucketsync.core.config import ConnectConfig, SyncConfig, SyncSettings
from bucketsync.core.identity import fingerprint
from bucketsync.core.types import SyncState
from bucketsync.storage import LocalFSStorage, StorageError
from bucketsync.sync.pipeline import SyncPipeline
from bucketsync.sync.types import (
    FileRecord,
    RemoteTransportError,
    UnsupportedInputError,
)


def files(mapping: dict[str, bytes]) -> list[FileRecord]:
    return [FileRecord(path=path, contents=data) for path, data in mapping.items()]


class Recorder:
    """Reporter remembering (key, state) pairs."""

    def __init__(self) -> None:
        self.reported: list[tuple[str | None, SyncState | None]] = []

    def __call__(self, record: FileRecord) -> None:
        self.reported.append((record.destination_key, record.state))

    def states(self) -> dict[str | None, SyncState | None]:
        return dict(self.reported)


@pytest.fixture(params=[1, 3], ids=["sequential", "pooled"])
def workers(request: pytest.FixtureRequest) -> int:
    """Run a test in sequential and pooled mode."""
    return request.param


class TestSyncPipeline:
    """End-to-end runs against the in-memory store."""

    def test_create_then_skip(self, store: FakeStore, workers: int, tmp_path: Path) -> None:
        """A second run without local changes should skip every file."""
        settings = SyncSettings(max_workers=workers)
        cache = LocalCache(tmp_path / "cache.json")

        first = SyncPipeline(store, settings, cache=cache).run(
            files({"a.txt": b"hi", "b.txt": b"yo"})
        )
        reporter = Recorder()
        second = SyncPipeline(store, settings, cache=cache, reporter=reporter).run(
            files({"a.txt": b"hi", "b.txt": b"yo"})
        )

        assert sorted(first.created) == ["a.txt", "b.txt"]
        assert sorted(second.skipped) == ["a.txt", "b.txt"]
        assert second.has_changes is False
        assert reporter.states() == {"a.txt": SyncState.SKIP, "b.txt": SyncState.SKIP}
        assert store.calls_to("put").count("a.txt") == 1

    def test_force_never_skips(self, store: FakeStore, workers: int) -> None:
        """force should update unchanged files."""
        store.objects["a.txt"] = b"hi"

        result = SyncPipeline(store, SyncSettings(force=True, max_workers=workers)).run(
            files({"a.txt": b"hi", "b.txt": b"yo"})
        )

        assert result.updated == ["a.txt"]
        assert result.created == ["b.txt"]
        assert result.skipped == []

    def test_create_only_never_updates(self, store: FakeStore, workers: int) -> None:
        """create_only should skip existing objects, even changed ones."""
        store.objects["a.txt"] = b"old"

        result = SyncPipeline(
            store, SyncSettings(create_only=True, max_workers=workers)
        ).run(files({"a.txt": b"new", "b.txt": b"yo"}))

        assert result.skipped == ["a.txt"]
        assert result.created == ["b.txt"]
        assert result.updated == []
        assert store.objects["a.txt"] == b"old"

    def test_deletes_removed_files(self, store: FakeStore, workers: int) -> None:
        """Remote objects missing locally should be deleted after the files."""
        store.objects["old.txt"] = b"o"
        reporter = Recorder()

        result = SyncPipeline(
            store, SyncSettings(max_workers=workers), reporter=reporter
        ).run(files({"a.txt": b"hi"}))

        assert result.deleted == ["old.txt"]
        assert reporter.reported[-1] == ("old.txt", SyncState.DELETE)
        assert store.calls_to("delete_multi") == [["old.txt"]]
        assert store.calls[-1][0] == "delete_multi"
        assert store.list() == ["a.txt"]

    def test_whitelisted_key_kept(self, store: FakeStore) -> None:
        """Whitelisted remote keys should never be deleted."""
        store.objects["keep.txt"] = b"k"

        result = SyncPipeline(store, SyncSettings(whitelisted_files=["keep.txt"])).run(
            files({"a.txt": b"hi"})
        )

        assert result.deleted == []
        assert store.calls_to("delete_multi") == []
        assert "keep.txt" in store.objects

    def test_delete_removed_disabled(self, store: FakeStore) -> None:
        """delete_removed=False should not even list the bucket."""
        store.objects["old.txt"] = b"o"

        SyncPipeline(store, SyncSettings(delete_removed=False)).run(files({"a.txt": b"hi"}))

        assert store.calls_to("list") == []
        assert "old.txt" in store.objects

    def test_prefix_scopes_deletion(self, store: FakeStore) -> None:
        """Only keys under the prefix should be deleted."""
        store.objects["static/old.css"] = b"o"
        store.objects["uploads/photo.jpg"] = b"p"

        result = SyncPipeline(store, SyncSettings(prefix="static")).run(
            files({"site.css": b"body{}"})
        )

        assert result.created == ["static/site.css"]
        assert result.deleted == ["static/old.css"]
        assert "uploads/photo.jpg" in store.objects

    def test_prefix_keeps_sibling_trees(self, store: FakeStore) -> None:
        """Keys sharing the prefix text but not the path segment should be kept."""
        store.objects["static/old.css"] = b"o"
        store.objects["static-backup/keep.css"] = b"k"

        result = SyncPipeline(store, SyncSettings(prefix="static")).run(
            files({"site.css": b"x"})
        )

        assert result.deleted == ["static/old.css"]
        assert store.objects == {"static/site.css": b"x", "static-backup/keep.css": b"k"}

    def test_simulate(self, store: FakeStore, tmp_path: Path, workers: int) -> None:
        """simulate should report everything and change nothing."""
        store.objects["old.txt"] = b"o"
        cache_path = tmp_path / "cache.json"
        reporter = Recorder()

        pipeline = SyncPipeline(
            store,
            SyncSettings(simulate=True, max_workers=workers),
            cache=LocalCache(cache_path),
            reporter=reporter,
        )
        records = files({"a.txt": b"hi"})
        result = pipeline.run(records)

        assert store.calls_to("put") == []
        assert store.calls_to("head") == []
        assert store.calls_to("delete_multi") == []
        assert store.objects == {"old.txt": b"o"}
        assert result.simulated == ["a.txt"]
        assert result.deleted == ["old.txt"]
        assert reporter.states() == {"a.txt": None, "old.txt": SyncState.DELETE}
        assert records[0].outcome is not None
        assert records[0].outcome.fingerprint == fingerprint(b"hi")
        assert records[0].outcome.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert not cache_path.exists()

    def test_null_records_dropped(self, store: FakeStore) -> None:
        """Records without contents should be neither uploaded nor reported."""
        reporter = Recorder()

        result = SyncPipeline(store, SyncSettings(), reporter=reporter).run(
            [FileRecord(path="dir"), FileRecord(path="a.txt", contents=b"hi")]
        )

        assert result.total == 1
        assert reporter.reported == [("a.txt", SyncState.CREATE)]

    def test_every_reported_record_has_state(self, store: FakeStore) -> None:
        """Every reported record should carry a final state."""
        store.objects.update({"b.txt": b"yo", "c.txt": b"old", "gone.txt": b"g"})
        reporter = Recorder()

        SyncPipeline(store, SyncSettings(), reporter=reporter).run(
            files({"a.txt": b"hi", "b.txt": b"yo", "c.txt": b"new"})
        )

        assert reporter.states() == {
            "a.txt": SyncState.CREATE,
            "b.txt": SyncState.SKIP,
            "c.txt": SyncState.UPDATE,
            "gone.txt": SyncState.DELETE,
        }

    def test_seen_keys(self, store: FakeStore) -> None:
        """seen_keys should hold every processed destination key."""
        store.objects["old.txt"] = b"o"
        pipeline = SyncPipeline(store, SyncSettings(prefix="p"))

        pipeline.run(files({"a.txt": b"1", "b/c.txt": b"2"}))

        assert pipeline.seen_keys == frozenset({"p/a.txt", "p/b/c.txt"})


class TestSyncPipelineCache:
    """Tests for cache bookkeeping during a run."""

    def test_cache_updated(self, store: FakeStore, tmp_path: Path) -> None:
        """The cache should mirror what the bucket holds after a run."""
        store.objects["old.txt"] = b"o"
        cache_path = tmp_path / "cache.json"
        cache = LocalCache(cache_path, {"old.txt": fingerprint(b"o")})

        SyncPipeline(store, SyncSettings(), cache=cache).run(files({"a.txt": b"hi"}))

        assert LocalCache.load(cache_path).as_dict() == {"a.txt": fingerprint(b"hi")}

    def test_skip_caches_remote_etag(self, store: FakeStore, tmp_path: Path) -> None:
        """A create_only skip should cache what the bucket holds."""
        store.objects["a.txt"] = b"old"
        cache = LocalCache(tmp_path / "cache.json")

        SyncPipeline(store, SyncSettings(create_only=True), cache=cache).run(
            files({"a.txt": b"new"})
        )

        assert cache.get("a.txt") == fingerprint(b"old").upper()

    def test_persists_every_ten_records(
        self, store: FakeStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The cache should be persisted every ten records and at the end."""
        cache = LocalCache(tmp_path / "cache.json")
        persisted: list[int] = []
        original = cache.persist

        def persist() -> None:
            persisted.append(len(cache))
            original()

        monkeypatch.setattr(cache, "persist", persist)

        SyncPipeline(store, SyncSettings(), cache=cache).run(
            files({f"f{i:02d}.txt": bytes([i]) for i in range(25)})
        )

        assert persisted == [10, 20, 25]

    def test_from_config(self, tmp_path: Path) -> None:
        """from_config should build the store and load the cache."""
        cache_path = tmp_path / "cache.json"
        cache_path.write_text('{"a.txt": "\\"abc\\""}')
        config = SyncConfig(
            connect=ConnectConfig(bucket="site", type="local", local_path=str(tmp_path / "b")),
            setting=SyncSettings(prefix="static"),
            controls={"Cache-Control": "no-cache"},
            cache_file_name=str(cache_path),
        )

        pipeline = SyncPipeline.from_config(config)

        assert isinstance(pipeline.store, LocalFSStorage)
        assert pipeline.cache is not None
        assert pipeline.cache.get("a.txt") == '"abc"'


class TestSyncPipelineErrors:
    """Tests for failure handling."""

    @pytest.fixture
    def failing_store(self, monkeypatch: pytest.MonkeyPatch) -> FakeStore:
        """Create a store whose put fails for c.txt."""
        store = FakeStore({"old.txt": b"o"})
        original = store.put

        def put(key: str, data: bytes, headers: dict[str, str]) -> None:
            if key == "c.txt":
                raise StorageError("connection reset")
            original(key, data, headers)

        monkeypatch.setattr(store, "put", put)
        return store

    def test_error_aborts_without_delete_scan(
        self, failing_store: FakeStore, tmp_path: Path
    ) -> None:
        """A failure should stop the run and skip the delete scan."""
        cache_path = tmp_path / "cache.json"
        pipeline = SyncPipeline(failing_store, SyncSettings(), cache=LocalCache(cache_path))

        with pytest.raises(RemoteTransportError) as exc_info:
            pipeline.run(files({"a.txt": b"1", "b.txt": b"2", "c.txt": b"3", "d.txt": b"4"}))

        assert exc_info.value.key == "c.txt"
        assert exc_info.value.operation == "put"
        assert "d.txt" not in failing_store.objects
        assert failing_store.calls_to("list") == []
        assert "old.txt" in failing_store.objects
        assert sorted(LocalCache.load(cache_path).as_dict()) == ["a.txt", "b.txt"]

    def test_pooled_error_aborts_without_delete_scan(self, failing_store: FakeStore) -> None:
        """A failure in a worker should propagate and skip the delete scan."""
        pipeline = SyncPipeline(failing_store, SyncSettings(max_workers=2))

        with pytest.raises(RemoteTransportError, match="put failed"):
            pipeline.run(files({f"{name}.txt": b"x" for name in "abcdefgh"}))

        assert failing_store.calls_to("list") == []
        assert "old.txt" in failing_store.objects

    def test_stream_contents_abort_run(self, store: FakeStore) -> None:
        """Streamed contents should abort the run."""
        records = [
            FileRecord(path="a.txt", contents=b"hi"),
            FileRecord(path="big.bin", contents=iter([b"chunk"])),
        ]

        with pytest.raises(UnsupportedInputError):
            SyncPipeline(store, SyncSettings()).run(records)

        assert store.calls_to("list") == []
