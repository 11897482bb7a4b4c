"""Tests for the console reporter."""

import click
import pytest

from bucketsync.client.reporter import LogReporter
from bucketsync.core.types import SyncState
from bucketsync.sync.types import FileRecord, SyncOutcome


def make_record(key: str, state: SyncState | None) -> FileRecord:
    return FileRecord(
        path=key,
        contents=b"x",
        outcome=SyncOutcome(destination_key=key, state=state),
    )


class TestLogReporter:
    """Tests for LogReporter."""

    def test_format(self) -> None:
        """Should print the padded state tag and the key."""
        line = LogReporter().format(make_record("css/site.css", SyncState.CREATE))
        assert line is not None
        assert click.unstyle(line) == "[sync][create]   css/site.css"

    def test_create_is_green(self) -> None:
        """create should be colored green."""
        line = LogReporter().format(make_record("a.txt", SyncState.CREATE))
        assert line == click.style("[sync][create]".ljust(16), fg="green") + " a.txt"

    def test_simulate_label(self) -> None:
        """Records without state should be labelled simulate."""
        assert LogReporter().label(make_record("a.txt", None)) == "simulate"

    def test_no_outcome_is_skipped(self) -> None:
        """Records without an outcome should not be reported."""
        assert LogReporter().format(FileRecord(path="a.txt", contents=b"x")) is None

    def test_states_filter(self) -> None:
        """Only the requested states should be reported."""
        reporter = LogReporter(states=[SyncState.DELETE, "update"])
        assert reporter.label(make_record("a", SyncState.DELETE)) == "delete"
        assert reporter.label(make_record("b", SyncState.UPDATE)) == "update"
        assert reporter.label(make_record("c", SyncState.SKIP)) is None
        assert reporter.label(make_record("d", None)) is None

    def test_call_echoes(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Calling the reporter should print one line."""
        reporter = LogReporter()
        reporter(make_record("old.txt", SyncState.DELETE))
        reporter(FileRecord(path="nothing"))

        out = click.unstyle(capsys.readouterr().out)
        assert out == "[sync][delete]   old.txt\n"
