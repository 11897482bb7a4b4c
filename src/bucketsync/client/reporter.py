"""Console reporter for sync outcomes.

This module provides:
- LogReporter: Prints one colored line per processed record
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from bucketsync.core.types import SyncState

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bucketsync.sync.types import FileRecord

SIMULATE_LABEL = "simulate"
LABEL_WIDTH = 16

STATE_COLORS = {
    SyncState.CREATE: "green",
    SyncState.DELETE: "red",
    SyncState.UPDATE: "yellow",
}


class LogReporter:
    """Reporter printing "[sync][<state>] <key>" for each record.

    Records in simulate mode (no state) are labelled "simulate".

    Usage:
        reporter = LogReporter(states=["create", "update"])
        pipeline = SyncPipeline(store, settings, reporter=reporter)
    """

    def __init__(
        self,
        states: Iterable[SyncState | str] | None = None,
        err: bool = False,
    ) -> None:
        """Initialize the reporter.

        Args:
            states: Only report these states (default: all, including simulate).
            err: Write to stderr instead of stdout.
        """
        self._states = {str(getattr(s, "value", s)) for s in states} if states else None
        self._err = err

    def label(self, record: FileRecord) -> str | None:
        """Get the state label of a record, None if it's filtered out."""
        if record.outcome is None:
            return None
        state = record.state
        name = state.value if state is not None else SIMULATE_LABEL
        if self._states is not None and name not in self._states:
            return None
        return name

    def format(self, record: FileRecord) -> str | None:
        """Format the line for a record, None if it's filtered out."""
        name = self.label(record)
        if name is None:
            return None
        tag = f"[sync][{name}]".ljust(LABEL_WIDTH)
        color = STATE_COLORS.get(record.state, "cyan") if record.state else "cyan"
        return f"{click.style(tag, fg=color)} {record.destination_key}"

    def __call__(self, record: FileRecord) -> None:
        """Report one record."""
        line = self.format(record)
        if line is not None:
            click.echo(line, err=self._err)
