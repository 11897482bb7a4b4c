"""Command-line interface for bucketsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Synchronize a local directory with a bucket
"""

from __future__ import annotations

import click

from bucketsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    merge_options,
)
from bucketsync.client.cli.sync import sync


@click.group()
@click.version_option(package_name="bucketsync")
def cli() -> None:
    """bucketsync - One-way sync of local files to an object-storage bucket."""


cli.add_command(sync)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
    "merge_options",
]
