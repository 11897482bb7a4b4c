"""Sync command for the bucketsync CLI.

Commands:
- sync: Synchronize a local directory with a bucket
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from bucketsync.client.cli.config import load_config, merge_options
from bucketsync.core.config import ConfigurationError, SyncConfig
from bucketsync.core.types import SyncState

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: int) -> None:
    """Configure logging for the bucketsync logger.

    Args:
        verbose: 0 for warnings only, 1 for info, 2+ for debug.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logging.getLogger("bucketsync").setLevel(level)


def parse_states(value: str | None) -> list[str] | None:
    """Parse the comma-separated --states option."""
    if not value:
        return None
    known = {state.value for state in SyncState} | {"simulate"}
    states = [s.strip() for s in value.split(",") if s.strip()]
    unknown = [s for s in states if s not in known]
    if unknown:
        raise click.BadParameter(
            f"unknown state(s): {', '.join(unknown)}", param_hint="--states"
        )
    return states


@click.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON config file (default: ~/.bucketsync/config.json).",
)
@click.option("--bucket", envvar="BUCKETSYNC_BUCKET", help="Target bucket name.")
@click.option(
    "--storage", type=click.Choice(["s3", "local"]), help="Object store type (default: s3)."
)
@click.option("--endpoint-url", envvar="BUCKETSYNC_ENDPOINT_URL", help="Custom S3 endpoint.")
@click.option("--region", envvar="BUCKETSYNC_REGION", help="S3 region.")
@click.option(
    "--local-path", envvar="BUCKETSYNC_LOCAL_PATH",
    help="Directory holding buckets for --storage local.",
)
@click.option("--prefix", envvar="BUCKETSYNC_PREFIX", help="Key prefix inside the bucket.")
@click.option("--create-only", is_flag=True, help="Never update existing objects.")
@click.option("--force", is_flag=True, help="Upload even unchanged files.")
@click.option(
    "--simulate", "--dry-run", "simulate", is_flag=True,
    help="Show what would be uploaded without touching the bucket.",
)
@click.option("--no-delete", is_flag=True, help="Keep remote objects missing locally.")
@click.option("--whitelist", multiple=True, help="Remote key never deleted (repeatable).")
@click.option(
    "--whitelist-pattern", multiple=True,
    help="Regular expression of remote keys never deleted (repeatable).",
)
@click.option("--header", "-H", multiple=True, help="Upload header NAME:VALUE (repeatable).")
@click.option("--ignore", multiple=True, help="Local ignore pattern (repeatable).")
@click.option("--cache-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Local cache file.")
@click.option("--workers", "-j", type=click.IntRange(min=1), help="Files synced concurrently.")
@click.option("--states", help="Only report these states (comma-separated).")
@click.option("--verbose", "-v", count=True, help="More logging (-vv for debug).")
def sync(
    directory: Path,
    config_path: Path | None,
    states: str | None,
    ignore: tuple[str, ...],
    verbose: int,
    **options: object,
) -> None:
    """Synchronize DIRECTORY with a bucket.

    Uploads new and changed files, skips unchanged ones and deletes remote
    objects that no longer exist locally (unless whitelisted).
    """
    from bucketsync.client.reporter import LogReporter
    from bucketsync.sync import IgnorePatterns, SyncError, SyncPipeline, collect_files

    configure_logging(verbose)
    report_states = parse_states(states)

    try:
        config = SyncConfig.from_dict(merge_options(load_config(config_path), options))
        pipeline = SyncPipeline.from_config(config, reporter=LogReporter(report_states))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setting = config.setting
    click.echo(f"Syncing {directory} -> {pipeline.store.location}")
    if setting.prefix:
        click.echo(f"Prefix: {setting.prefix}")
    if setting.simulate:
        click.echo("Simulate mode: no changes will be made.")

    try:
        result = pipeline.run(collect_files(directory, IgnorePatterns(list(ignore))))
    except (SyncError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if setting.simulate:
        click.echo(
            f"\nSimulated {len(result.simulated)} file(s), "
            f"{len(result.deleted)} deletion(s)."
        )
    elif not result.has_changes:
        click.echo("\nEverything is up to date.")
    else:
        click.echo(
            f"\nSync complete: {len(result.created)} created, "
            f"{len(result.updated)} updated, "
            f"{len(result.deleted)} deleted, "
            f"{len(result.skipped)} skipped"
        )
