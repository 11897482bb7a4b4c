"""Local file collection.

This module provides:
- collect_files: Walks a directory and yields FileRecord objects

The collector is the producer side of the pipeline. Files are read one at
a time as the pipeline pulls them, so memory use stays bounded by the
largest file rather than the whole tree.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from bucketsync.sync.ignore import IGNORE_FILE_NAME, IgnorePatterns
from bucketsync.sync.types import FileRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def collect_files(
    base_path: Path | str,
    ignore: IgnorePatterns | None = None,
) -> Iterator[FileRecord]:
    """Yield a FileRecord for every file below base_path.

    Symlinks and ignored paths are skipped. Patterns from a
    .bucketsyncignore file at the root are added to the ignore rules.
    Files are yielded in a stable (sorted) order.

    Args:
        base_path: Root directory to collect.
        ignore: Ignore patterns (defaults to DEFAULT_IGNORE_PATTERNS).

    Yields:
        FileRecord with the relative "/"-separated path and file bytes.

    Raises:
        NotADirectoryError: If base_path is not a directory.
    """
    base_path = Path(base_path).resolve()
    if not base_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {base_path}")

    if ignore is None:
        ignore = IgnorePatterns()
    ignore.load_from_file(base_path / IGNORE_FILE_NAME)

    for root_str, dirs, files in os.walk(base_path):
        root = Path(root_str)

        # Prune ignored directories (including symlinks) in place
        dirs[:] = sorted(
            d for d in dirs if not ignore.should_ignore(root / d, base_path)
        )

        for filename in sorted(files):
            file_path = root / filename
            if ignore.should_ignore(file_path, base_path):
                continue

            relative_path = file_path.relative_to(base_path).as_posix()
            logger.debug(f"Collected {relative_path}")
            yield FileRecord(path=relative_path, contents=file_path.read_bytes())
