"""Ignore rules for local file collection.

This module provides:
- IgnorePatterns: gitignore-style matching of paths below the sync root
- DEFAULT_IGNORE_PATTERNS: Files that are never uploaded
- IGNORE_FILE_NAME: File at the sync root listing extra patterns

Pattern forms:
    name.ext, *.tmp     matched against the file name and the relative path
    drafts/             a top-level directory and everything below it
    build/**            matched against the relative path only
"""

from __future__ import annotations

import fnmatch
from pathlib import Path

IGNORE_FILE_NAME = ".bucketsyncignore"

DEFAULT_IGNORE_PATTERNS = [
    # VCS and OS metadata
    ".git",
    ".git/**",
    ".DS_Store",
    "Thumbs.db",
    # Editor swap files
    "*.swp",
    "*.swo",
    # Our own files
    ".bucketsync-cache-*",
    IGNORE_FILE_NAME,
]


def _matches(pattern: str, relative: str, path: Path) -> bool:
    """Check one pattern against a "/"-separated relative path."""
    if pattern.endswith("/"):
        directory = pattern.rstrip("/")
        top_level = relative.split("/", 1)[0]
        return fnmatch.fnmatch(top_level, directory) or (
            path.is_dir() and fnmatch.fnmatch(relative, directory)
        )
    if "**" in pattern:
        return fnmatch.fnmatch(relative, pattern)
    return fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(path.name, pattern)


class IgnorePatterns:
    """Decides which local paths are left out of a sync.

    Symlinks are always ignored, so the collector never leaves the tree.
    """

    def __init__(self, patterns: list[str] | None = None, use_defaults: bool = True) -> None:
        """Initialize the rules.

        Args:
            patterns: Extra patterns added after the defaults.
            use_defaults: Start from DEFAULT_IGNORE_PATTERNS.
        """
        self._patterns: list[str] = []
        if use_defaults:
            self._patterns += DEFAULT_IGNORE_PATTERNS
        self._patterns += patterns or []

    @property
    def patterns(self) -> list[str]:
        """Get a copy of the active patterns."""
        return list(self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """Add one pattern."""
        self._patterns.append(pattern)

    def load_from_file(self, path: Path) -> None:
        """Add the patterns listed in an ignore file.

        Blank lines and lines starting with # are skipped. A missing file
        adds nothing.
        """
        if not path.is_file():
            return
        for raw in path.read_text(encoding="utf-8").splitlines():
            line = raw.strip()
            if line and not line.startswith("#"):
                self._patterns.append(line)

    def should_ignore(self, path: Path, base_path: Path) -> bool:
        """Check whether a path is excluded from collection.

        Args:
            path: Absolute path below base_path.
            base_path: Sync root.

        Returns:
            True if the path (or, for a directory, its whole subtree) is
            left out. Paths outside base_path are never ignored.
        """
        if path.is_symlink():
            return True
        try:
            relative = path.relative_to(base_path).as_posix()
        except ValueError:
            return False
        return any(_matches(pattern, relative, path) for pattern in self._patterns)
