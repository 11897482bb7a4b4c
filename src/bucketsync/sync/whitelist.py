"""Whitelist rules protecting remote keys from deletion.

This module provides:
- Whitelist: Matches keys against exact strings and compiled patterns
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bucketsync.sync.types import WhitelistTypeError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bucketsync.core.config import WhitelistRule


class Whitelist:
    """Handles whitelist matching for remote keys.

    A rule is either a string, matched exactly, or a compiled regular
    expression, matched anywhere in the key (re.search). Rules are only
    type-checked when evaluated, so an invalid rule surfaces the first
    time a deletion candidate is checked.
    """

    def __init__(self, rules: Iterable[WhitelistRule] | None = None) -> None:
        """Initialize with rules.

        Args:
            rules: Exact keys and/or compiled patterns.
        """
        self._rules: list[WhitelistRule] = list(rules or [])

    def __len__(self) -> int:
        return len(self._rules)

    def add_rule(self, rule: WhitelistRule) -> None:
        """Add a whitelist rule."""
        self._rules.append(rule)

    def is_protected(self, key: str) -> bool:
        """Check if a key matches any rule.

        Args:
            key: Remote object key.

        Returns:
            True if the key must not be deleted.

        Raises:
            WhitelistTypeError: If a rule is neither a string nor a pattern.
        """
        for rule in self._rules:
            if isinstance(rule, re.Pattern):
                if rule.search(key):
                    return True
            elif isinstance(rule, str):
                if rule == key:
                    return True
            else:
                raise WhitelistTypeError(
                    "whitelist can only contain regular expressions or strings, "
                    f"got {type(rule).__name__}"
                )
        return False
