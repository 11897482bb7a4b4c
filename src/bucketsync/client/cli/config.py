"""Configuration utilities for the bucketsync CLI.

This module provides shared configuration functions used across CLI commands.

Config file format (JSON):
    {
        "connect": {"bucket": "my-site", "endpointUrl": "...", "region": "..."},
        "setting": {"prefix": "static", "whitelistedFiles": ["robots.txt"]},
        "controls": {"headers": {"Cache-Control": "max-age=300"}},
        "cacheFileName": ".bucketsync-cache-my-site"
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from bucketsync.core.config import ConfigurationError


def get_config_dir() -> Path:
    """Get the configuration directory for bucketsync.

    Returns:
        Path to ~/.bucketsync or equivalent.
    """
    return Path.home() / ".bucketsync"


def get_config_file() -> Path:
    """Get the path to the default config file."""
    return get_config_dir() / "config.json"


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a config file.

    Args:
        path: Config file (defaults to get_config_file()).

    Returns:
        The parsed config, or an empty dict if the default file doesn't exist.

    Raises:
        ConfigurationError: If an explicit file is missing or the JSON is invalid.
    """
    config_file = path or get_config_file()
    if not config_file.exists():
        if path is not None:
            raise ConfigurationError(f"Config file not found: {config_file}")
        return {}

    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file {config_file}: expected an object")
    return data


def parse_header(value: str) -> tuple[str, str]:
    """Parse a "Name: value" header option.

    Raises:
        ConfigurationError: If the value has no colon or an empty name.
    """
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ConfigurationError(f"Invalid header (expected NAME:VALUE): {value}")
    return name.strip(), header_value.strip()


def merge_options(config: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
    """Overlay command-line options on a loaded config.

    Options set to None (or empty) leave the config value in place.
    Flags only ever turn a feature on, whitelist rules and headers are added.

    Args:
        config: Config as loaded by load_config().
        options: Parsed command-line options.

    Returns:
        A new config dict suitable for SyncConfig.from_dict().
    """
    merged = dict(config)
    connect = dict(merged.get("connect") or {})
    setting = dict(merged.get("setting") or {})
    controls = dict(merged.get("controls") or {})
    headers = dict(controls.get("headers", controls))

    for option, key in (
        ("bucket", "bucket"),
        ("storage", "type"),
        ("endpoint_url", "endpointUrl"),
        ("region", "region"),
        ("local_path", "localPath"),
    ):
        if options.get(option):
            connect.pop(key, None)
            connect.pop(option, None)
            connect[key] = options[option]

    if options.get("prefix") is not None:
        setting["prefix"] = options["prefix"]
    for option, key in (
        ("create_only", "createOnly"),
        ("force", "force"),
        ("simulate", "simulate"),
    ):
        if options.get(option):
            setting[key] = True
    if options.get("no_delete"):
        setting["deleteRemoved"] = False
    if options.get("workers"):
        setting["maxWorkers"] = options["workers"]

    whitelist = list(setting.get("whitelistedFiles", setting.get("whitelisted_files", [])))
    whitelist.extend(options.get("whitelist") or ())
    setting["whitelistedFiles"] = whitelist
    setting.pop("whitelisted_files", None)

    patterns = list(
        setting.get("whitelistedPatterns", setting.get("whitelisted_patterns", []))
    )
    patterns.extend(options.get("whitelist_pattern") or ())
    setting["whitelistedPatterns"] = patterns
    setting.pop("whitelisted_patterns", None)

    for header in options.get("header") or ():
        name, value = parse_header(header)
        headers[name] = value

    if options.get("cache_file"):
        merged.pop("cache_file_name", None)
        merged["cacheFileName"] = str(options["cache_file"])

    merged["connect"] = connect
    merged["setting"] = setting
    merged["controls"] = {"headers": headers}
    return merged
