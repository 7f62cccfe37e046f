"""Settings manager for CodeScope using TOML files."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict

import toml

logger = logging.getLogger(__name__)


# Default tunables, one table per TOML section
DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "analysis": {
        "replace_functions": False,
    },
    "search": {
        "max_results": 50,
    },
    "query": {
        "max_files": 10,
        "max_functions": 10,
        "max_issues": 5,
    },
    "ingest": {
        "max_file_bytes": 1_000_000,
    },
}


def load_full_config(config_file: Path) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file is missing or cannot be parsed.
    """
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (toml.TomlDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
        return {}


def load_settings(config_file: Path) -> Dict[str, Dict[str, Any]]:
    """Load tunables, layering the TOML file over :data:`DEFAULT_SETTINGS`.

    Unknown sections and keys are kept out of the result so callers can
    index every default without guarding.
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    raw = load_full_config(config_file)

    for section, defaults in settings.items():
        overrides = raw.get(section)
        if not isinstance(overrides, dict):
            continue
        for key in defaults:
            if key in overrides:
                defaults[key] = overrides[key]

    return settings


def coerce_value(section: str, key: str, raw: str) -> Any:
    """Convert a CLI string into the type of the matching default.

    Raises:
        KeyError: if *section* / *key* is not a known setting.
        ValueError: if *raw* cannot be converted.
    """
    default = DEFAULT_SETTINGS[section][key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"Expected a boolean for {section}.{key}, got '{raw}'")
    if isinstance(default, int):
        return int(raw)
    return raw


def save_setting(config_file: Path, section: str, key: str, value: Any) -> None:
    """Write one setting, preserving the other sections in the file."""
    config = load_full_config(config_file)
    config.setdefault(section, {})[key] = value

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        toml.dump(config, f)
    logger.info("Saved %s.%s to %s", section, key, config_file)
