"""Configuration paths and tunables for local CodeScope storage."""

from __future__ import annotations

import os
from pathlib import Path

from .config_manager import load_settings

BASE_DIR = Path(os.environ.get("CODESCOPE_HOME", str(Path.home() / ".codescope"))).expanduser()
DB_FILE = BASE_DIR / "codescope.db"
STATE_FILE = BASE_DIR / "state.json"
CONFIG_FILE = BASE_DIR / "config.toml"

# Tunables from ~/.codescope/config.toml (set via `codescope config set`)
_settings = load_settings(CONFIG_FILE)

# Re-analysis policy: False keeps every extracted batch, True replaces the previous one
REPLACE_FUNCTIONS_ON_REANALYZE = bool(_settings["analysis"]["replace_functions"])

SEARCH_MAX_RESULTS = int(_settings["search"]["max_results"])

QUERY_MAX_FILES = int(_settings["query"]["max_files"])
QUERY_MAX_FUNCTIONS = int(_settings["query"]["max_functions"])
QUERY_MAX_ISSUES = int(_settings["query"]["max_issues"])

INGEST_MAX_FILE_BYTES = int(_settings["ingest"]["max_file_bytes"])


def ensure_base_dirs() -> None:
    """Create base directories for local storage if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
