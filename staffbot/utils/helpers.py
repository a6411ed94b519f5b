"""Utility functions for staffbot."""

import os
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the staffbot data directory.

    Respects STAFFBOT_HOME environment variable; falls back to ~/.staffbot.
    """
    staffbot_home = os.environ.get("STAFFBOT_HOME", "").strip()
    if staffbot_home:
        return ensure_dir(Path(staffbot_home))
    return ensure_dir(Path.home() / ".staffbot")


def get_var_path() -> Path:
    """Get the ephemeral state directory (~/.staffbot/var)."""
    return ensure_dir(get_data_path() / "var")


def get_operational_data_path() -> Path:
    """Get the long-lived operational data directory (~/.staffbot/data)."""
    return ensure_dir(get_data_path() / "data")


def get_logs_path() -> Path:
    """Get the logs directory (~/.staffbot/var/logs)."""
    return ensure_dir(get_var_path() / "logs")


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """Truncate a string to max length, adding suffix if truncated."""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix
