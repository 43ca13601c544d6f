"""Centralized path management for ipherald.

All state (run record, address cache, PID file) is stored under a single base
directory unless the configuration says otherwise. The base directory can be
overridden with the IPHERALD_HOME environment variable.

Default locations:
- Linux/macOS: ~/.ipherald
"""

import os
from pathlib import Path

ENV_VAR = "IPHERALD_HOME"


def get_ipherald_home() -> Path:
    """Get the base directory for all ipherald data.

    Resolution order:
    1. IPHERALD_HOME environment variable (if set)
    2. Platform default (~/.ipherald)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".ipherald"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_ipherald_home() / "config.yaml"


def get_cache_path() -> Path:
    """Get the cache directory path (run record, address cache)."""
    return get_ipherald_home() / "cache"


def get_ran_path() -> Path:
    """Get the default run record file path."""
    return get_cache_path() / "ran"


def get_ip_cache_path() -> Path:
    """Get the default address cache file path."""
    return get_cache_path() / "ip"


def get_pid_path() -> Path:
    """Get the default PID file path."""
    return get_ipherald_home() / "ipherald.pid"

