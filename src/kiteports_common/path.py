"""Path utilities for consistent path handling across kite-ports."""

from __future__ import annotations

import os
from pathlib import Path

from kiteports_common.constants import (
    KITE_HOME_DIR,
    LOG_SUBDIR,
    RUNTIME_SUBDIR,
    USER_CONFIG_DIR,
    USER_CONFIG_FILENAME,
    EnvVars,
)


def get_kite_home() -> Path:
    """Get the kite home directory.

    Defaults to ``~/.sql-kite``; ``KITE_HOME`` overrides it.

    Returns
    -------
    Path
        The kite home directory path
    """
    override = os.environ.get(EnvVars.HOME)
    if override:
        return Path(override).expanduser()
    return Path.home() / KITE_HOME_DIR


def get_runtime_dir() -> Path:
    """Get the runtime directory holding per-project state (~/.sql-kite/runtime).

    Returns
    -------
    Path
        The runtime directory path
    """
    return get_kite_home() / RUNTIME_SUBDIR


def get_log_dir() -> Path:
    """Get the log directory (~/.sql-kite/logs).

    Returns
    -------
    Path
        The log directory path
    """
    return get_kite_home() / LOG_SUBDIR


def get_user_config_path() -> Path:
    """Get path to the user-level ports configuration file."""
    return Path.home() / ".config" / USER_CONFIG_DIR / USER_CONFIG_FILENAME
