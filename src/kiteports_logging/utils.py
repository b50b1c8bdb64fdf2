"""Helpers for resolving logging settings from the environment."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from kiteports_common.constants import EnvVars
from kiteports_common.env import reader
from kiteports_common.path import get_log_dir

DEFAULT_LOG_LEVEL = "INFO"
VALID_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Below DEBUG, used by -vv style tracing of every probe
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def is_pytest_running() -> bool:
    """Return True when executing inside a pytest session."""
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


def get_log_level(default: str = DEFAULT_LOG_LEVEL) -> str:
    """Resolve the log level name from ``KITE_LOG_LEVEL``.

    Unknown level names fall back to ``default``.
    """
    level = (reader.read_str(EnvVars.LOG_LEVEL) or default).upper()
    return level if level in VALID_LEVELS else default


def level_number(level: str | int) -> int:
    """Convert a level name (including TRACE) to its numeric value."""
    if isinstance(level, int):
        return level
    upper = level.upper()
    if upper == "TRACE":
        return TRACE
    value = logging.getLevelName(upper)
    if not isinstance(value, int):
        msg = f"Unknown log level: {level}"
        raise ValueError(msg)
    return value


def should_use_file_logging() -> bool:
    """Decide whether file handlers should be attached.

    File logging is off under pytest and otherwise controlled by
    ``KITE_LOG_TO_FILE`` (default on).
    """
    if is_pytest_running():
        return False
    return reader.read_bool(EnvVars.LOG_TO_FILE, default=True)


def should_log_to_console() -> bool:
    """Return True when ``KITE_CONSOLE_LOGGING`` asks for stderr output."""
    return reader.read_bool(EnvVars.CONSOLE_LOGGING, default=False)


def get_log_file_path(name: str) -> str:
    """Get the log file path for a named log (e.g. ``"ports"``, ``"cli"``)."""
    return str(Path(get_log_dir()) / f"{name}.log")
