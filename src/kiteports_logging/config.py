"""Logger configuration profiles for kite-ports.

Profiles
--------
ports
    Library logging. File handler (``ports.log``) plus optional stderr.
cli
    CLI logging. File handler (``cli.log``); console only when requested.
test
    Propagates to the root logger so pytest's ``caplog`` sees everything.
"""

from __future__ import annotations

import logging
import sys

from kiteports_logging.formatters import ColoredFormatter, SafeFormatter
from kiteports_logging.handlers import HalvingFileHandler
from kiteports_logging.utils import (
    get_log_file_path,
    get_log_level,
    is_pytest_running,
    level_number,
    should_log_to_console,
    should_use_file_logging,
)

PROFILES = ("ports", "cli", "test")

_configured: set[str] = set()


def _clear(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.filters.clear()


def _stderr_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColoredFormatter(use_colors=sys.stderr.isatty()))
    return handler


def configure_logger(
    name: str,
    profile: str = "ports",
    level: str | int | None = None,
    log_file: str | None = None,
    to_console: bool | None = None,
) -> logging.Logger:
    """Configure a logger according to a named profile.

    Existing handlers and filters on the logger are removed first, so calling
    this repeatedly is safe.

    Parameters
    ----------
    name : str
        Logger name (``""`` for the root logger)
    profile : str
        One of :data:`PROFILES`
    level : str | int, optional
        Log level; defaults to ``KITE_LOG_LEVEL`` or INFO
    log_file : str, optional
        Log file path; defaults to ``~/.sql-kite/logs/<profile>.log``
    to_console : bool, optional
        Force a stderr handler on or off; defaults to ``KITE_CONSOLE_LOGGING``

    Returns
    -------
    logging.Logger
        The configured logger

    Raises
    ------
    ValueError
        If the profile is unknown
    """
    if profile not in PROFILES:
        msg = f"Unknown profile: {profile}. Expected one of {', '.join(PROFILES)}"
        raise ValueError(msg)

    logger = logging.getLogger(name)
    _clear(logger)
    logger.setLevel(level_number(level if level is not None else get_log_level()))

    if profile == "test":
        logger.propagate = True
        _configured.add(name)
        return logger

    if should_use_file_logging():
        handler = HalvingFileHandler(log_file or get_log_file_path(profile))
        handler.setFormatter(SafeFormatter())
        logger.addHandler(handler)

    console = should_log_to_console() if to_console is None else to_console
    if console:
        logger.addHandler(_stderr_handler())

    # Under pytest keep propagation so caplog can capture records
    logger.propagate = is_pytest_running()
    if not logger.handlers and not logger.propagate:
        logger.addHandler(logging.NullHandler())

    _configured.add(name)
    return logger


def _package_logger(name: str, profile: str) -> logging.Logger:
    package = name.split(".", 1)[0]
    if package not in _configured:
        configure_logger(package, profile=profile)
    return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """Get a library logger, configuring its top-level package on first use."""
    return _package_logger(name, "ports")


def get_cli_logger(name: str) -> logging.Logger:
    """Get a CLI logger, configuring its top-level package on first use."""
    return _package_logger(name, "cli")


def get_test_logger(name: str) -> logging.Logger:
    """Get a logger for test helpers."""
    return configure_logger(name, profile="test")


def reset_configuration() -> None:
    """Forget which packages were configured (test helper)."""
    _configured.clear()
