"""Logging for kite-ports.

Usage::

    from kiteports_logging import get_logger

    logger = get_logger(__name__)
"""

from kiteports_logging.config import (
    configure_logger,
    get_cli_logger,
    get_logger,
    get_test_logger,
)
from kiteports_logging.utils import TRACE

__all__ = [
    "TRACE",
    "configure_logger",
    "get_cli_logger",
    "get_logger",
    "get_test_logger",
]
