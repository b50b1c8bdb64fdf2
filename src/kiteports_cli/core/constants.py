"""Constants and enums for the kite-ports CLI."""

from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


ALL_LOG_LEVELS = list(LogLevel)


class ExitCode:
    """Exit codes for CLI operations."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    NOT_FOUND = 2
    CONFIG_ERROR = 3


class Icons:
    """Unicode icons for section headers and status lines."""

    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "📄"
    CHART = "📊"
    CLEAN = "🧹"
    TRASH = "🗑️"
