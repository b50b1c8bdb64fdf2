"""Log formatters."""

import logging

DEFAULT_FORMAT = (
    "%(asctime)s %(levelname)-8s [%(process)d] %(name)s "
    "%(real_funcName)s:%(real_lineno)d - %(message)s"
)
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"


class SafeFormatter(logging.Formatter):
    """Formatter that never fails on missing custom record attributes.

    Records created outside the usual logger path (third-party handlers,
    hand-built ``LogRecord`` objects in tests) may lack the ``real_*``
    attributes referenced by :data:`DEFAULT_FORMAT`; they are filled from the
    standard ones.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt or DEFAULT_FORMAT, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "real_module"):
            record.real_module = record.module
        if not hasattr(record, "real_funcName"):
            record.real_funcName = record.funcName
        if not hasattr(record, "real_lineno"):
            record.real_lineno = record.lineno
        return super().format(record)


class ColoredFormatter(SafeFormatter):
    """Console formatter that colors the level name with ANSI codes."""

    COLORS = {
        "TRACE": "\033[90m",
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt or CONSOLE_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.use_colors:
            return message
        color = self.COLORS.get(record.levelname)
        if color is None:
            return message
        return message.replace(
            record.levelname,
            f"{color}{record.levelname}{self.RESET}",
            1,
        )
