"""Custom Click decorators for common CLI patterns."""

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import click

from kiteports.errors import ConfigError, KitePortsError
from kiteports_cli.core.constants import ExitCode
from kiteports_cli.core.utils import CliOutput
from kiteports_common.io import FileOperationError
from kiteports_logging import get_cli_logger

logger = get_cli_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_exceptions(func: F) -> F:
    """Convert exceptions raised by a command into messages and exit codes.

    Parameters
    ----------
    func : Callable
        Command callback to wrap

    Returns
    -------
    Callable
        Wrapped callback
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.exceptions.Abort, click.ClickException):
            # Let Click handle its own exit paths
            raise
        except KeyboardInterrupt:
            ctx = click.get_current_context()
            ctx.exit(ExitCode.GENERAL_ERROR)
        except ConfigError as e:
            CliOutput.error(f"Configuration error: {e}")
            click.get_current_context().exit(ExitCode.CONFIG_ERROR)
        except KitePortsError as e:
            logger.debug("Command failed: %s (details=%s)", e, e.details)
            CliOutput.error(str(e))
            click.get_current_context().exit(ExitCode.GENERAL_ERROR)
        except FileOperationError as e:
            CliOutput.error(f"Registry file error: {e}")
            click.get_current_context().exit(ExitCode.GENERAL_ERROR)
        except Exception as e:
            logger.exception("Unexpected error in %s", func.__name__)
            CliOutput.error(f"Unexpected error: {e}")
            click.get_current_context().exit(ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
