"""Output helpers for the kite-ports CLI."""

import click

from kiteports_cli.core.constants import Icons


def format_success(msg: str) -> str:
    return click.style(msg, fg="green")


def format_error(msg: str) -> str:
    return click.style(f"{Icons.ERROR} {msg}", fg="red")


def format_warning(msg: str) -> str:
    return click.style(msg, fg="yellow")


def format_dim(msg: str) -> str:
    return click.style(msg, dim=True)


class CliOutput:
    """Unified CLI output with consistent formatting.

    Consecutive blank lines are coalesced into one.
    """

    _last_was_blank: bool = False

    @staticmethod
    def _emit(message: str, *, err: bool = False, formatter=None) -> None:
        if not message or message.strip() == "":
            if CliOutput._last_was_blank:
                return
            click.echo("", err=err)
            CliOutput._last_was_blank = True
            return

        rendered = formatter(message) if formatter else message
        click.echo(rendered, err=err)
        CliOutput._last_was_blank = False

    @staticmethod
    def plain(message: str = "") -> None:
        CliOutput._emit(message)

    @staticmethod
    def success(message: str) -> None:
        """Echo a success message in green."""
        CliOutput._emit(message, formatter=format_success)

    @staticmethod
    def error(message: str, err: bool = True) -> None:
        """Echo an error message with a red X, to stderr by default."""
        CliOutput._emit(message, err=err, formatter=format_error)

    @staticmethod
    def warning(message: str) -> None:
        CliOutput._emit(message, formatter=format_warning)

    @staticmethod
    def dim(message: str) -> None:
        CliOutput._emit(message, formatter=format_dim)

    @staticmethod
    def section(title: str, icon: str | None = None) -> None:
        """Echo a bold section header preceded by a blank line."""
        CliOutput._emit("")
        header = f"{icon} {title}" if icon else title
        CliOutput._emit(click.style(header, bold=True))
        CliOutput._emit("")
