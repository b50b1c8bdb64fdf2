"""Main CLI entry point for kite-ports.

Provides the Click command group and shared context; the registry commands
live in :mod:`kiteports_cli.commands.ports`.
"""

from pathlib import Path

import click

from kiteports import PortAllocator, PortsConfig
from kiteports_cli.commands import ports
from kiteports_cli.core.constants import ALL_LOG_LEVELS, LogLevel
from kiteports_logging import configure_logger, get_cli_logger

logger = get_cli_logger(__name__)

LOGGING_PACKAGES = ("kiteports", "kiteports_cli")


def _configure_logging(verbose: bool, log_level: str | None) -> None:
    """Reconfigure package loggers when -v or --log-level is given."""
    level = log_level or (LogLevel.DEBUG.value if verbose else None)
    if level is None:
        return
    for package in LOGGING_PACKAGES:
        profile = "cli" if package == "kiteports_cli" else "ports"
        configure_logger(package, profile=profile, level=level, to_console=verbose)


class Context:
    """CLI context object shared between commands.

    Parameters
    ----------
    registry_file : Path, optional
        Registry file override
    runtime_dir : Path, optional
        Runtime directory override
    """

    def __init__(
        self,
        registry_file: Path | None = None,
        runtime_dir: Path | None = None,
    ) -> None:
        self.verbose: bool = False
        self.registry_file = registry_file
        self.runtime_dir = runtime_dir
        self._config: PortsConfig | None = None
        self._allocator: PortAllocator | None = None

    @property
    def config(self) -> PortsConfig:
        """Effective configuration, loaded on first use."""
        if self._config is None:
            self._config = PortsConfig.load(
                runtime_dir=self.runtime_dir,
                registry_file=self.registry_file,
            )
        return self._config

    @property
    def allocator(self) -> PortAllocator:
        """Allocator built from :attr:`config`."""
        if self._allocator is None:
            self._allocator = PortAllocator(self.config)
        return self._allocator


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--registry-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="KITE_PORT_REGISTRY_FILE",
    help="Port registry file (default: ~/.sql-kite/runtime/.port-registry.json)",
)
@click.option(
    "--runtime-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding per-project run state",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in ALL_LOG_LEVELS]),
    help="Set logging level",
)
@click.version_option(package_name="kite-ports", prog_name="kite-ports")
@click.pass_context
def cli(
    ctx: click.Context,
    registry_file: Path | None,
    runtime_dir: Path | None,
    verbose: bool,
    log_level: str | None,
) -> None:
    """kite-ports - local port allocation registry for sql-kite projects."""
    if not isinstance(ctx.obj, Context):
        ctx.obj = Context(registry_file=registry_file, runtime_dir=runtime_dir)
    kite_ctx: Context = ctx.obj
    kite_ctx.verbose = verbose

    _configure_logging(verbose, log_level)
    logger.debug("kite-ports starting (registry=%s)", registry_file or "default")


cli.add_command(ports.status)
cli.add_command(ports.cleanup)
cli.add_command(ports.allocate)
cli.add_command(ports.release)
cli.add_command(ports.clear)


def main() -> None:
    """Serve as the console script entry point."""
    cli(prog_name="kite-ports")


if __name__ == "__main__":
    main()
