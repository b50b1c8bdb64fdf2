"""Port registry commands.

Listing, manual cleanup, and allocate/release for scripts that launch
project servers themselves.
"""

import json

import click

from kiteports_cli.core.constants import ExitCode, Icons
from kiteports_cli.core.decorators import handle_exceptions
from kiteports_cli.core.formatting import allocation_rows, format_epoch_ms
from kiteports_cli.core.utils import CliOutput
from kiteports_logging import get_cli_logger

logger = get_cli_logger(__name__)


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw status as JSON")
@click.pass_context
@handle_exceptions
def status(ctx: click.Context, as_json: bool) -> None:
    """Show current port allocations."""
    snapshot = ctx.obj.allocator.status()

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2, sort_keys=True))
        return

    CliOutput.section("Port Registry Status", Icons.CHART)

    if snapshot.total_allocations == 0:
        CliOutput.dim("  No ports currently allocated")
        CliOutput.dim("  All projects are stopped")
        CliOutput.plain()
        return

    CliOutput.plain(f"  Total allocations: {snapshot.total_allocations}")
    CliOutput.plain()
    for row in allocation_rows(snapshot):
        CliOutput.plain(f"  {row}")
    CliOutput.plain()

    if snapshot.last_cleanup is not None:
        CliOutput.dim(f"  Last cleanup: {format_epoch_ms(snapshot.last_cleanup)}")
    CliOutput.dim(
        f"  {Icons.INFO} Run 'kite-ports cleanup' to remove stale allocations",
    )


@click.command()
@click.pass_context
@handle_exceptions
def cleanup(ctx: click.Context) -> None:
    """Remove stale port allocations now."""
    CliOutput.plain(f"{Icons.CLEAN} Cleaning up stale port allocations...")
    removed = ctx.obj.allocator.cleanup()
    CliOutput.success(f"{Icons.SUCCESS} Cleaned {removed} stale allocation(s)")


@click.command()
@click.argument("project")
@click.option(
    "--preferred",
    "-p",
    type=click.IntRange(1, 65535),
    default=3000,
    show_default=True,
    help="Port to try first",
)
@click.option(
    "--owner-pid",
    type=click.IntRange(min=1),
    help="Record this pid as owner instead of the CLI process",
)
@click.pass_context
@handle_exceptions
def allocate(
    ctx: click.Context,
    project: str,
    preferred: int,
    owner_pid: int | None,
) -> None:
    """Reserve a port for PROJECT and print it."""
    port = ctx.obj.allocator.allocate(preferred, project, owner_pid=owner_pid)
    logger.info("Allocated port %d for %s", port, project)
    click.echo(port)


@click.command()
@click.argument("project")
@click.pass_context
@handle_exceptions
def release(ctx: click.Context, project: str) -> None:
    """Release the port held by PROJECT."""
    if ctx.obj.allocator.release(project):
        CliOutput.success(f"{Icons.SUCCESS} Released port for {project}")
        return
    CliOutput.warning(f"{Icons.WARNING} {project} has no allocated port")
    ctx.exit(ExitCode.NOT_FOUND)


@click.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@handle_exceptions
def clear(ctx: click.Context, yes: bool) -> None:
    """Forget every allocation (debugging only)."""
    if not yes:
        click.confirm("Remove ALL port allocations?", abort=True)
    ctx.obj.allocator.store.clear()
    CliOutput.success(f"{Icons.TRASH} Cleared all port allocations")
