"""Rendering helpers for registry listings."""

from __future__ import annotations

from datetime import datetime

from kiteports.models import RegistryStatus

PROJECT_WIDTH = 20
PORT_WIDTH = 7


def format_epoch_ms(value: int | None) -> str:
    """Format epoch milliseconds as local time, or ``"never"``."""
    if value is None:
        return "never"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


def allocation_rows(status: RegistryStatus) -> list[str]:
    """Table rows (header, rule, one line per entry) sorted by port."""
    header = (
        f"{'Project':<{PROJECT_WIDTH}} {'Port':<{PORT_WIDTH}} "
        f"{'Allocated At':<20} PID"
    )
    rows = [header, "─" * (len(header) + 6)]
    for name, entry in sorted(status.allocations.items(), key=lambda kv: kv[1].port):
        rows.append(
            f"{name:<{PROJECT_WIDTH}} {entry.port:<{PORT_WIDTH}} "
            f"{format_epoch_ms(entry.allocated_at):<20} {entry.owner_pid}",
        )
    return rows
