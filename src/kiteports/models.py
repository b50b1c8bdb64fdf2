"""Data model for the port registry."""

from __future__ import annotations

import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from kiteports.errors import ConfigError

# JSON keys of the shared registry file
KEY_PORTS = "ports"
KEY_LAST_CLEANUP = "last_cleanup"
KEY_PORT = "port"
KEY_ALLOCATED_AT = "allocated_at"
KEY_PID = "pid"
KEY_PID_STARTED_AT = "pid_started_at"

MIN_PORT = 1
MAX_PORT = 65535


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PortRange:
    """Inclusive range of TCP ports."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not (MIN_PORT <= self.start <= self.end <= MAX_PORT):
            msg = f"Invalid port range {self.start}-{self.end}"
            raise ConfigError(msg, details={"start": self.start, "end": self.end})

    def __contains__(self, port: object) -> bool:
        return isinstance(port, int) and self.start <= port <= self.end

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"

    def ports_from(self, first: int) -> range:
        """Ports of this range starting at ``first`` (clamped to the range)."""
        return range(max(first, self.start), self.end + 1)


@dataclass(frozen=True)
class RegistryEntry:
    """One project's port reservation.

    Entries are replaced wholesale, never modified in place.
    """

    project_name: str
    port: int
    allocated_at: int
    owner_pid: int
    owner_started_at: float | None = None

    @classmethod
    def from_dict(cls, project_name: str, raw: Any) -> RegistryEntry:
        """Parse one ``ports`` value from the registry file.

        Raises
        ------
        ValueError
            If the value is not a well-formed entry
        """
        if not isinstance(raw, dict):
            msg = f"entry for {project_name!r} is not an object"
            raise ValueError(msg)
        port = raw.get(KEY_PORT)
        pid = raw.get(KEY_PID)
        # bool is an int subclass; reject it explicitly
        if not isinstance(port, int) or isinstance(port, bool):
            msg = f"entry for {project_name!r} has invalid port {port!r}"
            raise ValueError(msg)
        if not isinstance(pid, int) or isinstance(pid, bool):
            msg = f"entry for {project_name!r} has invalid pid {pid!r}"
            raise ValueError(msg)
        allocated_at = raw.get(KEY_ALLOCATED_AT)
        started_at = raw.get(KEY_PID_STARTED_AT)
        return cls(
            project_name=project_name,
            port=port,
            allocated_at=(
                int(allocated_at) if isinstance(allocated_at, (int, float)) else 0
            ),
            owner_pid=pid,
            owner_started_at=(
                float(started_at) if isinstance(started_at, (int, float)) else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            KEY_PORT: self.port,
            KEY_ALLOCATED_AT: self.allocated_at,
            KEY_PID: self.owner_pid,
        }
        if self.owner_started_at is not None:
            data[KEY_PID_STARTED_AT] = self.owner_started_at
        return data


@dataclass
class Registry:
    """Full persisted registry state."""

    entries: dict[str, RegistryEntry] = field(default_factory=dict)
    last_cleanup: int | None = None

    def allocated_ports(self) -> set[int]:
        return {entry.port for entry in self.entries.values()}

    def owner_of(self, port: int) -> str | None:
        """Project holding ``port``, if any."""
        for name, entry in self.entries.items():
            if entry.port == port:
                return name
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            KEY_PORTS: {name: e.to_dict() for name, e in self.entries.items()},
            KEY_LAST_CLEANUP: self.last_cleanup,
        }


@dataclass(frozen=True)
class RegistryStatus:
    """Read-only snapshot of the registry for listing and diagnostics."""

    total_allocations: int
    allocations: dict[str, RegistryEntry]
    last_cleanup: int | None

    @classmethod
    def from_registry(cls, registry: Registry) -> RegistryStatus:
        return cls(
            total_allocations=len(registry.entries),
            allocations=dict(registry.entries),
            last_cleanup=registry.last_cleanup,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_allocations": self.total_allocations,
            "allocations": {
                name: {
                    "port": entry.port,
                    "allocated_at": entry.allocated_at,
                    "pid": entry.owner_pid,
                }
                for name, entry in self.allocations.items()
            },
            "last_cleanup": self.last_cleanup,
        }
