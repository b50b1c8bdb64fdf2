"""Exception hierarchy for kite-ports.

Of the search outcomes only :class:`PortExhaustionError` reaches callers of
the allocator. Probe failures, registry corruption and reservation conflicts
are handled inside the registry and orchestrator. Bad input
(:class:`InvalidProjectNameError`) and a registry that cannot be written
(``FileOperationError``) are not search outcomes and propagate as well.
"""

from __future__ import annotations

from typing import Any


class KitePortsError(Exception):
    """Base error carrying structured details.

    Parameters
    ----------
    message : str
        Human-readable message
    details : dict, optional
        Structured context for diagnostics
    recoverable : bool
        Whether retrying the operation may succeed
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class ConfigError(KitePortsError):
    """Invalid port registry configuration."""


class InvalidProjectNameError(KitePortsError):
    """Project name is empty, too long, or contains disallowed characters."""


class ResourceExhaustedError(KitePortsError):
    """A finite resource ran out."""

    def __init__(
        self,
        message: str,
        resource_type: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.resource_type = resource_type


class PortExhaustionError(ResourceExhaustedError):
    """No free port was found in any configured range.

    Parameters
    ----------
    low : int
        Lowest port of the searched ranges
    high : int
        Highest port of the searched ranges
    ranges : list[tuple[int, int]], optional
        The individual ranges searched, in order
    project_name : str, optional
        Project the allocation was for
    """

    def __init__(
        self,
        low: int,
        high: int,
        ranges: list[tuple[int, int]] | None = None,
        project_name: str | None = None,
    ) -> None:
        message = (
            "Unable to find a free port. Please ensure you have available "
            f"ports in range {low}-{high}"
        )
        super().__init__(
            message,
            resource_type="port",
            details={
                "low": low,
                "high": high,
                "ranges": [list(r) for r in ranges or [(low, high)]],
                "project_name": project_name,
            },
        )
        self.low = low
        self.high = high
        self.ranges = list(ranges or [(low, high)])
