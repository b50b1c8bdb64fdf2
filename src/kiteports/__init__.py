"""Local port allocation registry.

Assigns unique TCP ports to independently launched local dev servers using a
shared registry file and OS socket probing, without a coordinating daemon.

Usage::

    from kiteports import PortAllocator, PortsConfig

    allocator = PortAllocator(PortsConfig.load())
    port = allocator.allocate(3000, "my-project")
"""

from kiteports.allocator import (
    PortAllocator,
    cleanup_stale_ports,
    find_free_port,
    get_allocator,
    get_port_status,
    release_port,
    reset_allocator,
)
from kiteports.config import PortsConfig
from kiteports.errors import (
    ConfigError,
    InvalidProjectNameError,
    KitePortsError,
    PortExhaustionError,
    ResourceExhaustedError,
)
from kiteports.liveness import LivenessChecker
from kiteports.markers import RunStateMarkers
from kiteports.models import PortRange, Registry, RegistryEntry, RegistryStatus
from kiteports.probe import SocketProber
from kiteports.reaper import StaleReaper
from kiteports.registry import RegistryStore
from kiteports.scanner import BatchScanner

__version__ = "0.1.0"

__all__ = [
    "BatchScanner",
    "ConfigError",
    "InvalidProjectNameError",
    "KitePortsError",
    "LivenessChecker",
    "PortAllocator",
    "PortExhaustionError",
    "PortRange",
    "PortsConfig",
    "Registry",
    "RegistryEntry",
    "RegistryStatus",
    "RegistryStore",
    "ResourceExhaustedError",
    "RunStateMarkers",
    "SocketProber",
    "StaleReaper",
    "cleanup_stale_ports",
    "find_free_port",
    "get_allocator",
    "get_port_status",
    "release_port",
    "reset_allocator",
]
