"""Tiered port allocation for locally launched project servers.

Search order, stopping at the first port that is both OS-free and reserved:

1. auto cleanup of stale registry entries
2. the port the project already holds, if still effectively reserved
3. the preferred port
4. a batch of consecutive ports from the preferred port, probed concurrently
5. sequential scan of the primary range
6. sequential scan of the fallback range, then the extended range

Losing a reservation race at any step just moves the search on.
"""

from __future__ import annotations

from collections.abc import Iterable

from kiteports.config import PortsConfig
from kiteports.errors import PortExhaustionError
from kiteports.liveness import LivenessChecker
from kiteports.markers import RunStateMarkers
from kiteports.models import RegistryEntry, RegistryStatus
from kiteports.probe import SocketProber
from kiteports.reaper import StaleReaper
from kiteports.registry import RegistryStore
from kiteports.scanner import BatchScanner
from kiteports.validation import validate_project_name
from kiteports_logging import get_logger

logger = get_logger(__name__)

DEFAULT_PREFERRED_PORT = 3000


class PortAllocator:
    """Public entry point composing prober, scanner, store and reaper.

    Collaborators default to instances built from ``config``; pass them in to
    share a store or substitute a prober.

    Parameters
    ----------
    config : PortsConfig
        Ranges, limits and file locations
    store : RegistryStore, optional
    prober : SocketProber, optional
    scanner : BatchScanner, optional
    markers : RunStateMarkers, optional
    liveness : LivenessChecker, optional
    reaper : StaleReaper, optional
    """

    def __init__(
        self,
        config: PortsConfig,
        store: RegistryStore | None = None,
        prober: SocketProber | None = None,
        scanner: BatchScanner | None = None,
        markers: RunStateMarkers | None = None,
        liveness: LivenessChecker | None = None,
        reaper: StaleReaper | None = None,
    ) -> None:
        self.config = config
        self.prober = prober or SocketProber(config.probe_host)
        self.store = store or RegistryStore.from_config(config, prober=self.prober)
        self.scanner = scanner or BatchScanner(self.prober, config.batch_workers)
        self.markers = markers or RunStateMarkers(config.runtime_dir)
        self.liveness = liveness or LivenessChecker()
        self.reaper = reaper or StaleReaper(
            self.store,
            self.markers,
            self.liveness,
            interval_s=config.cleanup_interval_s,
        )

    @classmethod
    def from_env(cls, **overrides) -> PortAllocator:
        """Build an allocator from the user config and ``KITE_*`` variables."""
        return cls(PortsConfig.load(**overrides))

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def allocate(
        self,
        preferred_port: int,
        project_name: str,
        owner_pid: int | None = None,
    ) -> int:
        """Find, reserve and return a free port for ``project_name``.

        Parameters
        ----------
        preferred_port : int
            Port to try first; also where the primary-range scan starts
        project_name : str
            Registry key of the project
        owner_pid : int, optional
            Process to record as owner; defaults to the calling process

        Returns
        -------
        int
            Reserved port

        Raises
        ------
        PortExhaustionError
            If no port is free in any configured range
        InvalidProjectNameError
            If ``project_name`` is not a valid project name
        """
        name = validate_project_name(project_name)
        self.reaper.auto_cleanup()

        port = self._reuse_existing(name, owner_pid)
        if port is not None:
            return port

        primary = self.config.primary_range
        # Ports found busy during this call are not probed again
        busy: set[int] = set()

        port = self._try_preferred(name, preferred_port, owner_pid, busy)
        if port is not None:
            return port

        scan_start = max(preferred_port, primary.start)
        port = self._try_batch(name, scan_start, owner_pid, busy)
        if port is not None:
            return port

        searches = (
            primary.ports_from(scan_start),
            iter(self.config.fallback_range),
            iter(self.config.extended_range),
        )
        for candidates in searches:
            port = self._scan_sequential(name, candidates, owner_pid, busy)
            if port is not None:
                return port

        low, high = self.config.search_bounds
        logger.error("No free port for %s in %d-%d", name, low, high)
        raise PortExhaustionError(
            low,
            high,
            ranges=[(r.start, r.end) for r in self.config.ranges],
            project_name=name,
        )

    def release(self, project_name: str) -> bool:
        """Release the project's port; False if it held none."""
        return self.store.release(project_name)

    def status(self) -> RegistryStatus:
        return self.store.status()

    def cleanup(self) -> int:
        """Run a reaper pass regardless of when the last one ran."""
        return self.reaper.cleanup()

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _owner_is_live(self, entry: RegistryEntry) -> bool:
        return self.markers.exists(entry.project_name) and self.liveness.is_alive(
            entry.owner_pid,
            entry.owner_started_at,
        )

    def _reuse_existing(self, name: str, owner_pid: int | None) -> int | None:
        entry = self.store.get(name)
        if entry is None:
            return None

        # Free: nobody took it since the project last ran. Busy but owned by
        # the project's own live server: still ours.
        if self.prober.is_available(entry.port) or self._owner_is_live(entry):
            logger.debug("Reusing port %d for %s", entry.port, name)
            # The entry now belongs to the caller, not the previous owner
            return self.store.renew(name, entry.port, owner_pid=owner_pid)

        logger.info(
            "Port %d of %s was taken by another process; reallocating",
            entry.port,
            name,
        )
        self.store.release(name)
        return None

    def _reserve(self, name: str, port: int, owner_pid: int | None) -> int | None:
        reserved = self.store.reserve(name, port, owner_pid=owner_pid)
        if reserved is None:
            logger.debug("Lost reservation race for port %d; continuing", port)
        return reserved

    def _try_preferred(
        self,
        name: str,
        preferred_port: int,
        owner_pid: int | None,
        busy: set[int],
    ) -> int | None:
        if preferred_port not in self.config.primary_range:
            return None
        if preferred_port in self.store.allocated_ports():
            return None
        if not self.prober.is_available(preferred_port):
            busy.add(preferred_port)
            return None
        return self._reserve(name, preferred_port, owner_pid)

    def _try_batch(
        self,
        name: str,
        start: int,
        owner_pid: int | None,
        busy: set[int],
    ) -> int | None:
        primary = self.config.primary_range
        end = min(start + self.config.batch_size - 1, primary.end)
        allocated = self.store.allocated_ports()
        window = [
            p for p in range(start, end + 1) if p not in allocated and p not in busy
        ]
        if not window:
            return None

        hit = self.scanner.scan(window)
        if hit is None:
            busy.update(window)
            return None
        # Everything ahead of the hit was probed busy
        busy.update(window[: window.index(hit)])
        return self._reserve(name, hit, owner_pid)

    def _scan_sequential(
        self,
        name: str,
        candidates: Iterable[int],
        owner_pid: int | None,
        busy: set[int],
    ) -> int | None:
        allocated = self.store.allocated_ports()
        attempts = 0
        for port in candidates:
            if port in allocated or port in busy:
                continue
            if attempts >= self.config.max_attempts:
                logger.debug(
                    "Giving up on range after %d probes (stopped at %d)",
                    attempts,
                    port,
                )
                return None
            attempts += 1

            if not self.prober.is_available(port):
                busy.add(port)
                continue

            reserved = self._reserve(name, port, owner_pid)
            if reserved is not None:
                return reserved
            busy.add(port)
            # Another process wrote the registry; refresh before continuing
            allocated = self.store.allocated_ports()
        return None


# ----------------------------------------------------------------------
# Module-level convenience API backed by a lazily built default allocator
# ----------------------------------------------------------------------

_allocator: PortAllocator | None = None


def get_allocator() -> PortAllocator:
    """Return the default allocator, building it from the environment once."""
    global _allocator
    if _allocator is None:
        _allocator = PortAllocator.from_env()
    return _allocator


def reset_allocator() -> None:
    """Forget the default allocator so the next call rebuilds it."""
    global _allocator
    _allocator = None


def find_free_port(
    project_name: str,
    start_port: int = DEFAULT_PREFERRED_PORT,
    owner_pid: int | None = None,
) -> int:
    """Allocate a port for ``project_name`` using the default allocator."""
    return get_allocator().allocate(start_port, project_name, owner_pid=owner_pid)


def release_port(project_name: str) -> bool:
    """Release ``project_name``'s port using the default allocator."""
    return get_allocator().release(project_name)


def get_port_status() -> RegistryStatus:
    """Registry snapshot from the default allocator."""
    return get_allocator().status()


def cleanup_stale_ports() -> int:
    """Manual reaper pass using the default allocator."""
    return get_allocator().cleanup()
