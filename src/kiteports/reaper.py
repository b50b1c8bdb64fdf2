"""Removal of registry entries whose owners are gone."""

from __future__ import annotations

from kiteports.errors import InvalidProjectNameError
from kiteports.liveness import LivenessChecker
from kiteports.markers import RunStateMarkers
from kiteports.models import now_ms
from kiteports.registry import RegistryStore
from kiteports_logging import get_logger

logger = get_logger(__name__)

DEFAULT_CLEANUP_INTERVAL_S = 3600.0


class StaleReaper:
    """Drops stale entries so their ports return to the pool.

    An entry is stale when its project has no run-state marker, or when the
    marker exists but the owning process is no longer running. In the latter
    case the dangling marker is deleted too.

    Parameters
    ----------
    store : RegistryStore
        Registry to clean
    markers : RunStateMarkers
        Run-state marker access
    liveness : LivenessChecker, optional
        Owner process check
    interval_s : float
        Minimum age of the last pass before :meth:`auto_cleanup` runs again
    """

    def __init__(
        self,
        store: RegistryStore,
        markers: RunStateMarkers,
        liveness: LivenessChecker | None = None,
        interval_s: float = DEFAULT_CLEANUP_INTERVAL_S,
    ) -> None:
        self.store = store
        self.markers = markers
        self.liveness = liveness or LivenessChecker()
        self.interval_s = interval_s

    def _has_marker(self, project_name: str) -> bool:
        try:
            return self.markers.exists(project_name)
        except InvalidProjectNameError:
            # Such a name can never have a marker directory
            return False

    def cleanup(self) -> int:
        """Run a reaper pass now.

        Returns
        -------
        int
            Number of entries removed
        """
        removed: list[str] = []
        with self.store.transaction() as registry:
            for name, entry in list(registry.entries.items()):
                if not self._has_marker(name):
                    logger.debug(
                        "No run-state marker for %s; releasing %d",
                        name,
                        entry.port,
                    )
                    del registry.entries[name]
                    removed.append(name)
                    continue

                if not self.liveness.is_alive(entry.owner_pid, entry.owner_started_at):
                    logger.debug(
                        "Owner pid %d of %s is gone; releasing %d",
                        entry.owner_pid,
                        name,
                        entry.port,
                    )
                    del registry.entries[name]
                    self.markers.remove(name)
                    removed.append(name)

            registry.last_cleanup = now_ms()

        if removed:
            logger.info(
                "Cleaned %d stale port allocation(s): %s",
                len(removed),
                ", ".join(sorted(removed)),
            )
        return len(removed)

    def is_due(self) -> bool:
        """Whether the last pass is missing or older than the interval."""
        last = self.store.read().last_cleanup
        return last is None or now_ms() - last > self.interval_s * 1000

    def auto_cleanup(self) -> int:
        """Run :meth:`cleanup` only when :meth:`is_due`; otherwise return 0."""
        if not self.is_due():
            return 0
        return self.cleanup()
