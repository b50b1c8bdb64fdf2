"""Shared port registry file.

Every invocation of the tool reads and rewrites the same JSON file; nothing
is cached between calls. Mutations are read-modify-write sequences guarded by
an advisory ``flock`` on a sibling ``.lock`` file, held only for the duration
of one operation. Writes go through a temp file and an atomic rename.
"""

from __future__ import annotations

import contextlib
import errno
import fcntl
import os
import random
import threading
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from kiteports.config import PortsConfig
from kiteports.liveness import process_start_time
from kiteports.models import (
    KEY_LAST_CLEANUP,
    KEY_PORTS,
    Registry,
    RegistryEntry,
    RegistryStatus,
    now_ms,
)
from kiteports.probe import SocketProber
from kiteports.validation import validate_project_name
from kiteports_common.io import (
    FileOperationError,
    ensure_dir,
    safe_read_json,
    safe_write_json,
)
from kiteports_logging import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_TIMEOUT_S = 5.0
_BACKOFF_INITIAL_S = 0.02
_BACKOFF_CAP_S = 0.5


class RegistryStore:
    """Read, write and reserve against the shared registry file.

    Parameters
    ----------
    registry_file : Path
        Path of the JSON registry
    prober : SocketProber, optional
        Prober used to verify OS-level availability during reservation
    lock_file : Path, optional
        Advisory lock file; defaults to ``<registry_file>.lock``
    lock_enabled : bool
        Guard read-modify-write sequences with the lock file
    lock_timeout : float
        Seconds to wait for the lock before continuing without it
    """

    def __init__(
        self,
        registry_file: Path,
        prober: SocketProber | None = None,
        lock_file: Path | None = None,
        lock_enabled: bool = True,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_S,
    ) -> None:
        self.registry_file = Path(registry_file)
        self.lock_file = (
            Path(lock_file)
            if lock_file
            else self.registry_file.with_name(self.registry_file.name + ".lock")
        )
        self.prober = prober or SocketProber()
        self.lock_enabled = lock_enabled
        self.lock_timeout = lock_timeout
        self._local = threading.local()

    @classmethod
    def from_config(
        cls,
        config: PortsConfig,
        prober: SocketProber | None = None,
    ) -> RegistryStore:
        """Build a store from a :class:`PortsConfig`."""
        assert config.registry_file is not None
        return cls(
            config.registry_file,
            prober=prober or SocketProber(config.probe_host),
            lock_file=config.lock_file,
            lock_enabled=config.lock_enabled,
            lock_timeout=config.lock_timeout_s,
        )

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _lock(self) -> Iterator[bool]:
        """Hold the registry lock for one read-modify-write sequence.

        Re-entrant within a thread. Yields whether the lock is actually held;
        after ``lock_timeout``, or when the lock file cannot be opened, the
        caller proceeds optimistically without it.
        """
        if not self.lock_enabled or getattr(self._local, "depth", 0) > 0:
            self._local.depth = getattr(self._local, "depth", 0) + 1
            try:
                yield self.lock_enabled
            finally:
                self._local.depth -= 1
            return

        try:
            ensure_dir(self.lock_file.parent)
            lock_fd = self.lock_file.open("a+")
        except (FileOperationError, OSError) as e:
            logger.warning(
                "Cannot open registry lock %s; continuing without it: %s",
                self.lock_file,
                e,
            )
            lock_fd = None

        with contextlib.ExitStack() as stack:
            if lock_fd is not None:
                stack.enter_context(lock_fd)
            acquired = lock_fd is not None and self._acquire(lock_fd.fileno())
            self._local.depth = 1
            try:
                yield acquired
            finally:
                self._local.depth = 0
                if acquired:
                    fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)

    def _acquire(self, fd: int) -> bool:
        start = time.monotonic()
        delay = _BACKOFF_INITIAL_S
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return True
            except OSError as e:
                if e.errno not in (errno.EAGAIN, errno.EWOULDBLOCK):
                    raise
            waited = time.monotonic() - start
            if waited >= self.lock_timeout:
                logger.warning(
                    "Registry lock %s busy for %.2fs; continuing without it",
                    self.lock_file,
                    waited,
                )
                return False
            time.sleep(min(delay, _BACKOFF_CAP_S) + random.uniform(0, 0.01))
            delay = min(delay * 2.0, _BACKOFF_CAP_S)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Registry]:
        """Load the registry under the lock and persist it on clean exit."""
        with self._lock():
            registry = self.read()
            yield registry
            self.write(registry)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def read(self) -> Registry:
        """Load the current registry.

        A missing, unreadable or malformed file is treated as an empty
        registry, which is persisted straight away under the lock unless
        another writer produced a valid file in the meantime.
        """
        with contextlib.suppress(FileOperationError):
            return self._load()

        with self._lock():
            try:
                return self._load()
            except FileOperationError as e:
                if self.registry_file.exists():
                    logger.warning(
                        "Port registry %s is corrupt, reinitializing: %s",
                        self.registry_file,
                        e,
                    )
                else:
                    logger.debug("Creating port registry %s", self.registry_file)

            registry = Registry()
            try:
                self.write(registry)
            except FileOperationError as e:
                logger.warning("Could not reinitialize port registry: %s", e)
            return registry

    def _load(self) -> Registry:
        return self._parse(safe_read_json(self.registry_file))

    def _parse(self, data: dict[str, Any]) -> Registry:
        ports = data.get(KEY_PORTS)
        if not isinstance(ports, dict):
            msg = f"'{KEY_PORTS}' is missing or not an object"
            raise FileOperationError(msg)

        entries: dict[str, RegistryEntry] = {}
        for name, raw in ports.items():
            try:
                entries[name] = RegistryEntry.from_dict(name, raw)
            except ValueError as e:
                logger.warning("Dropping malformed registry entry: %s", e)

        last_cleanup = data.get(KEY_LAST_CLEANUP)
        if not isinstance(last_cleanup, (int, float)) or isinstance(last_cleanup, bool):
            last_cleanup = None
        return Registry(
            entries=entries,
            last_cleanup=int(last_cleanup) if last_cleanup is not None else None,
        )

    def write(self, registry: Registry) -> None:
        """Replace the registry file with ``registry`` in full.

        Raises
        ------
        FileOperationError
            If the file cannot be written
        """
        safe_write_json(self.registry_file, registry.to_dict())

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get(self, project_name: str) -> RegistryEntry | None:
        return self.read().entries.get(project_name)

    def allocated_ports(self) -> set[int]:
        return self.read().allocated_ports()

    def reserve(
        self,
        project_name: str,
        port: int,
        owner_pid: int | None = None,
    ) -> int | None:
        """Claim ``port`` for ``project_name`` (check-then-write).

        If the project already holds a port that a live listener still
        occupies, that port is returned and the entry is re-issued to the
        new owner. If its old port is bindable again the old entry is stale
        and is replaced.

        Parameters
        ----------
        project_name : str
            Project to reserve for
        port : int
            Requested port
        owner_pid : int, optional
            Owning process; defaults to the current process

        Returns
        -------
        int | None
            The reserved (or already owned) port, or None when ``port`` is
            held by another project or is busy at the OS level
        """
        name = validate_project_name(project_name)
        owner = owner_pid if owner_pid is not None else os.getpid()

        with self._lock():
            registry = self.read()

            existing = registry.entries.get(name)
            if existing is not None:
                if self.prober.is_available(existing.port):
                    logger.debug(
                        "Dropping stale entry %s -> %d (nothing listening)",
                        name,
                        existing.port,
                    )
                    del registry.entries[name]
                else:
                    logger.debug(
                        "%s already owns port %d with a live listener",
                        name,
                        existing.port,
                    )
                    registry.entries[name] = _owned_entry(name, existing.port, owner)
                    self.write(registry)
                    return existing.port

            holder = registry.owner_of(port)
            if holder is not None:
                logger.debug("Port %d already reserved by %s", port, holder)
                return None

            if not self.prober.is_available(port):
                logger.debug("Port %d taken before it could be reserved", port)
                return None

            registry.entries[name] = _owned_entry(name, port, owner)
            self.write(registry)

        logger.info("Reserved port %d for %s (pid %d)", port, name, owner)
        return port

    def renew(
        self,
        project_name: str,
        port: int,
        owner_pid: int | None = None,
    ) -> int | None:
        """Re-issue the project's existing reservation of ``port``.

        The entry is replaced in full: the new owner, its start time and a
        fresh allocation time are recorded, so a restarted server is not
        judged by its predecessor's process.

        Parameters
        ----------
        project_name : str
            Project holding the reservation
        port : int
            Port the caller expects the project to hold
        owner_pid : int, optional
            New owning process; defaults to the current process

        Returns
        -------
        int | None
            ``port``, or None when the project no longer holds it
        """
        name = validate_project_name(project_name)
        owner = owner_pid if owner_pid is not None else os.getpid()

        with self._lock():
            registry = self.read()
            existing = registry.entries.get(name)
            if existing is None or existing.port != port:
                logger.debug("%s no longer holds port %d", name, port)
                return None
            registry.entries[name] = _owned_entry(name, port, owner)
            self.write(registry)

        logger.debug("Renewed port %d for %s (pid %d)", port, name, owner)
        return port

    def release(self, project_name: str) -> bool:
        """Remove the project's entry; return whether one existed."""
        with self._lock():
            registry = self.read()
            entry = registry.entries.pop(project_name, None)
            if entry is None:
                return False
            self.write(registry)

        logger.info("Released port %d for %s", entry.port, project_name)
        return True

    def status(self) -> RegistryStatus:
        """Snapshot of all allocations and the last cleanup time."""
        return RegistryStatus.from_registry(self.read())

    def clear(self) -> None:
        """Drop every allocation. For debugging a wedged registry."""
        with self._lock():
            self.write(Registry(last_cleanup=now_ms()))
        logger.warning("Cleared all port allocations in %s", self.registry_file)


def _owned_entry(name: str, port: int, owner: int) -> RegistryEntry:
    return RegistryEntry(
        project_name=name,
        port=port,
        allocated_at=now_ms(),
        owner_pid=owner,
        owner_started_at=process_start_time(owner),
    )
