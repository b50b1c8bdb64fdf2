"""Concurrent probing of a small batch of candidate ports."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from kiteports.probe import SocketProber
from kiteports_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BATCH_WORKERS = 10


class BatchScanner:
    """Probe several ports at once and pick the first free one in input order.

    Only a latency optimization over probing one by one; the result is the
    same as a sequential scan of ``ports`` would give at that instant.

    Parameters
    ----------
    prober : SocketProber
        Prober used for each candidate
    max_workers : int
        Upper bound on concurrent probes
    """

    def __init__(
        self,
        prober: SocketProber,
        max_workers: int = DEFAULT_BATCH_WORKERS,
    ) -> None:
        self.prober = prober
        self.max_workers = max(1, max_workers)

    def scan(self, ports: Sequence[int]) -> int | None:
        """Return the lowest-index free port of ``ports``, or None.

        Parameters
        ----------
        ports : Sequence[int]
            Candidate ports, in preference order

        Returns
        -------
        int | None
            First available candidate by position in ``ports``
        """
        candidates = list(ports)
        if not candidates:
            return None

        workers = min(len(candidates), self.max_workers)
        with ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="kite-port-scan",
        ) as executor:
            # map() yields results in input order regardless of completion order
            results = list(executor.map(self.prober.is_available, candidates))

        for port, available in zip(candidates, results):
            if available:
                logger.debug(
                    "Batch scan of %d ports found %d free",
                    len(candidates),
                    port,
                )
                return port

        logger.debug("Batch scan found no free port among %s", candidates)
        return None
