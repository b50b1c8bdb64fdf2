"""Process liveness checks for registry entry owners."""

from __future__ import annotations

import psutil

from kiteports_logging import get_logger

logger = get_logger(__name__)

# psutil reports create_time as a float derived from boot time + ticks; allow
# for rounding differences between reads
START_TIME_TOLERANCE_S = 1.0


def process_start_time(pid: int) -> float | None:
    """Return the creation time of ``pid``, or None if it cannot be read."""
    try:
        return psutil.Process(pid).create_time()
    except (psutil.Error, OSError) as e:
        logger.debug("Cannot read start time of pid %d: %s", pid, e)
        return None


class LivenessChecker:
    """Non-destructive existence probe for owner processes.

    A bare pid check can report a recycled pid as alive. When the entry
    recorded the owner's creation time, it is compared as well.
    """

    def __init__(self, start_time_tolerance: float = START_TIME_TOLERANCE_S) -> None:
        self.start_time_tolerance = start_time_tolerance

    def is_alive(self, pid: int, started_at: float | None = None) -> bool:
        """Check whether ``pid`` is a running process.

        Parameters
        ----------
        pid : int
            Process identifier
        started_at : float, optional
            Expected creation time of the process

        Returns
        -------
        bool
            True if running (or present but not inspectable due to
            permissions), False otherwise
        """
        if pid <= 0:
            return False

        try:
            if not psutil.pid_exists(pid):
                return False
            proc = psutil.Process(pid)
            if proc.status() == psutil.STATUS_ZOMBIE:
                logger.debug("Pid %d is a zombie", pid)
                return False
            if started_at is not None:
                actual = proc.create_time()
                if abs(actual - started_at) > self.start_time_tolerance:
                    logger.debug(
                        "Pid %d was recycled (started %.2f, expected %.2f)",
                        pid,
                        actual,
                        started_at,
                    )
                    return False
            return True
        except psutil.AccessDenied:
            # Exists but owned by someone else
            return True
        except (psutil.Error, OSError) as e:
            logger.debug("Liveness check for pid %d failed: %s", pid, e)
            return False
