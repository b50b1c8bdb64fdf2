"""OS-level port availability probing."""

import contextlib
import errno
import socket

from kiteports.models import MAX_PORT, MIN_PORT
from kiteports_logging import TRACE, get_logger

logger = get_logger(__name__)

WILDCARD_HOST = "0.0.0.0"


def _set_reuse_option(sock: socket.socket) -> None:
    """Let the probe bind over TIME_WAIT but never over a live listener."""
    if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
        # Windows: SO_REUSEADDR there would allow stealing a bound port
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
    else:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)


class SocketProber:
    """Checks whether a TCP port can be bound right now.

    The answer is momentary: another process may take the port the instant
    after :meth:`is_available` returns. Callers treat that as expected and
    re-check at reservation time.

    Parameters
    ----------
    host : str
        Address to bind; the wildcard address catches listeners on any
        interface
    """

    def __init__(self, host: str = WILDCARD_HOST) -> None:
        self.host = host

    def is_available(self, port: int) -> bool:
        """Bind and listen on ``port``, then release it immediately.

        Parameters
        ----------
        port : int
            Port to probe

        Returns
        -------
        bool
            True if the bind succeeded, False for address-in-use, permission
            denied, or any other socket error
        """
        if not MIN_PORT <= port <= MAX_PORT:
            return False

        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = None
        try:
            sock = socket.socket(family, socket.SOCK_STREAM)
            _set_reuse_option(sock)
            sock.bind((self.host, port))
            sock.listen(1)
        except OSError as e:
            if e.errno in (errno.EADDRINUSE, errno.EACCES):
                logger.log(TRACE, "Port %d unavailable: %s", port, e)
            else:
                logger.debug("Probe of port %d failed: %s", port, e)
            return False
        finally:
            if sock is not None:
                with contextlib.suppress(OSError):
                    sock.close()

        logger.log(TRACE, "Port %d is free", port)
        return True
