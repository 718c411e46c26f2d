"""
=============================================================================
LISTENING SOCKET
=============================================================================

Owns the listening socket: picks the address family, binds, listens, and
hands each accepted client to a callback.

=============================================================================
CHOOSING WHAT TO BIND
=============================================================================

    ┌──────────────────────┬───────────┬───────────────────────────────────┐
    │  host / ipv6         │  family   │  bound to                         │
    ├──────────────────────┼───────────┼───────────────────────────────────┤
    │  None / False        │  INET6    │  "::" with IPV6_V6ONLY=0          │
    │                      │           │  (IPv4 clients arrive as          │
    │                      │           │   ::ffff:a.b.c.d)                 │
    │                      │  INET     │  "0.0.0.0" if the host has no     │
    │                      │           │   dual-stack support              │
    │  None / True         │  INET6    │  "::" with IPV6_V6ONLY=1          │
    │  "localhost" / False │  from getaddrinfo(AI_PASSIVE), first result   │
    │  "localhost" / True  │  getaddrinfo restricted to AF_INET6           │
    └──────────────────────┴───────────┴───────────────────────────────────┘

Port None binds port 0: the OS picks a free port, readable afterwards from
`address`.

=============================================================================
LIFECYCLE
=============================================================================

    server = SocketServer(config)
    server.bind()                      ← may raise OSError, nothing leaks
    server.serve_forever(on_connect)   ← blocks; accept() wakes every second
                                          to notice shutdown()
    server.shutdown()                  ← from another thread or a signal

SIGINT and SIGTERM trigger shutdown() while serve_forever() runs, but only
when it runs in the main thread (Python only delivers signals there).

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, List, Optional, Tuple

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)

BindTarget = Tuple[int, Tuple, Optional[bool]]


def resolve_bind_target(host: Optional[str], port: int, ipv6: bool = False) -> BindTarget:
    """
    Decide family, socket address and IPV6_V6ONLY for a host/port pair.

    Returns:
        (family, sockaddr, v6only) where v6only None means "leave the
        OS default alone".

    Raises:
        socket.gaierror: If `host` cannot be resolved.
    """
    if host is None:
        if ipv6:
            return socket.AF_INET6, ("::", port), True
        if socket.has_dualstack_ipv6():
            return socket.AF_INET6, ("::", port), False
        return socket.AF_INET, ("0.0.0.0", port), None

    family = socket.AF_INET6 if ipv6 else socket.AF_UNSPEC
    infos = socket.getaddrinfo(
        host, port, family, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
    )
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr, (True if ipv6 else None)


class SocketServer:
    """
    Accept loop over one listening socket.

    Each accepted client is wrapped in a Connection configured from the
    ServerConfig and passed to the callback given to serve_forever().
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._stopped = threading.Event()
        self._stopped.set()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def family(self) -> Optional[int]:
        return self._socket.family if self._socket else None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Actual bound (host, port), None before bind()."""
        if self._socket is None:
            return None
        sockname = self._socket.getsockname()
        return (sockname[0], sockname[1])

    # =========================================================================
    # BIND
    # =========================================================================

    def bind(self) -> Tuple[str, int]:
        """
        Create, bind and listen.

        Returns:
            The bound (host, port).

        Raises:
            OSError: Address in use, permission denied, unknown host...
                     The socket is closed before the error propagates.
        """
        if self._socket is not None:
            return self.address

        family, sockaddr, v6only = resolve_bind_target(
            self.config.host, self.config.bind_port, self.config.ipv6
        )

        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if family == socket.AF_INET6 and v6only is not None:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, int(v6only))
            sock.bind(sockaddr)
            sock.listen(self.config.backlog)
        except OSError:
            sock.close()
            raise

        # accept() wakes up periodically to notice shutdown()
        sock.settimeout(1.0)
        self._socket = sock
        logger.debug("Bound to %s", self.address)
        return self.address

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def serve_forever(self, on_connection: Callable[[Connection], None]) -> None:
        """
        Accept connections until shutdown(). Binds first if needed.

        Closes the listening socket on return.
        """
        self.bind()
        self._running = True
        self._stopped.clear()
        self._install_signals()

        try:
            while self._running:
                try:
                    client, client_address = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._running:
                        logger.error("Accept error: %s", e)
                    break

                conn = Connection(
                    socket=client,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                    max_request_size=self.config.max_request_size,
                )
                logger.debug("[%s] Accepted %s", conn.id, conn.client_address)
                on_connection(conn)
        finally:
            self._restore_signals()
            self.close()
            self._running = False
            self._stopped.set()

    def shutdown(self) -> None:
        """Ask the accept loop to stop. Safe to call more than once."""
        self._running = False

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def close(self) -> None:
        """Release the listening socket."""
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _install_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info("Received %s, shutting down...", signal.Signals(signum).name)
            self.shutdown()

        signals: List[int] = [signal.SIGINT, signal.SIGTERM]
        for sig in signals:
            self._original_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signals(self) -> None:
        for sig, previous in self._original_handlers.items():
            signal.signal(sig, previous)
        self._original_handlers.clear()
