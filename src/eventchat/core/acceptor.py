"""
=============================================================================
CONNECTION ACCEPTOR
=============================================================================

Owns the listening socket and a background thread that does nothing but
accept() connections and hand them to the event loop.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT    ┐ in __init__:
    3. listen()    Mark socket as a "listening" socket     ┘ fail fast
    4. accept()    Wait for and accept an incoming connection (thread)
    5. close()     Release the socket resources

Binding happens in the constructor so that "port already in use" is
reported at startup, on the main thread, before anything else runs. That
is the one fatal error of the whole server.

=============================================================================
THE ACCEPT THREAD NEVER TOUCHES SHARED STATE
=============================================================================

    ┌──────────────────────┐               ┌──────────────────────────────┐
    │   Acceptor thread    │               │       Event loop thread      │
    ├──────────────────────┤               ├──────────────────────────────┤
    │ accept()             │               │                              │
    │   │                  │   submit()    │                              │
    │   └─ wrap socket ────┼──────────────►│ on_accepted(conn)            │
    │ accept()             │               │   └─ registry.on_connect()   │
    │   ...                │               │                              │
    └──────────────────────┘               └──────────────────────────────┘

A failed accept() is logged and the loop keeps going: one bad connection
attempt must not take the server down.

=============================================================================
"""

import socket
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..errors import BindError
from .connection import LineConnection
from .event_loop import EventLoop
from .results import AcceptResult


logger = logging.getLogger(__name__)

# accept() wakes up this often to notice close()
ACCEPT_POLL_INTERVAL = 1.0

# Pause after a failed accept() so a persistent error (e.g. out of file
# descriptors) doesn't spin the thread
ACCEPT_ERROR_PAUSE = 0.1


class ConnectionAcceptor:
    """
    Listening socket plus accept thread.

    Usage:
        def on_accepted(conn: LineConnection):
            # Runs on the event loop
            ...

        acceptor = ConnectionAcceptor(loop, on_accepted, host="0.0.0.0", port=5000)
        acceptor.start()
    """

    def __init__(
        self,
        loop: EventLoop,
        on_accepted: Callable[[LineConnection], None],
        host: str = "0.0.0.0",
        port: int = 5000,
        backlog: int = 128,
        encoding: str = "utf-8",
    ):
        """
        Create, bind and listen. Does NOT start accepting yet.

        Raises:
            BindError: If the address can't be bound (in use, no permission).
        """
        self._loop = loop
        self._on_accepted = on_accepted
        self._encoding = encoding

        self._socket: Optional[socket.socket] = self._create_socket()

        try:
            self._socket.bind((host, port))
            self._socket.listen(backlog)
        except OSError as e:
            self._socket.close()
            self._socket = None
            raise BindError(host, port, e) from e

        self._address: Tuple[str, int] = self._socket.getsockname()[:2]

        self._running = False
        self._thread: Optional[threading.Thread] = None

        # Metrics
        self.accepted = 0
        self.accept_errors = 0

        logger.info(f"Listening on {self._address[0]}:{self._address[1]}")

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when 0 was requested."""
        return self._address

    def _create_socket(self) -> socket.socket:
        """Create the TCP listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: restart on the same port without waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Bounded accept() so the thread can notice close()
        sock.settimeout(ACCEPT_POLL_INTERVAL)

        return sock

    # =========================================================================
    # ACCEPT THREAD
    # =========================================================================

    def start(self) -> None:
        """Start the accept thread. It lives until close()."""
        if self._thread is not None:
            raise RuntimeError("Acceptor already started")
        if self._socket is None:
            raise RuntimeError("Acceptor is closed")

        self._running = True
        self._thread = threading.Thread(
            target=self._accept_loop, name="ConnectionAcceptor", daemon=True
        )
        self._thread.start()

    def accept_one(self) -> AcceptResult:
        """
        Block (up to the poll interval) for one connection.

        Never raises; a timeout comes back as a failed result with a
        socket.timeout error, which the accept loop simply skips.
        """
        try:
            sock, address = self._socket.accept()
        except OSError as e:
            return AcceptResult(error=e)
        return AcceptResult(sock=sock, address=address)

    def _accept_loop(self) -> None:
        """
        ┌─────────────────────────────────────────────────────────────────┐
        │                     Accept Loop Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while running:                                                 │
        │       result = accept_one()                                      │
        │       ├── timeout      → check running, loop                     │
        │       ├── error        → log, loop                               │
        │       └── connection   → wrap, submit on_accepted to the loop    │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘
        """
        try:
            while self._running:
                result = self.accept_one()

                if result.ok:
                    self._hand_off(result)
                    continue

                if isinstance(result.error, socket.timeout):
                    continue

                if not self._running:
                    break  # close() pulled the socket out from under accept()

                self.accept_errors += 1
                logger.error(f"Accept error: {result.error}")
                time.sleep(ACCEPT_ERROR_PAUSE)
        finally:
            self._cleanup()

    def _hand_off(self, result: AcceptResult) -> None:
        logger.debug(f"Accepted connection from {result.address[0]}:{result.address[1]}")
        try:
            conn = LineConnection(
                socket=result.sock,
                address=result.address,
                encoding=self._encoding,
            )
        except OSError as e:
            self.accept_errors += 1
            logger.error(f"Could not set up connection from {result.address}: {e}")
            result.sock.close()
            return

        self.accepted += 1
        self._loop.submit(self._on_accepted, conn)

    # =========================================================================
    # SHUTDOWN (tests and embedding; the server itself never stops)
    # =========================================================================

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting and release the port. Safe to call more than once.

        Args:
            timeout: How long to wait for the accept thread to exit.
                     Defaults to a little over one poll interval.
        """
        self._running = False

        if self._thread is None:
            self._cleanup()
            return

        if self._thread is not threading.current_thread():
            self._thread.join(ACCEPT_POLL_INTERVAL * 2 if timeout is None else timeout)

    def _cleanup(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None
            logger.info("Acceptor stopped")
