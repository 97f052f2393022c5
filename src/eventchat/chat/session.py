"""
=============================================================================
CLIENT SESSION
=============================================================================

One connected client: its chat id, its line connection, and a dedicated
reader thread that turns incoming lines into tasks on the event loop.

=============================================================================
READER STATE MACHINE
=============================================================================

    ┌───────────┐   read_line()                    ┌──────────┐
    │ CONNECTED │──── LINE ──► submit on_line ────►│CONNECTED │ (loop)
    └───────────┘                                  └──────────┘
          │
          ├──── EOF   ──┐
          │             ├──► submit on_disconnect ──► CLOSED (thread ends)
          └──── ERROR ──┘

The reader thread never looks at the registry or at other sessions. It
only builds tasks. Because it submits its own tasks in the order it saw
the lines, the loop always processes a client's lines before that
client's disconnect.

An empty line is a line. Only end of stream or a read fault ends the
session.

=============================================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from ..core import EventLoop, LineConnection, ReadKind, WriteResult


logger = logging.getLogger(__name__)


class SessionState(Enum):
    CONNECTED = "connected"
    CLOSED = "closed"


class SessionHandler(ABC):
    """
    Receives a session's events. Both methods run on the event loop.
    """

    @abstractmethod
    def on_line(self, session: "ClientSession", line: str) -> None:
        """The client sent one line (may be empty)."""

    @abstractmethod
    def on_disconnect(self, session: "ClientSession") -> None:
        """The client is gone (closed the stream or the read failed)."""


class ClientSession:
    """
    Server-side representative of one chat client.

    Attributes:
        id: Chat id assigned by the registry (0, 1, 2, ...).
        connection: The client's line connection.
        state: CONNECTED until the reader thread sees EOF or an error.
    """

    def __init__(
        self,
        session_id: int,
        connection: LineConnection,
        loop: EventLoop,
        handler: SessionHandler,
    ):
        self.id = session_id
        self.connection = connection
        self.state = SessionState.CONNECTED

        self._loop = loop
        self._handler = handler
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"<ClientSession id={self.id} {self.state.value} {self.connection.address}>"

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def start(self) -> None:
        """Start the reader thread."""
        if self._thread is not None:
            raise RuntimeError(f"Session {self.id} already started")

        self._thread = threading.Thread(
            target=self._read_loop, name=f"ClientSession-{self.id}", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the reader thread to finish. True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _read_loop(self) -> None:
        while True:
            result = self.connection.read_line()

            if result.kind is ReadKind.LINE:
                self._loop.submit(self._handler.on_line, self, result.line)
                continue

            if result.kind is ReadKind.ERROR:
                logger.warning(f"Client <{self.id}> read failed: {result.error}")

            self._loop.submit(self._handler.on_disconnect, self)
            self.state = SessionState.CLOSED
            return

    # =========================================================================
    # EVENT LOOP SIDE
    # =========================================================================

    def send_line(self, text: str) -> WriteResult:
        """Write one line to this client. Call from loop tasks only."""
        return self.connection.send_line(text)

    def close(self) -> None:
        """Release the socket. The reader thread, if still blocked, sees EOF."""
        self.connection.close()
