"""
=============================================================================
LINE CONNECTION
=============================================================================

Wraps one accepted client socket as a bidirectional channel of text lines.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        send("hel")
        send("lo\nwor")
        send("ld\n")

    We must deliver exactly two lines: "hello" and "world".

socket.makefile() gives us a buffered text file on top of the socket, and
its readline() does the reassembly for us: it keeps calling recv() until it
sees "\n" (or the peer closes), and keeps any extra bytes for the next call.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │  hello\n                 → line "hello"                          │
    │  hello\r\n               → line "hello"  (\r\n accepted too)     │
    │  \n                      → line ""       (empty, still a line!)  │
    │  <FIN>                   → end of stream                         │
    │  hel<FIN>                → line "hel", then end of stream        │
    └─────────────────────────────────────────────────────────────────┘

Outbound: every send_line() writes text + "\n" and flushes immediately.
No batching, no envelope, no length prefix.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──────► CLOSED

There is no read timeout: a silent peer keeps its reader thread blocked
in readline() until it sends something or goes away.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import IO, Optional

from .results import ReadResult, WriteResult


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class LineConnection:
    """
    A client connection speaking newline-delimited text.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Who calls what                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read_line()   the session's reader thread ONLY                    │
    │   send_line()   event loop tasks ONLY                               │
    │   close()       event loop tasks (after disconnect)                 │
    │                                                                      │
    │   One reader, one writer: reads and writes never race each other.   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        encoding: Text encoding for both directions.
        id: Short random identifier (for logging before a chat id exists).
        state: OPEN or CLOSED.
        created_at: Timestamp when the connection was accepted.
        lines_read: Number of lines received.
        lines_sent: Number of lines successfully sent.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    encoding: str = "utf-8"

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    created_at: float = field(default_factory=time.time)
    lines_read: int = 0
    lines_sent: int = 0

    # Internal state (not shown in repr for cleaner logs)
    _reader: Optional[IO[str]] = field(default=None, repr=False)
    _writer: Optional[IO[str]] = field(default=None, repr=False)

    def __post_init__(self):
        """
        Build the buffered reader and writer.

        This is local setup only, no network round trip, so it is fine to do
        on the event loop.
        """
        # Blocking mode, no timeout: a read waits as long as the peer is silent
        self.socket.settimeout(None)

        # newline="\n": split on \n only and write \n verbatim, whatever the platform
        self._reader = self.socket.makefile(
            "r", encoding=self.encoding, errors="replace", newline="\n"
        )
        self._writer = self.socket.makefile(
            "w", encoding=self.encoding, errors="replace", newline="\n"
        )

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> ReadResult:
        """
        Block until one full line arrives, the peer closes, or the read fails.

        The terminator ("\\n", or "\\r\\n") is removed; everything else is
        returned exactly as received, including leading/trailing spaces.

        Returns:
            ReadResult LINE with the text, EOF, or ERROR with the exception.
        """
        try:
            raw = self._reader.readline()
        except (OSError, ValueError) as e:
            # ValueError: the file was closed underneath us
            return ReadResult.failed(e)

        if raw == "":
            return ReadResult.eof()

        if raw.endswith("\n"):
            raw = raw[:-1]
            if raw.endswith("\r"):
                raw = raw[:-1]

        self.lines_read += 1
        return ReadResult.of_line(raw)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_line(self, text: str) -> WriteResult:
        """
        Write one line and flush it right away.

        Blocks while the kernel send buffer is full. On the event loop that
        stalls every other task (head-of-line blocking).

        Returns:
            WriteResult ok, or failed with the exception.
        """
        try:
            self._writer.write(text + "\n")
            self._writer.flush()
        except (OSError, ValueError) as e:
            return WriteResult.failed(e)

        self.lines_sent += 1
        return WriteResult.success()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once.

        shutdown() first, so a reader thread still blocked in readline()
        wakes up with end of stream instead of hanging on a dead socket.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Peer already gone

        # The makefile() objects hold references to the socket; the file
        # descriptor is only released once all three are closed.
        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except (OSError, ValueError):
                pass  # Unflushed data to a dead peer

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(
            f"[{self.id}] Connection closed after {self.lines_read} lines in, "
            f"{self.lines_sent} lines out"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
