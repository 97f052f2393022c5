"""
=============================================================================
CHAT REGISTRY
=============================================================================

The live set of client sessions and the broadcast logic around it.

=============================================================================
SINGLE-WRITER OWNERSHIP
=============================================================================

Every method here runs as a task body on the event loop, and checks that
it does: calling one from any other thread raises WrongThreadError. Since
the loop runs one task at a time, the session list and the id counter need
no lock and no two of on_connect / on_line / on_disconnect ever interleave.

    ┌──────────────┐  submit(on_connect, conn)  ┌──────────────────────────┐
    │ Acceptor     │───────────────────────────►│                          │
    └──────────────┘                            │   Event loop             │
    ┌──────────────┐  submit(on_line, s, line)  │     │                    │
    │ Session-N    │───────────────────────────►│     ▼                    │
    │ reader       │  submit(on_disconnect, s)  │   ChatRegistry           │
    └──────────────┘───────────────────────────►│     _sessions, _next_id  │
                                                └──────────────────────────┘

=============================================================================
MESSAGES
=============================================================================

    Client <id> connected          console only
    Client <id> said: <line>       console + every other client
    Client <id> disconnected       console + every remaining client

The angle brackets are literal.

=============================================================================
BROADCAST FAULT POLICY
=============================================================================

A write that fails for one recipient is logged and skipped; the others
still get the message. The failing session stays registered: its own
reader thread will report the disconnect eventually, and until then it is
a "ghost" that keeps failing writes. There is no eager eviction.

=============================================================================
"""

import logging
from typing import Iterable, Optional, Tuple

from ..core import EventLoop, LineConnection
from ..errors import WrongThreadError
from ..logs import ChatEvent, log_chat_event
from .session import ClientSession, SessionHandler


logger = logging.getLogger(__name__)


def connected_message(client_id: int) -> str:
    return f"Client <{client_id}> connected"


def said_message(client_id: int, line: str) -> str:
    return f"Client <{client_id}> said: {line}"


def disconnected_message(client_id: int) -> str:
    return f"Client <{client_id}> disconnected"


class ChatRegistry(SessionHandler):
    """
    Loop-owned registry of live sessions.

    A session is in the registry exactly from the moment its on_connect
    task runs until its on_disconnect task runs. Order of the list is
    connect order.
    """

    def __init__(self, loop: EventLoop):
        self._loop = loop
        self._sessions: list[ClientSession] = []
        self._next_id = 0

    # =========================================================================
    # INSPECTION
    # =========================================================================

    @property
    def sessions(self) -> Tuple[ClientSession, ...]:
        """Snapshot of the live sessions, in connect order."""
        return tuple(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: object) -> bool:
        return any(s is session for s in self._sessions)

    def _check_thread(self) -> None:
        if not self._loop.in_loop_thread():
            raise WrongThreadError("ChatRegistry may only be used from event loop tasks")

    # =========================================================================
    # EVENT HANDLERS (task bodies)
    # =========================================================================

    def on_connect(self, connection: LineConnection) -> Optional[ClientSession]:
        """
        Register a freshly accepted connection and start reading from it.

        Returns:
            The new session, or None if it couldn't be set up (the
            connection is closed in that case).
        """
        self._check_thread()

        session_id = self._next_id
        self._next_id += 1

        try:
            session = ClientSession(session_id, connection, self._loop, self)
            self._sessions.append(session)
            session.start()
            log_chat_event(connected_message(session_id), ChatEvent("connected", session_id))
        except Exception as e:
            logger.exception(f"Could not set up client <{session_id}>: {e}")
            self._sessions = [s for s in self._sessions if s.id != session_id]
            connection.close()
            return None

        return session

    def on_line(self, session: ClientSession, line: str) -> None:
        """
        Relay one line from session to every other live session.

        Empty lines are relayed like any other line.
        """
        self._check_thread()

        message = said_message(session.id, line)
        log_chat_event(message, ChatEvent("said", session.id, text=line))
        self.broadcast(message, exclude=session)

    def on_disconnect(self, session: ClientSession) -> None:
        """
        Drop session and tell everyone who is left.

        Idempotent: for a session that is no longer registered this does
        nothing at all, no log line and no broadcast.
        """
        self._check_thread()

        if session not in self:
            logger.debug(f"Client <{session.id}> already removed")
            return

        self._sessions = [s for s in self._sessions if s is not session]

        message = disconnected_message(session.id)
        log_chat_event(message, ChatEvent("disconnected", session.id))
        session.close()
        self.broadcast(message, exclude=session)

    # =========================================================================
    # BROADCAST
    # =========================================================================

    def broadcast(self, message: str, exclude: Optional[ClientSession] = None) -> int:
        """
        Send message to every live session except exclude.

        Best effort per recipient: a failed write is logged and skipped.

        Returns:
            Number of sessions the message was delivered to.
        """
        self._check_thread()
        recipients = [s for s in self._sessions if s is not exclude]
        return self._send_all(message, recipients)

    def _send_all(self, message: str, recipients: Iterable[ClientSession]) -> int:
        delivered = 0

        for recipient in recipients:
            result = recipient.send_line(message)
            if result.ok:
                delivered += 1
            else:
                logger.warning(f"Could not deliver to client <{recipient.id}>: {result.error}")

        return delivered
