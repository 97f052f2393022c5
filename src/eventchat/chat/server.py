"""
=============================================================================
CHAT SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           ChatServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ChatConfig ──► ConnectionAcceptor ──(on_accepted)──┐               │
    │                   (thread)                           │               │
    │                                                      ▼               │
    │   EventLoop  ◄──────────── tasks ──────────── ChatRegistry           │
    │   (main thread)                                  │                   │
    │                                                  ▼                   │
    │                                    ClientSession × N (threads)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Threads: 1 event loop + 1 acceptor + 1 reader per connected client.

A request for a chat line travels:

    1. Client writes "hello\\n"
    2. Session-0 reader thread: read_line() → LINE "hello"
    3. Session-0 reader thread: loop.submit(registry.on_line, session0, "hello")
    4. Event loop: registry.on_line() → "Client <0> said: hello"
    5. Event loop: send_line() to every other session

=============================================================================
KNOWN LIMITATIONS
=============================================================================

- No read timeout: a silent client holds a reader thread forever.
- Thread per connection: fine for modest client counts.
- A slow client's write blocks the loop and delays everyone.
- A client whose writes fail stays registered until its reader reports
  the disconnect.
- The task queue is unbounded.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from ..config import ChatConfig
from ..core import ConnectionAcceptor, EventLoop
from .registry import ChatRegistry


logger = logging.getLogger(__name__)


class ChatServer:
    """
    Multi-client line chat server.

    Usage:
        server = ChatServer(ChatConfig(port=5000))   # binds, starts accepting
        server.run()                                 # runs the loop, never returns

    Raises BindError from the constructor when the port is unavailable.
    """

    def __init__(self, config: Optional[ChatConfig] = None, loop: Optional[EventLoop] = None):
        self.config = config or ChatConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._loop = loop if loop is not None else EventLoop()
        self._registry = ChatRegistry(self._loop)

        self._acceptor = ConnectionAcceptor(
            self._loop,
            self._registry.on_connect,
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
            encoding=self.config.encoding,
        )
        self._acceptor.start()

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def registry(self) -> ChatRegistry:
        """The live registry. Only touch it from tasks on the loop."""
        return self._registry

    @property
    def address(self) -> Tuple[str, int]:
        """The address actually bound."""
        return self._acceptor.address

    def run(self) -> None:
        """Run the event loop on the calling thread (blocks for the process lifetime)."""
        host, port = self.address
        logger.info(f"Chat server running on {host}:{port}")
        self._loop.run_forever()

    def close(self) -> None:
        """Stop accepting new clients. For tests and embedding."""
        self._acceptor.close()
