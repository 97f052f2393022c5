"""
=============================================================================
EVENTCHAT - A Chat Server on a Single-Threaded Event Loop
=============================================================================

Blocking I/O runs on background threads. Shared state is touched by one
thread only: the event loop, which executes tasks from a queue one at a
time. Background threads never share anything except that queue.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     EVENTCHAT ARCHITECTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. EVENT LOOP CORE                                                │
    │      - Unbounded thread-safe task queue                             │
    │      - One consumer thread running tasks in FIFO order              │
    │      - A failing task is logged, the loop carries on                │
    │                                                                      │
    │   2. BLOCKING SOURCES                                               │
    │      - Accept thread for the listening socket                       │
    │      - One reader thread per client, line framing                   │
    │                                                                      │
    │   3. CHAT                                                           │
    │      - Loop-owned registry of sessions                              │
    │      - Broadcast to everyone but the sender                         │
    │      - Per-recipient fault isolation                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    eventchat/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m eventchat)
    ├── config.py            # ChatConfig dataclass
    ├── errors.py            # Exception hierarchy
    ├── logs.py              # Logging setup, chat event records
    ├── console.py           # Console echo example
    ├── core/                # Event loop and blocking I/O
    │   ├── task_queue.py    # Task, TaskQueue
    │   ├── event_loop.py    # EventLoop
    │   ├── results.py       # Accept/read/write outcomes
    │   ├── connection.py    # Socket as a line channel
    │   └── acceptor.py      # Listening socket + accept thread
    └── chat/                # The chat server
        ├── session.py       # Per-client reader thread
        ├── registry.py      # Live sessions + broadcast
        └── server.py        # Wiring

=============================================================================
QUICK START
=============================================================================

    from eventchat import ChatServer, ChatConfig

    server = ChatServer(ChatConfig(port=5000))
    server.run()   # blocks forever

    # then, from two terminals:
    #   nc localhost 5000

=============================================================================
"""

__version__ = "1.0.0"

from .config import ChatConfig
from .core import EventLoop, Task, TaskQueue
from .chat import ChatServer, ChatRegistry, ClientSession
from .errors import BindError, ChatError, ConfigError, WrongThreadError

__all__ = [
    "ChatServer",
    "ChatConfig",
    "ChatRegistry",
    "ClientSession",
    "EventLoop",
    "Task",
    "TaskQueue",
    "ChatError",
    "ConfigError",
    "BindError",
    "WrongThreadError",
    "__version__",
]
