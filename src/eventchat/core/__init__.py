"""
=============================================================================
CORE COMPONENTS
=============================================================================

The event loop and the blocking I/O that feeds it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     BLOCKING SOURCES (threads)                       │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • ConnectionAcceptor: accept() on the listening socket              │
    │  • LineConnection.read_line(): readline() on a client socket         │
    │    (driven by one reader thread per client, see chat.session)        │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ submit(task)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           TASK QUEUE                                 │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Unbounded FIFO, many producers, one consumer                     │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ take_next()
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           EVENT LOOP                                 │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • One thread, one task at a time                                   │
    │  • The only thread that touches shared state                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .task_queue import STOP, Task, TaskQueue
from .event_loop import EventLoop
from .results import AcceptResult, ReadKind, ReadResult, WriteResult
from .connection import ConnectionState, LineConnection
from .acceptor import ConnectionAcceptor

__all__ = [
    "Task",              # Deferred function call
    "TaskQueue",         # Unbounded MPSC FIFO of tasks
    "STOP",              # Poison pill that ends EventLoop.run_forever()
    "EventLoop",         # Single-threaded task executor
    "AcceptResult",      # Outcome of accept()
    "ReadKind",          # LINE / EOF / ERROR
    "ReadResult",        # Outcome of read_line()
    "WriteResult",       # Outcome of send_line()
    "LineConnection",    # Socket as a line channel
    "ConnectionState",   # OPEN / CLOSED
    "ConnectionAcceptor",  # Listening socket + accept thread
]
