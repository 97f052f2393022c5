"""
The chat server: sessions, the registry that relays their lines, and the
server object that wires them to an acceptor and an event loop.
"""

from .session import ClientSession, SessionHandler, SessionState
from .registry import ChatRegistry, connected_message, disconnected_message, said_message
from .server import ChatServer

__all__ = [
    "ChatServer",
    "ChatRegistry",
    "ClientSession",
    "SessionHandler",
    "SessionState",
    "connected_message",
    "said_message",
    "disconnected_message",
]
