"""
Exceptions raised by eventchat.

None of these ever crosses a thread boundary. Faults on background threads
are logged where they happen or turned into a Task; these classes cover the
failures that happen on the calling thread: bad configuration, a port that
cannot be bound, and touching loop-owned state from the wrong thread.
"""

from typing import Optional


class ChatError(Exception):
    """Base class for all eventchat errors."""


class ConfigError(ChatError, ValueError):
    """Raised by ChatConfig.validate() for an unusable setting."""


class BindError(ChatError):
    """
    The listening endpoint could not be created.

    Fatal at startup: the CLI logs it and exits with status 1.

    Attributes:
        host: Address we tried to bind.
        port: Port we tried to bind.
        cause: The underlying OSError.
    """

    def __init__(self, host: str, port: int, cause: Optional[OSError] = None):
        self.host = host
        self.port = port
        self.cause = cause
        message = f"Failed to open port {port} on {host}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class WrongThreadError(ChatError, RuntimeError):
    """Loop-owned state was reached from a thread that is not running the loop."""
