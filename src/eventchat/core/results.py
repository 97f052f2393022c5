"""
Outcomes of the three blocking operations: accept, read, write.

The blocking calls never raise into their callers. They return one of these
values and the caller branches on it: a line becomes an on_line task, end of
stream or a read fault becomes an on_disconnect task, an accept or write
fault is logged and the caller moves on.
"""

import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReadKind(Enum):
    """What a read_line() call produced."""
    LINE = "line"    # A complete line (possibly empty)
    EOF = "eof"      # Peer closed the stream
    ERROR = "error"  # The read failed


@dataclass(frozen=True)
class ReadResult:
    kind: ReadKind
    line: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def of_line(cls, line: str) -> "ReadResult":
        return cls(ReadKind.LINE, line=line)

    @classmethod
    def eof(cls) -> "ReadResult":
        return cls(ReadKind.EOF)

    @classmethod
    def failed(cls, error: BaseException) -> "ReadResult":
        return cls(ReadKind.ERROR, error=error)

    @property
    def is_line(self) -> bool:
        return self.kind is ReadKind.LINE


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    error: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "WriteResult":
        return cls(True)

    @classmethod
    def failed(cls, error: BaseException) -> "WriteResult":
        return cls(False, error=error)


@dataclass(frozen=True)
class AcceptResult:
    """A freshly accepted client socket, or the error accept() raised."""
    sock: Optional[socket.socket] = None
    address: Optional[tuple] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.sock is not None
