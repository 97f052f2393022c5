"""
pytest configuration and fixtures.
"""

import queue
import socket
import threading
import time
from typing import Callable, Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from eventchat import ChatConfig, ChatRegistry, ChatServer, EventLoop
from eventchat.core import ReadResult, WriteResult


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate until it's true or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeConnection:
    """
    In-memory stand-in for LineConnection.

    read_line() blocks on a queue the test feeds; send_line() records what
    was sent, or fails every write when fail_writes is set.
    """

    _counter = 0

    def __init__(self, fail_writes: bool = False):
        FakeConnection._counter += 1
        self.address = ("fake", FakeConnection._counter)
        self.sent: list[str] = []
        self.fail_writes = fail_writes
        self.closed = False
        self._incoming: queue.Queue = queue.Queue()

    def feed(self, line: str) -> None:
        self._incoming.put(ReadResult.of_line(line))

    def feed_eof(self) -> None:
        self._incoming.put(ReadResult.eof())

    def feed_error(self, error: BaseException) -> None:
        self._incoming.put(ReadResult.failed(error))

    def read_line(self) -> ReadResult:
        return self._incoming.get()

    def send_line(self, text: str) -> WriteResult:
        if self.fail_writes:
            return WriteResult.failed(BrokenPipeError("simulated write failure"))
        self.sent.append(text)
        return WriteResult.success()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed_eof()


class RegistryHarness:
    """
    A ChatRegistry driven by hand: every event is submitted to the loop and
    then run with run_pending() on the test thread, which makes the test
    thread the loop thread.
    """

    def __init__(self):
        self.loop = EventLoop()
        self.registry = ChatRegistry(self.loop)
        self.connections: list[FakeConnection] = []

    def connect(self, fail_writes: bool = False):
        conn = FakeConnection(fail_writes=fail_writes)
        self.connections.append(conn)
        self.loop.submit(self.registry.on_connect, conn)
        self.loop.run_pending()
        return self.registry.sessions[-1]

    def say(self, session, line: str) -> None:
        self.loop.submit(self.registry.on_line, session, line)
        self.loop.run_pending()

    def disconnect(self, session) -> None:
        self.loop.submit(self.registry.on_disconnect, session)
        self.loop.run_pending()

    def close(self) -> None:
        for conn in self.connections:
            conn.close()


@pytest.fixture
def harness() -> Generator[RegistryHarness, None, None]:
    """Registry + loop driven from the test thread."""
    h = RegistryHarness()
    yield h
    h.close()


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def loop() -> Generator[EventLoop, None, None]:
    """An event loop running on its own thread."""
    event_loop = EventLoop()
    event_loop.start()
    yield event_loop
    event_loop.stop()
    event_loop.join(timeout=5.0)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ChatClient:
    """Blocking line client for integration tests."""

    def __init__(self, address, timeout: float = 5.0):
        self.sock = socket.create_connection(address, timeout=timeout)
        self._reader = self.sock.makefile("r", encoding="utf-8", newline="\n")
        self._writer = self.sock.makefile("w", encoding="utf-8", newline="\n")

    def send(self, line: str) -> None:
        self._writer.write(line + "\n")
        self._writer.flush()

    def recv(self) -> Optional[str]:
        """Next line without its terminator, or None at end of stream."""
        raw = self._reader.readline()
        if raw == "":
            return None
        return raw.rstrip("\n")

    def expect_silence(self, seconds: float = 0.3) -> bool:
        """True if nothing arrives within seconds."""
        self.sock.settimeout(seconds)
        try:
            data = self.sock.recv(1, socket.MSG_PEEK)
        except socket.timeout:
            return True
        finally:
            self.sock.settimeout(5.0)
        return not data

    def close(self) -> None:
        for f in (self._writer, self._reader):
            try:
                f.close()
            except OSError:
                pass
        self.sock.close()


class RunningServer:
    """A ChatServer on an ephemeral loopback port with its loop on a thread."""

    def __init__(self):
        self.loop = EventLoop()
        self.server = ChatServer(ChatConfig(host="127.0.0.1", port=0), loop=self.loop)
        self.loop.start()
        self.clients: list[ChatClient] = []

    @property
    def address(self):
        return self.server.address

    def connect(self) -> ChatClient:
        """Connect a client and wait until the registry has it."""
        expected = len(self.server.registry) + 1
        client = ChatClient(self.address)
        self.clients.append(client)
        if not wait_for(lambda: len(self.server.registry) >= expected):
            raise RuntimeError("client was never registered")
        return client

    def stop(self) -> None:
        for client in self.clients:
            client.close()
        self.server.close()
        self.loop.stop()
        self.loop.join(timeout=5.0)


@pytest.fixture
def running_server() -> Generator[RunningServer, None, None]:
    srv = RunningServer()
    yield srv
    srv.stop()
