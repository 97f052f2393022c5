"""
=============================================================================
CONSOLE ECHO
=============================================================================

The smallest possible user of the event loop: read lines from the console
on a background thread, handle them on the loop.

    $ python -m eventchat console
    hello
    You entered: hello
    world
    You entered: world

    You entered 2 lines before

An empty line prints how many non-empty lines came before it. That rule
belongs to this example only; the chat server relays empty lines like any
other line.

=============================================================================
"""

import logging
import sys
import threading
from typing import Callable, Optional, TextIO

from .core import EventLoop


logger = logging.getLogger(__name__)


class ConsoleReader:
    """
    Reads lines from a text stream on a daemon thread and hands each one to
    a callback on the event loop.

    The callback gets (reader, line). At end of input it gets
    (reader, None) once and the thread ends.
    """

    def __init__(
        self,
        loop: EventLoop,
        on_line: Callable[["ConsoleReader", Optional[str]], None],
        stream: Optional[TextIO] = None,
    ):
        self._loop = loop
        self._on_line = on_line
        self._stream = stream if stream is not None else sys.stdin
        self._thread = threading.Thread(target=self._read_loop, name="ConsoleReader", daemon=True)

    def start(self) -> "ConsoleReader":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _read_loop(self) -> None:
        while True:
            try:
                raw = self._stream.readline()
            except (OSError, ValueError) as e:
                logger.error(f"Console read failed: {e}")
                raw = ""

            if raw == "":
                self._loop.submit(self._on_line, self, None)
                return

            self._loop.submit(self._on_line, self, raw.rstrip("\r\n"))


class ConsoleEcho:
    """
    Echo handler. Runs on the loop, so the counter needs no lock.
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.line_count = 0
        self._out = out if out is not None else sys.stdout

    def __call__(self, reader: ConsoleReader, line: Optional[str]) -> None:
        if line is None:
            logger.debug("Console input closed")
            return

        if line:
            self.line_count += 1
            self._print(f"You entered: {line}")
        else:
            self._print(f"You entered {self.line_count} lines before")

    def _print(self, text: str) -> None:
        print(text, file=self._out, flush=True)


def run_console(loop: Optional[EventLoop] = None, stream: Optional[TextIO] = None) -> None:
    """Run the console echo example until input ends or the process is killed."""
    loop = loop if loop is not None else EventLoop()
    echo = ConsoleEcho()

    def on_line(reader: ConsoleReader, line: Optional[str]) -> None:
        echo(reader, line)
        if line is None:
            loop.stop()

    ConsoleReader(loop, on_line, stream).start()
    loop.run_forever()
