"""
Unit tests for ClientSession's reader thread.
"""

import logging

import pytest

from eventchat.chat import ClientSession, SessionHandler, SessionState
from eventchat.core import EventLoop


class RecordingHandler(SessionHandler):
    """Records the events a session delivers, in the order the loop runs them."""

    def __init__(self):
        self.events = []

    def on_line(self, session, line):
        self.events.append(("line", session.id, line))

    def on_disconnect(self, session):
        self.events.append(("disconnect", session.id))


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


def run_session(fake_connection, handler, session_id=7):
    """Start a session, wait for its reader to finish, then run the loop."""
    loop = EventLoop()
    session = ClientSession(session_id, fake_connection, loop, handler)
    session.start()
    assert session.join(timeout=5.0)
    loop.run_pending()
    return session


class TestReader:
    def test_lines_then_disconnect_in_order(self, fake_connection, handler):
        """L1, L2, then end of stream arrive as on_line, on_line, on_disconnect."""
        fake_connection.feed("L1")
        fake_connection.feed("L2")
        fake_connection.feed_eof()

        session = run_session(fake_connection, handler)

        assert handler.events == [
            ("line", 7, "L1"),
            ("line", 7, "L2"),
            ("disconnect", 7),
        ]
        assert session.state == SessionState.CLOSED

    def test_empty_line_is_not_disconnect(self, fake_connection, handler):
        fake_connection.feed("")
        fake_connection.feed_eof()

        run_session(fake_connection, handler)

        assert handler.events == [("line", 7, ""), ("disconnect", 7)]

    def test_read_error_becomes_disconnect(self, fake_connection, handler, caplog):
        fake_connection.feed("before")
        fake_connection.feed_error(ConnectionResetError("reset by peer"))
        fake_connection.feed("never read")

        with caplog.at_level(logging.WARNING):
            run_session(fake_connection, handler)

        assert handler.events == [("line", 7, "before"), ("disconnect", 7)]
        assert "reset by peer" in caplog.text

    def test_reader_submits_but_never_executes(self, fake_connection, handler):
        """The reader thread only queues tasks; nothing runs until the loop does."""
        loop = EventLoop()
        session = ClientSession(1, fake_connection, loop, handler)
        fake_connection.feed("queued")
        fake_connection.feed_eof()

        session.start()
        assert session.join(timeout=5.0)

        assert handler.events == []
        assert len(loop.tasks) == 2

    def test_start_twice_rejected(self, fake_connection, handler):
        session = ClientSession(1, fake_connection, EventLoop(), handler)
        fake_connection.feed_eof()
        session.start()

        with pytest.raises(RuntimeError):
            session.start()


class TestWriteSide:
    def test_send_line_delegates(self, fake_connection, handler):
        session = ClientSession(1, fake_connection, EventLoop(), handler)

        result = session.send_line("hi")

        assert result.ok
        assert fake_connection.sent == ["hi"]

    def test_close_closes_connection(self, fake_connection, handler):
        session = ClientSession(1, fake_connection, EventLoop(), handler)

        session.close()

        assert fake_connection.closed

    def test_repr(self, fake_connection, handler):
        session = ClientSession(4, fake_connection, EventLoop(), handler)

        assert "id=4" in repr(session)
        assert "connected" in repr(session)
