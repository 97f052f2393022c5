"""
=============================================================================
LOGGING
=============================================================================

The server console IS the user interface for operators: every connect,
every chat line, every disconnect and every I/O fault shows up here and
nowhere else. Clients never see errors on the wire.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 2024-06-10 10:55:36 [INFO] eventchat.chat: Client <0> said: hello   │
    │ ───────────────────────────────────────────────────────────────────│
    │ Timestamp           Level  Logger          Message                 │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {                                                                   │
    │   "timestamp": "2024-06-10T10:55:36",                               │
    │   "level": "INFO",                                                  │
    │   "logger": "eventchat.chat",                                       │
    │   "message": "Client <0> said: hello",                              │
    │   "event": "said",                                                  │
    │   "client_id": 0,                                                   │
    │   "text": "hello"                                                   │
    │ }                                                                   │
    └─────────────────────────────────────────────────────────────────────┘

Chat events carry a ChatEvent as `extra`, so the JSON formatter can emit
the structured fields while the text formatter prints the literal message.

=============================================================================
"""

import json
import logging
import sys
import time
from dataclasses import dataclass
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════════
# LOGGER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
# Chat events get their own namespaced logger so they can be routed or
# silenced separately from the plumbing:
#   logging.getLogger("eventchat.chat").setLevel(logging.WARNING)
# ═══════════════════════════════════════════════════════════════════════════
chat_logger = logging.getLogger("eventchat.chat")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ChatEvent:
    """
    Structured log entry for one chat event.

    Attributes:
        event: "connected", "said" or "disconnected".
        client_id: Registry id of the client the event is about.
        text: The line the client sent ("said" only).
    """

    event: str
    client_id: int
    text: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {"event": self.event, "client_id": self.client_id}
        if self.text is not None:
            data["text"] = self.text
        return data


class JSONFormatter(logging.Formatter):
    """Render every record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        chat_event = getattr(record, "chat_event", None)
        if isinstance(chat_event, ChatEvent):
            entry.update(chat_event.to_dict())

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


def log_chat_event(message: str, event: ChatEvent) -> None:
    """
    Log a chat event on the chat logger.

    The message is logged verbatim; it is the same text that goes on the
    wire (e.g. "Client <1> disconnected").
    """
    chat_logger.info("%s", message, extra={"chat_event": event})


def setup_logging(level: int = logging.INFO, log_format: str = "text") -> None:
    """
    Configure the root logger for the server process.

    Call this ONCE, early, before the first log line. Existing handlers are
    replaced so that calling it again (tests, embedding) doesn't duplicate
    output.

    Args:
        level: Numeric logging level.
        log_format: "text" or "json".
    """
    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("eventchat").setLevel(level)
