"""
=============================================================================
CHAT SERVER CONFIGURATION
=============================================================================

All tunables of the chat server live in one dataclass. The defaults ARE the
standard setup: port 5000, every interface, UTF-8 lines. Nothing has to
be configured to get a working server.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

    ┌──────────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  Dataclass       │────►│  Environment     │────►│  CLI flags       │
    │  defaults        │     │  CHAT_* vars     │     │  --port, ...     │
    └──────────────────┘     └──────────────────┘     └──────────────────┘
         lowest                                            highest

Later sources override earlier ones. The CLI (__main__.py) starts from
ChatConfig.from_env() and then applies any flags that were given.

=============================================================================
"""

import codecs
import logging
import os
from dataclasses import dataclass

from .errors import ConfigError


DEFAULT_PORT = 5000

LOG_FORMATS = ("text", "json")


@dataclass
class ChatConfig:
    """
    Configuration for the chat server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    WIRE FORMAT
    - encoding

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = DEFAULT_PORT
    """
    The port number to listen on.
    0 asks the OS for a free port, which is what the tests use.
    """

    backlog: int = 128
    """
    Maximum number of connections the OS queues before accept() takes them.
    """

    # ─────────────────────────────────────────────────────────────────────
    # WIRE FORMAT
    # ─────────────────────────────────────────────────────────────────────

    encoding: str = "utf-8"
    """
    Text encoding for lines in both directions.
    Undecodable input bytes are replaced, never fatal.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    INFO shows connects, chat lines and disconnects.
    """

    log_format: str = "text"
    """
    Log format: 'text' for humans, 'json' for log aggregators.
    """

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        CHAT_HOST        Server host (default: 0.0.0.0)
        CHAT_PORT        Server port (default: 5000)
        CHAT_LOG_LEVEL   Logging level (default: INFO)
        CHAT_LOG_FORMAT  text or json (default: text)

        =====================================================================
        """
        port = os.getenv("CHAT_PORT", str(DEFAULT_PORT))
        try:
            port_number = int(port)
        except ValueError:
            raise ConfigError(f"CHAT_PORT must be an integer, got {port!r}") from None

        return cls(
            host=os.getenv("CHAT_HOST", "0.0.0.0"),
            port=port_number,
            log_level=os.getenv("CHAT_LOG_LEVEL", "INFO"),
            log_format=os.getenv("CHAT_LOG_FORMAT", "text"),
        )

    @property
    def level(self) -> int:
        """The numeric logging level for log_level."""
        return logging.getLevelName(self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once by ChatServer before anything is bound, so a bad value
        fails at startup with a clear message.
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if not isinstance(self.level, int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"Unknown log format: {self.log_format}. Use one of {', '.join(LOG_FORMATS)}."
            )

        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ConfigError(f"Unknown encoding: {self.encoding}") from None
