"""
=============================================================================
EVENTCHAT CLI ENTRY POINT
=============================================================================

    # Chat server on the default port (5000, all interfaces)
    python -m eventchat

    # Same thing, explicitly
    python -m eventchat serve

    # Another port, JSON logs
    python -m eventchat serve --port 6000 --log-format json

    # Console echo example
    python -m eventchat console

Settings come from ChatConfig defaults, then CHAT_* environment variables,
then flags. With no flags and no environment the server listens on
port 5000 on every interface and logs plain text.

Exit status is 1 only when the port can't be bound (or the configuration
is invalid). Otherwise the server runs until it is killed.

=============================================================================
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional

from . import __version__
from .config import ChatConfig, LOG_FORMATS
from .errors import BindError, ConfigError
from .logs import setup_logging


logger = logging.getLogger("eventchat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eventchat",
        description="Line-based chat server built on a single-threaded event loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m eventchat                       # Chat server on port 5000
  python -m eventchat serve --port 6000     # Custom port
  python -m eventchat console               # Console echo example
        """,
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "console"],
        default="serve",
        help="What to run (default: serve)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 5000)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        default=None,
        help="Log output format (default: text)",
    )

    parser.add_argument("--version", "-v", action="version", version=f"eventchat {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ChatConfig:
    """Environment first, then any flag that was actually given."""
    config = ChatConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.level, config.log_format)

    if args.command == "console":
        from .console import run_console

        try:
            run_console()
        except KeyboardInterrupt:
            pass
        return 0

    from .chat import ChatServer

    try:
        server = ChatServer(config)
    except BindError as e:
        logger.error(str(e))
        return 1

    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
