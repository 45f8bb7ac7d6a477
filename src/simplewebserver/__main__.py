"""
=============================================================================
DEMO HOST
=============================================================================

A tiny console host around the embeddable server, for trying it out:

    # Serve ./wwwroot on port 9999
    python -m simplewebserver

    # Several prefixes, another root
    python -m simplewebserver --bind http://localhost:9999/ \\
                              --bind http://localhost:8080/app/ \\
                              --root ./public

    # Access log as JSON
    python -m simplewebserver --log-format json

Requests ending in ".action" are answered with the default diagnostic page
through an action handler, exactly as a real host would wire one up.

Signal handling lives here, not in the server: the embedded server never
touches process-wide state.

=============================================================================
"""

import argparse
import logging
import signal
import sys
import threading

from . import __version__
from .config import ServerConfig
from .logs import configure_logging
from .server import ListenerBindError, WebServer


logger = logging.getLogger("simplewebserver.host")

DEFAULT_BINDING = "http://localhost:9999/"


def on_action(server: WebServer, context) -> None:
    """Answer every action request with the default diagnostic page."""
    server.write_default_action(context)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m simplewebserver",
        description="Embeddable multi-threaded web server (demo host)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m simplewebserver                                  # localhost:9999, ./wwwroot
  python -m simplewebserver --bind http://+:8080/            # all interfaces
  python -m simplewebserver --root ./public --log-level DEBUG
        """
    )

    parser.add_argument(
        "--bind", "-b",
        action="append",
        default=None,
        metavar="URL",
        help=f"Binding address, may be repeated (default: {DEFAULT_BINDING})"
    )

    parser.add_argument(
        "--root", "-r",
        default="./wwwroot",
        help="Root directory for the default document and static files (default: ./wwwroot)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO, or SWS_LOG_LEVEL)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text, or SWS_LOG_FORMAT)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"SimpleWebServer {__version__}"
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = ServerConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    configure_logging(config.log_level)

    stop_requested = threading.Event()

    def request_stop(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    with WebServer(config) as server:
        for address in args.bind or [DEFAULT_BINDING]:
            server.add_binding_address(address)
        server.root_path = args.root
        server.action_handler = on_action

        try:
            server.start()
        except ListenerBindError as e:
            logger.error(str(e))
            return 1

        logger.info(f"Serving {args.root} - press Ctrl+C to stop")

        # Event.wait() with a timeout keeps the main thread responsive to
        # signals on every platform.
        while not stop_requested.wait(0.5):
            pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
