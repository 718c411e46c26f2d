"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    python -m staticserver [options]
    static-server [options]

    -d, --directory PATH   directory to serve (default: current directory)
    -H, --host NAME        host name or address to bind (default: all)
    -p, --port PORT        port (default: OS-assigned)
    -6, --ipv6             IPv6-only socket
    -w, --workers N        worker threads (pool grows up to 2N)
    -l, --log-level LEVEL  DEBUG, INFO, WARNING, ERROR, CRITICAL
    -V, --version          print version and exit
    -h, --help             print help and exit

Flags override STATIC_DIR, STATIC_HOST, STATIC_PORT / PORT and
STATIC_LOG_LEVEL. Bad flags or values exit with status 1.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import run_server


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on usage errors; this CLI uses 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from None
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {number}")
    return number


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="static-server",
        description="Serve a directory over HTTP.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  static-server                         # serve . on an OS-assigned port
  static-server -d ./public -p 8080     # serve ./public on :8080
  static-server -H localhost -6         # IPv6 only, loopback
        """,
    )

    parser.add_argument("-V", "--version", action="version", version=f"static-server {__version__}")
    parser.add_argument("-6", "--ipv6", action="store_true", default=None, help="bind an IPv6-only socket")
    parser.add_argument("-d", "--directory", help="directory to serve (default: .)")
    parser.add_argument("-H", "--host", help="host name or address to bind (default: all interfaces)")
    parser.add_argument("-p", "--port", type=port_number, help="port to listen on (default: any free port)")
    parser.add_argument("-w", "--workers", type=positive_int, help="worker threads (default: 4)")
    parser.add_argument(
        "-l", "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level (default: INFO)",
    )
    return parser


def config_from_args(args: argparse.Namespace, environ=None) -> ServerConfig:
    """Environment defaults, overridden by whichever flags were given."""
    overrides = {}
    for option in ("directory", "host", "port", "ipv6", "log_level"):
        value = getattr(args, option)
        if value is not None:
            overrides[option] = value

    if args.workers is not None:
        overrides["min_workers"] = args.workers
        overrides["max_workers"] = args.workers * 2

    return ServerConfig.from_env(environ, **overrides)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    run_server(config)


if __name__ == "__main__":
    main()
