"""
=============================================================================
CLI ENTRY POINT
=============================================================================

Run the server as a module or through the console script:

    python -m webworker --port 8080 --root ./public
    webworker --port 8080 --root ./public

Flags override environment variables (see ServerConfig.from_env), which
override the defaults.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace

from . import __version__
from .config import ServerConfig, LOG_FORMATS
from .server import WebServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webworker",
        description="Serve files from a directory, one request per connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webworker                       # Serve the current directory on :8080
  python -m webworker --port 3000           # Custom port
  python -m webworker --root ./public       # Serve another directory
  python -m webworker --restrict-root       # Refuse paths outside the root
  python -m webworker --log-format json     # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.timeout or 0,
        help="Idle timeout for client sockets in seconds, 0 to wait forever "
             f"(default: {defaults.timeout or 0})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads at startup, max is 2x this "
             f"(default: {defaults.min_workers} at startup, {defaults.max_workers} max)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.root_dir,
        help=f"Directory to serve (default: {defaults.root_dir})"
    )

    parser.add_argument(
        "--restrict-root",
        action="store_true",
        default=defaults.restrict_to_root,
        help="Answer 404 for paths that resolve outside the root"
    )

    parser.add_argument(
        "--server-name",
        default=defaults.server_name,
        help=f"Server header and <cs371server> value (default: {defaults.server_name!r})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webworker {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace, defaults: ServerConfig) -> ServerConfig:
    """
    Translate parsed CLI arguments to a ServerConfig.

    Settings without a flag keep their value from defaults. Pool sizes do
    too, unless --workers was given.
    """
    if args.workers is None:
        min_workers, max_workers = defaults.min_workers, defaults.max_workers
    else:
        min_workers, max_workers = args.workers, args.workers * 2

    return replace(
        defaults,
        host=args.host,
        port=args.port,
        timeout=args.timeout or None,
        min_workers=min_workers,
        max_workers=max_workers,
        root_dir=args.root,
        restrict_to_root=args.restrict_root,
        server_name=args.server_name,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv=None):
    """Main CLI entry point."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: bad environment setting: {e}", file=sys.stderr)
        sys.exit(1)

    args = build_parser(defaults).parse_args(argv)

    try:
        server = WebServer(config_from_args(args, defaults))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
