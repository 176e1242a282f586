"""
Mock SFTP server - command line entry point.

Runs the test double as a standalone process so non-Python clients can be
pointed at it.
"""

import argparse
import logging
import sys
import time

from .config import load_config
from .logger import setup_logging
from .server import MockSFTPServer

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Mock SFTP server with an in-memory filesystem",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mock-sftp serve --port 4000 --snapshot fixtures/tree.json
  mock-sftp serve --config mock-sftp.ini --verbose
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the mock SFTP server")
    serve_parser.add_argument("--config", help="Path to configuration file")
    serve_parser.add_argument("--host", help="Address to listen on")
    serve_parser.add_argument("--port", type=int, help="Port to listen on (0 picks a free port)")
    serve_parser.add_argument("--user", help="Accepted username")
    serve_parser.add_argument("--password", help="Accepted password")
    serve_parser.add_argument("--snapshot", help="JSON file with the initial namespace")
    serve_parser.add_argument("--host-key", help="RSA private key file for the host key")
    serve_parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def cmd_serve(args):
    """
    Handle the serve command.

    Blocks until Ctrl+C is pressed.
    """
    server = None

    try:
        config = load_config(
            config_path=args.config,
            host=args.host,
            port=args.port,
            username=args.user,
            password=args.password,
            snapshot_file=args.snapshot,
            host_key_file=args.host_key,
            verbose=args.verbose,
        )

        setup_logging(config.logging)
        from . import __version__

        logger.info("Starting mock SFTP server v%s", __version__)

        server = MockSFTPServer.from_config(config)
        try:
            server.start()
        except OSError as e:
            logger.error("Failed to listen on %s:%d: %s", config.server.host, config.server.port, e)
            print(f"[ERROR] Could not listen on {config.server.host}:{config.server.port}")
            print(f"        {e}")
            return 1

        print(f"[OK] Mock SFTP server listening on {config.server.host}:{server.port}")
        print(f"     User: {config.server.username}")
        print("     Press Ctrl+C to stop.")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print()
            logger.info("Received interrupt, stopping...")

        return 0

    except ValueError as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1
    finally:
        if server is not None:
            server.stop()
            print("[OK] Server stopped")


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.command == "serve":
        return cmd_serve(args)

    print("Usage: mock-sftp <command> [options]")
    print()
    print("Commands:")
    print("  serve    Run the mock SFTP server")
    print()
    print("Run 'mock-sftp <command> --help' for more information.")
    return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
