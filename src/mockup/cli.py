"""
Mockup Server CLI

Command-line interface for starting the mockup server.

Examples:
    # Serve a configuration on the default port (3001)
    mockup-server config.json

    # Different port, 503 when a preferred status has no example
    mockup-server config.yaml --port 8080 --prefer-fallback unavailable

The session signing secret is read from MOCKUP_SESSION_SECRET.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .common import ConfigInvalid
from .mock import MockupConfig, MockupServer, ServerConfig
from .mock.generator import FALLBACK_POLICIES, FALLBACK_ECHO


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mockup-server',
        description='Configuration-driven HTTP backend simulator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('config_file', help='Mockup configuration file (.json, .yaml, .yml)')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    parser.add_argument('-p', '--port', type=int, default=3001, help='Port to bind (default: 3001)')
    parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                        help='Log level (default: info)')
    parser.add_argument('--prefer-fallback', choices=FALLBACK_POLICIES, default=FALLBACK_ECHO,
                        help='Response when a Prefer status has no example: echo the status '
                             'with an empty body, or answer 503 (default: echo)')
    parser.add_argument('--no-docs', action='store_true', help='Disable /openapi-json and /docs')
    parser.add_argument('--cookie-secure', action='store_true', help='Mark the session cookie Secure')
    parser.add_argument('--token-hours', type=int, default=24, help='Session lifetime in hours (default: 24)')
    return parser


def main(argv: Optional[List[str]] = None):
    """
    Load the configuration and serve it until interrupted.

    Exits with status 1 if the configuration cannot be loaded.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.token_hours < 1:
        parser.error("--token-hours must be at least 1")

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format='%(asctime)s %(levelname)-8s %(name)s: %(message)s'
    )

    try:
        config = MockupConfig.from_file(args.config_file)
    except ConfigInvalid as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    server_config = ServerConfig(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        prefer_fallback=args.prefer_fallback,
        docs_enabled=not args.no_docs,
        cookie_secure=args.cookie_secure,
        token_lifetime_hours=args.token_hours
    )
    server = MockupServer(config, server_config=server_config)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\nMockup server stopped")


if __name__ == '__main__':
    main()
