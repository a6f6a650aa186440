"""CLI for the forwarding proxy server."""

import argparse

from ..presets import PROXY_DEFAULTS
from ..proxy.server import run_proxy
from .arguments import configure_logging


def main():
    """Main entry point for the proxy CLI."""
    parser = argparse.ArgumentParser(
        description="Run a forwarding proxy that performs stress test requests server-side"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=PROXY_DEFAULTS["host"],
        help=f"Interface to bind (default: {PROXY_DEFAULTS['host']})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=PROXY_DEFAULTS["port"],
        help=f"Port to listen on (default: {PROXY_DEFAULTS['port']})",
    )
    parser.add_argument(
        "--path",
        type=str,
        default=PROXY_DEFAULTS["path"],
        help=f"Route of the forwarding endpoint (default: {PROXY_DEFAULTS['path']})",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every forwarded failure")
    args = parser.parse_args()

    configure_logging(verbose=args.verbose)
    run_proxy(host=args.host, port=args.port, path=args.path)


if __name__ == "__main__":
    main()
