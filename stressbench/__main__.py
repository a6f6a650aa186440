"""Main entry point for the stressbench package.

Usage:
    python -m stressbench run --url https://api.example.com/health --qps 20 --duration 60
    python -m stressbench run --config templates/checkout.json --total-requests 500
    python -m stressbench preview --qps 100 --duration 60 --ramp-up-duration 30
    python -m stressbench proxy --port 8787
"""

import sys


def main():
    """Main entry point that dispatches to subcommands."""
    if len(sys.argv) < 2:
        print_help()
        sys.exit(1)

    command = sys.argv[1]

    if command in ["-h", "--help", "help"]:
        print_help()
        sys.exit(0)

    # Remove the command from argv so subcommand parsers see correct args
    sys.argv = [sys.argv[0]] + sys.argv[2:]

    if command == "run":
        from .cli.run import main as run_main

        run_main()
    elif command == "preview":
        from .cli.preview import main as preview_main

        preview_main()
    elif command == "proxy":
        from .cli.proxy import main as proxy_main

        proxy_main()
    else:
        print(f"Unknown command: {command}")
        print_help()
        sys.exit(1)


def print_help():
    """Print help message."""
    print(
        """stressbench - HTTP load generation and measurement

Usage: python -m stressbench <command> [options]

Commands:
    run       Run a stress test (duration or request-count based)
    preview   Print the target QPS curve of a ramp-up configuration
    proxy     Run the forwarding proxy used with run --proxy-url

Examples:
    # 20 QPS for one minute, at most 10 requests in flight
    python -m stressbench run --url https://api.example.com/health --qps 20 --duration 60 --concurrency 10

    # Step ramp from 10 to 100 QPS, +30 QPS every 10s
    python -m stressbench run --url https://api.example.com/search --qps 100 --duration 60 \\
        --ramp-up-duration 30 --start-qps 10 --ramp-mode step --step-interval 10 --step-size 30

    # Route requests through a proxy
    python -m stressbench proxy --port 8787
    python -m stressbench run --url https://api.example.com/health --qps 5 --total-requests 100 \\
        --proxy-url http://127.0.0.1:8787/api/proxy

For command-specific help:
    python -m stressbench <command> --help
"""
    )


if __name__ == "__main__":
    main()
